"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes, FieldError
from core.exceptions import AlreadyExistsError

logger = logging.getLogger(__name__)


def field_errors(errors: list[dict]) -> list[FieldError]:
    """Flatten pydantic error dicts into {field, message} pairs."""
    details = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append(FieldError(
            field=".".join(location) or "__root__",
            message=error.get("msg", "Invalid value"),
        ))
    return details


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return JSONResponse(
                status_code=404,
                content=error_response(ErrorCodes.NOT_FOUND, message).model_dump(mode="json"),
            )
        return JSONResponse(
            status_code=400,
            content=error_response(ErrorCodes.INVALID_REQUEST, message).model_dump(mode="json"),
        )

    # Action payloads are validated inside handlers, outside FastAPI's own
    # request parsing, so their failures arrive as plain pydantic errors.
    @app.exception_handler(ValidationError)
    async def model_validation_error_handler(request: Request, exc: ValidationError):
        details = field_errors(exc.errors())
        return JSONResponse(
            status_code=400,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                "; ".join(f"{d.field}: {d.message}" for d in details),
                details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = field_errors(exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                "Request is malformed",
                details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(AlreadyExistsError)
    async def already_exists_handler(request: Request, exc: AlreadyExistsError):
        return JSONResponse(
            status_code=409,
            content=error_response(ErrorCodes.ALREADY_EXISTS, str(exc)).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
            ).model_dump(mode="json"),
        )
