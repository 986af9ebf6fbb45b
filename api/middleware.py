"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from utils.user_context import set_current_user_id, clear_current_user_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class UserContextMiddleware(BaseHTTPMiddleware):
    """Binds the caller's identity to the user context (and so to RLS).

    Identity is established upstream; the gateway forwards the user's ID in
    the X-User-ID header. Requests without a valid UUID there are rejected.
    Public paths bypass the check entirely.
    """

    HEADER = "X-User-ID"

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def _is_public_path(self, path: str) -> bool:
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    @staticmethod
    def _unauthenticated(message: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(ErrorCodes.NOT_AUTHENTICATED, message).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        raw_user_id = request.headers.get(self.HEADER)
        if not raw_user_id:
            return self._unauthenticated("Authentication required")

        try:
            user_id = UUID(raw_user_id)
        except ValueError:
            return self._unauthenticated("Invalid user identity")

        set_current_user_id(user_id)
        request.state.user_id = user_id

        try:
            return await call_next(request)
        finally:
            clear_current_user_id()
