"""API modules for HTTP interface."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    FieldError,
    success_response,
    error_response,
    ErrorCodes,
)
