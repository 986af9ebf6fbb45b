"""Tests for api/base.py - Unified API response format."""

from datetime import timezone

from api.base import (
    FieldError,
    success_response,
    error_response,
    ErrorCodes,
)


class TestSuccessResponse:
    """Tests for success_response()."""

    def test_structure(self):
        resp = success_response({"invoice_number": "INV-2024-0001"})
        assert resp.success is True
        assert resp.data == {"invoice_number": "INV-2024-0001"}
        assert resp.error is None

    def test_request_id_generated(self):
        resp = success_response({})
        assert resp.meta.request_id

    def test_timestamp_is_utc(self):
        resp = success_response({})
        assert resp.meta.timestamp.tzinfo == timezone.utc


class TestErrorResponse:
    """Tests for error_response()."""

    def test_structure(self):
        resp = error_response("TEST_ERROR", "Something went wrong")
        assert resp.success is False
        assert resp.data is None
        assert resp.error.code == "TEST_ERROR"
        assert resp.error.message == "Something went wrong"
        assert resp.error.details is None

    def test_field_details(self):
        resp = error_response(
            ErrorCodes.VALIDATION_ERROR,
            "products: List should have at least 1 item",
            [FieldError(field="products", message="List should have at least 1 item")],
        )

        dumped = resp.model_dump(mode="json")
        assert dumped["error"]["details"] == [
            {"field": "products", "message": "List should have at least 1 item"}
        ]


class TestErrorCodes:

    def test_codes_match_names(self):
        for name in ("NOT_AUTHENTICATED", "NOT_FOUND", "ALREADY_EXISTS",
                     "VALIDATION_ERROR", "INVALID_REQUEST", "INTERNAL_ERROR"):
            assert getattr(ErrorCodes, name) == name
