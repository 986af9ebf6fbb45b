"""GET /api/data - unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.gst import gst_rate_label
from core.models import InvoiceListFilters


VALID_TYPES = {"invoices", "invoice_number", "dashboard", "company", "bank", "gst_rates"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    company_svc = services["company"]
    bank_svc = services["bank"]

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        status: str | None = Query(None),
        customer_name: str | None = Query(None),
        start_date: str | None = Query(None),
        end_date: str | None = Query(None),
        sort_by: str = Query("created_at"),
        sort_order: str = Query("desc"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "invoices":
            if id:
                return _handle_invoice(invoice_svc, id)
            filters = InvoiceListFilters(
                status=status or None,
                customer_name=customer_name or None,
                start_date=start_date or None,
                end_date=end_date or None,
                sort_by=sort_by,
                sort_order=sort_order,
                page=page,
                limit=limit,
            )
            return success_response(
                invoice_svc.list(filters).model_dump(mode="json")
            ).model_dump(mode="json")

        if type == "invoice_number":
            return success_response(
                {"invoice_number": invoice_svc.next_invoice_number()}
            ).model_dump(mode="json")

        if type == "dashboard":
            return success_response(
                invoice_svc.dashboard_stats().model_dump(mode="json")
            ).model_dump(mode="json")

        if type == "company":
            return success_response(
                company_svc.require().model_dump(mode="json")
            ).model_dump(mode="json")

        if type == "bank":
            return success_response(
                bank_svc.get().model_dump(mode="json")
            ).model_dump(mode="json")

        if type == "gst_rates":
            return _handle_gst_rates(invoice_svc.config)

    return router


def _handle_invoice(invoice_svc, id):
    try:
        invoice_id = UUID(id)
    except ValueError:
        raise ValueError(f"Invalid invoice id '{id}'")

    invoice = invoice_svc.get_by_id(invoice_id)
    if invoice is None:
        raise ValueError(f"Invoice {id} not found")

    return success_response(invoice.model_dump(mode="json")).model_dump(mode="json")


def _handle_gst_rates(config):
    slabs = [
        {"rate": float(rate), "label": gst_rate_label(rate)}
        for rate in config.gst_rate_slabs
    ]
    return success_response({
        "slabs": slabs,
        "default_rate": float(config.default_gst_rate),
    }).model_dump(mode="json")
