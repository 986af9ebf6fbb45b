"""POST /api/actions - unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import (
    InvoiceCreate, InvoiceUpdate, InvoiceStatus, LineItemInput,
    CompanyCreate, CompanyUpdate,
    BankProfileUpsert,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
        "company": CompanyHandler(services["company"]),
        "bank": BankHandler(services["bank"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}", None)
        result = method(body.data)
        return success_response(result).model_dump(mode="json")

    return router


def _invoice_id(data: dict) -> UUID:
    raw_id = data.pop("id", None)
    if not raw_id:
        raise ValueError("'id' is required")
    return UUID(str(raw_id))


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "update", "update_status", "delete", "preview"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        invoice = self.service.create(InvoiceCreate(**data))
        return invoice.model_dump(mode="json")

    def _handle_update(self, data: dict):
        invoice_id = _invoice_id(data)
        invoice = self.service.update(invoice_id, InvoiceUpdate(**data))
        return invoice.model_dump(mode="json")

    def _handle_update_status(self, data: dict):
        invoice_id = _invoice_id(data)
        if "status" not in data:
            raise ValueError("'status' is required")
        invoice = self.service.update_status(invoice_id, InvoiceStatus(data["status"]))
        return invoice.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        invoice_id = _invoice_id(data)
        deleted = self.service.delete(invoice_id)
        if not deleted:
            raise ValueError(f"Invoice {invoice_id} not found")
        return {"deleted": True}

    def _handle_preview(self, data: dict):
        items = [LineItemInput(**item) for item in data.get("products", [])]
        return self.service.preview(items).model_dump(mode="json")


class CompanyHandler:
    ALLOWED_ACTIONS = {"create", "update"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        company = self.service.create(CompanyCreate(**data))
        return company.model_dump(mode="json")

    def _handle_update(self, data: dict):
        data.pop("id", None)
        company = self.service.update(CompanyUpdate(**data))
        return company.model_dump(mode="json")


class BankHandler:
    ALLOWED_ACTIONS = {"upsert"}

    def __init__(self, service):
        self.service = service

    def _handle_upsert(self, data: dict):
        profile = self.service.upsert(BankProfileUpsert(**data))
        return profile.model_dump(mode="json")
