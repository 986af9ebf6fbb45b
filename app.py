"""FastAPI application factory for the GST invoicing service."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from api.actions import create_actions_router
from api.base import success_response
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware, UserContextMiddleware
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.config import InvoicingConfig
from core.invoice_numbers import InvoiceNumberAllocator
from core.services.bank_service import BankService
from core.services.company_service import CompanyService
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, config: InvoicingConfig) -> dict:
    """Wire the services the routers dispatch to."""
    company_service = CompanyService(postgres)
    return {
        "company": company_service,
        "bank": BankService(postgres),
        "invoice": InvoiceService(
            postgres,
            company_service,
            InvoiceNumberAllocator(postgres),
            config,
        ),
    }


def create_app(
    postgres: PostgresClient | None = None,
    config: InvoicingConfig | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        postgres: Database client. Defaults to one built from the Vault URL.
        config: Invoicing defaults. Defaults to InvoicingConfig().
    """
    load_dotenv()

    if postgres is None:
        postgres = PostgresClient(get_database_url())
    config = config or InvoicingConfig()
    services = build_services(postgres, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        postgres.close()
        logger.info("Database pool closed")

    app = FastAPI(title="GST Invoicing", lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(UserContextMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    return app
