"""API test fixtures - TestClient over the real routers with mocked services."""

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware, UserContextMiddleware
from core.config import InvoicingConfig
from core.models import Company, Invoice
from core.services.bank_service import BankService
from core.services.company_service import CompanyService
from core.services.invoice_service import InvoiceService


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_service():
    mock = Mock(spec=InvoiceService)
    mock.config = InvoicingConfig()
    return mock


@pytest.fixture
def company_service():
    return Mock(spec=CompanyService)


@pytest.fixture
def bank_service():
    return Mock(spec=BankService)


@pytest.fixture
def services(invoice_service, company_service, bank_service):
    return {
        "invoice": invoice_service,
        "company": company_service,
        "bank": bank_service,
    }


@pytest.fixture
def invoice(invoice_row):
    return Invoice.model_validate(invoice_row)


@pytest.fixture
def company(company_row):
    return Company.model_validate(company_row)


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    """FastAPI app with identity middleware, error handlers, and data/actions routes."""
    from api.data import create_data_router
    from api.actions import create_actions_router

    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(UserContextMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app


@pytest.fixture
def client(app, test_user_id):
    """Test client that identifies as the primary test user."""
    return TestClient(
        app,
        raise_server_exceptions=False,
        headers={"X-User-ID": str(test_user_id)},
    )


@pytest.fixture
def unauthed_client(app):
    """Test client without an X-User-ID header."""
    return TestClient(app, raise_server_exceptions=False)
