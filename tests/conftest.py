"""Shared test fixtures for the invoicing test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Drop any database URL cached before .env was loaded
from clients.vault_client import get_database_url
get_database_url.cache_clear()

from clients.postgres_client import PostgresClient
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")

TEST_COMPANY_ID = UUID("00000000-0000-0000-0000-0000000000c1")
TEST_INVOICE_ID = UUID("00000000-0000-0000-0000-0000000000a1")

FIXED_NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for isolation tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def authenticated_context(test_user_id):
    """Provide an authenticated user context for the primary test user."""
    with user_context(test_user_id):
        yield test_user_id


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def db():
    """
    Mock PostgresClient.

    Services only talk to the database through execute/execute_single/
    execute_scalar/execute_returning, so tests script those return values.
    """
    mock = Mock(spec=PostgresClient)
    mock.execute.return_value = []
    mock.execute_single.return_value = None
    mock.execute_scalar.return_value = None
    mock.execute_returning.return_value = []
    return mock


# =============================================================================
# ROW BUILDERS
# =============================================================================


def _company_row(**overrides) -> dict:
    """A companies row as RealDictCursor returns it."""
    row = {
        "id": TEST_COMPANY_ID,
        "user_id": TEST_USER_ID,
        "name": "Sharma Traders",
        "gst_number": "27AAPFU0939F1ZV",
        "logo_url": "",
        "address": {
            "street": "12 MG Road",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411001",
            "country": "India",
        },
        "contact": {"email": "accounts@sharmatraders.in", "phone": "9876543210"},
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    row.update(overrides)
    return row


def _invoice_row(**overrides) -> dict:
    """An invoices row as RealDictCursor returns it (JSONB already decoded)."""
    billing = {
        "street": "4 Park Street",
        "city": "Kolkata",
        "state": "West Bengal",
        "pincode": "700016",
    }
    row = {
        "id": TEST_INVOICE_ID,
        "user_id": TEST_USER_ID,
        "company_id": TEST_COMPANY_ID,
        "invoice_number": "INV-2024-0001",
        "customer": {
            "name": "Acme Retail",
            "gstin": "19AAACA1234A1Z5",
            "email": "billing@acmeretail.in",
            "phone": "",
            "billing_address": billing,
            "shipping_address": dict(billing),
        },
        "invoice_date": date(2024, 3, 15),
        "due_date": date(2024, 4, 14),
        "payment_terms": "Net 30",
        "products": [
            {
                "description": "Widget",
                "hsn_code": "8471",
                "quantity": "2",
                "unit": "Nos",
                "unit_price": "500.00",
                "gst_rate": "18",
                "taxable_value": "1000.00",
                "gst_amount": "180.00",
                "cgst_amount": "90.00",
                "sgst_amount": "90.00",
                "total_amount": "1180.00",
            }
        ],
        "subtotal": Decimal("1000.00"),
        "cgst_total": Decimal("90.00"),
        "sgst_total": Decimal("90.00"),
        "round_off": Decimal("0.00"),
        "grand_total": Decimal("1180.00"),
        "notes": "",
        "status": "generated",
        "paid_at": None,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_company_row():
    """Factory for companies rows; keyword overrides replace columns."""
    return _company_row


@pytest.fixture
def make_invoice_row():
    """Factory for invoices rows; keyword overrides replace columns."""
    return _invoice_row


@pytest.fixture
def company_row() -> dict:
    return _company_row()


@pytest.fixture
def invoice_row() -> dict:
    return _invoice_row()
