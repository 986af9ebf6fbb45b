"""Invoice domain models.

Amounts are Decimal rupees. Line items and invoice totals are rounded to
paise (2 places); the payable grand total is a whole rupee. GST rates are
percentages (18 = 18%).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    EmailStr,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
)

from core.gst import is_valid_gstin
from utils.timezone import today_utc

# JSON responses carry numbers, not the Decimal strings pydantic emits by default.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
WholeRupees = Annotated[Decimal, PlainSerializer(int, return_type=int, when_used="json")]


class InvoiceStatus(str, Enum):
    """Invoice status. Flat: any status may be set from any other."""

    DRAFT = "draft"
    GENERATED = "generated"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


PENDING_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.GENERATED, InvoiceStatus.SENT})

# Per-line input bounds. Invoice-level totals are capped separately by
# InvoicingConfig.max_invoice_total.
MAX_QUANTITY = Decimal("1000000")
MAX_UNIT_PRICE = Decimal("1000000000")


class Address(BaseModel):
    """Billing or shipping address on an invoice."""

    model_config = {"str_strip_whitespace": True}

    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=r"^\d{6}$")


class _CustomerFields(BaseModel):
    model_config = {"str_strip_whitespace": True}

    @field_validator("gstin", mode="before", check_fields=False)
    @classmethod
    def normalize_gstin(cls, value):
        if isinstance(value, str):
            value = value.strip().upper()
            if not is_valid_gstin(value):
                raise ValueError("GSTIN must be 15 characters in the standard format")
        return value

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value


class CustomerSnapshot(_CustomerFields):
    """Customer details copied onto the invoice at the time of billing."""

    name: str = Field(..., min_length=1, max_length=255)
    gstin: str = Field("", max_length=15)
    email: EmailStr | None = None
    phone: str = Field("", max_length=50)
    billing_address: Address
    shipping_address: Address | None = None


class CustomerSnapshotUpdate(_CustomerFields):
    """Customer fields that can be changed on an existing invoice."""

    name: str | None = Field(None, min_length=1, max_length=255)
    gstin: str | None = Field(None, max_length=15)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    billing_address: Address | None = None
    shipping_address: Address | None = None


class LineItemInput(BaseModel):
    """A line item as submitted by the invoice form."""

    model_config = {"str_strip_whitespace": True}

    description: str = Field(..., min_length=1, max_length=500)
    hsn_code: str = Field("", max_length=20)
    quantity: Decimal = Field(..., gt=0, le=MAX_QUANTITY)
    unit: str | None = Field(None, max_length=20)
    unit_price: Decimal = Field(..., ge=0, le=MAX_UNIT_PRICE)
    gst_rate: Decimal | None = Field(None, ge=0, le=100)


class LineItem(BaseModel):
    """A priced line item as stored on the invoice."""

    description: str
    hsn_code: str = ""
    quantity: Money
    unit: str
    unit_price: Money
    gst_rate: Money
    taxable_value: Money
    gst_amount: Money
    cgst_amount: Money
    sgst_amount: Money
    total_amount: Money


class InvoiceCreate(BaseModel):
    """Data required to create an invoice."""

    model_config = {"str_strip_whitespace": True}

    customer: CustomerSnapshot
    invoice_date: date = Field(default_factory=today_utc)
    due_date: date | None = None
    payment_terms: str | None = Field(None, max_length=100)
    products: list[LineItemInput] = Field(..., min_length=1)
    notes: str = Field("", max_length=5000)
    status: InvoiceStatus | None = None


class InvoiceUpdate(BaseModel):
    """Data that can be updated on an invoice. All fields optional."""

    model_config = {"str_strip_whitespace": True}

    customer: CustomerSnapshotUpdate | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    payment_terms: str | None = Field(None, max_length=100)
    products: list[LineItemInput] | None = Field(None, min_length=1)
    notes: str | None = Field(None, max_length=5000)
    status: InvoiceStatus | None = None


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    user_id: UUID
    company_id: UUID
    invoice_number: str
    customer: CustomerSnapshot
    invoice_date: date
    due_date: date
    payment_terms: str
    products: list[LineItem]
    subtotal: Money
    cgst_total: Money
    sgst_total: Money
    round_off: Money
    grand_total: WholeRupees
    notes: str
    status: InvoiceStatus
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_overdue(self) -> bool:
        """Unpaid, uncancelled and past its due date."""
        if self.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
            return False
        return today_utc() > self.due_date

    @computed_field
    @property
    def days_until_due(self) -> int:
        """Days remaining until the due date (negative once overdue)."""
        return (self.due_date - today_utc()).days


class InvoicePreview(BaseModel):
    """Priced line items and totals computed without saving anything."""

    products: list[LineItem]
    subtotal: Money
    cgst_total: Money
    sgst_total: Money
    round_off: Money
    grand_total: WholeRupees


InvoiceSortField = Literal["created_at", "invoice_date", "due_date", "grand_total", "invoice_number"]


class InvoiceListFilters(BaseModel):
    """Filters, sorting and paging for the invoice list."""

    status: InvoiceStatus | None = None
    customer_name: str | None = Field(None, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    sort_by: InvoiceSortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=500)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class InvoicePage(BaseModel):
    invoices: list[Invoice]
    pagination: Pagination


class DashboardStats(BaseModel):
    """Headline numbers for the dashboard."""

    total: int
    paid: int
    overdue: int
    pending: int
    total_amount: Money
    paid_amount: Money
    pending_amount: Money
    monthly_revenue: Money
    yearly_revenue: Money
    collection_rate: float
