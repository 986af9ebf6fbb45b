"""Invoicing configuration."""

from decimal import Decimal

from pydantic import BaseModel, Field

from core.models.invoice import InvoiceStatus


class InvoicingConfig(BaseModel):
    """
    Business defaults for invoicing.

    Passed explicitly into services so tax defaults never come from
    ambient process state.
    """

    # Tax
    default_gst_rate: Decimal = Field(
        default=Decimal("18"),
        description="GST rate (percent) applied when a line item omits one",
        ge=0,
        le=100,
    )
    gst_rate_slabs: list[Decimal] = Field(
        default_factory=lambda: [Decimal(r) for r in ("0", "5", "12", "18", "28")],
        description="GST slabs offered by the invoice form",
    )
    max_invoice_total: Decimal = Field(
        default=Decimal("999999999999"),
        description="Largest grand total a saved invoice may carry (numeric(14,2) columns)",
        gt=0,
        le=Decimal("999999999999"),
    )

    # Invoice defaults
    default_due_days: int = Field(
        default=30,
        description="Days after invoice date used when due date is missing or earlier",
        ge=0,
        le=365,
    )
    default_payment_terms: str = Field(
        default="Net 30",
        description="Payment terms printed on new invoices",
    )
    default_unit: str = Field(
        default="Nos",
        description="Unit of measure for line items that omit one",
    )
    default_status: InvoiceStatus = Field(
        default=InvoiceStatus.GENERATED,
        description="Status assigned to newly created invoices",
    )

    # Listing
    max_page_size: int = Field(
        default=100,
        description="Upper bound on invoices returned per page",
        ge=1,
        le=500,
    )
