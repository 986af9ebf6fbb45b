"""
Invoice service for GST invoices.

Invoices snapshot the customer and their priced line items at billing time.
Tax figures are always recomputed server-side from quantity, unit price and
GST rate; client-supplied totals are never trusted.

Creation is a single insert with no multi-statement transaction. The
(user_id, invoice_number) unique index settles races between concurrent
creates: a collision is retried once with a timestamp invoice number.
"""

import logging
import math
from dataclasses import asdict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID, uuid4

from psycopg2 import errors as pg_errors

from clients.postgres_client import PostgresClient, jsonb
from core.config import InvoicingConfig
from core.exceptions import DuplicateInvoiceError
from core.gst import InvoiceTotals, aggregate, compute_line_item
from core.invoice_numbers import InvoiceNumberAllocator
from core.models import (
    CustomerSnapshot,
    DashboardStats,
    Invoice,
    InvoiceCreate,
    InvoiceListFilters,
    InvoicePage,
    InvoicePreview,
    InvoiceStatus,
    InvoiceUpdate,
    LineItem,
    LineItemInput,
    Pagination,
    PENDING_STATUSES,
)
from core.services.company_service import CompanyService
from utils.user_context import get_current_user_id
from utils.timezone import now_utc, today_utc

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

# Customer fields an update may reset with an explicit null. Other fields
# keep their stored value when null is sent.
_CLEARABLE_CUSTOMER_FIELDS = frozenset({"email", "shipping_address"})


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        company_service: CompanyService,
        allocator: InvoiceNumberAllocator,
        config: InvoicingConfig | None = None,
    ):
        self.postgres = postgres
        self.company_service = company_service
        self.allocator = allocator
        self.config = config or InvoicingConfig()

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def price_line_items(self, items: list[LineItemInput]) -> list[LineItem]:
        """Annotate each submitted line item with its computed tax fields."""
        priced = []
        for item in items:
            gst_rate = item.gst_rate if item.gst_rate is not None else self.config.default_gst_rate
            tax = compute_line_item(item.quantity, item.unit_price, gst_rate)
            priced.append(LineItem(
                description=item.description,
                hsn_code=item.hsn_code,
                quantity=item.quantity,
                unit=item.unit or self.config.default_unit,
                unit_price=item.unit_price,
                gst_rate=gst_rate,
                **asdict(tax),
            ))
        return priced

    def _persistable_totals(self, products: list[LineItem]) -> InvoiceTotals:
        """Totals for a save, rejecting amounts the totals columns cannot hold."""
        totals = aggregate(products)
        if totals.grand_total > self.config.max_invoice_total:
            raise ValueError(
                f"Invoice total {totals.grand_total} exceeds the maximum of "
                f"{self.config.max_invoice_total}"
            )
        return totals

    def preview(self, items: list[LineItemInput]) -> InvoicePreview:
        """Price line items and total them without saving anything."""
        products = self.price_line_items(items)
        totals = aggregate(products)
        return InvoicePreview(products=products, **asdict(totals))

    def _resolve_due_date(self, invoice_date: date, due_date: date | None) -> date:
        """A missing due date, or one before the invoice date, becomes invoice date + default days."""
        if due_date is None or due_date < invoice_date:
            return invoice_date + timedelta(days=self.config.default_due_days)
        return due_date

    @staticmethod
    def _with_shipping_default(customer: CustomerSnapshot) -> CustomerSnapshot:
        if customer.shipping_address is not None:
            return customer
        return customer.model_copy(
            update={"shipping_address": customer.billing_address.model_copy()}
        )

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def _insert(
        self,
        invoice_number: str,
        user_id: UUID,
        company_id: UUID,
        data: InvoiceCreate,
        customer: CustomerSnapshot,
        products: list[LineItem],
        totals: InvoiceTotals,
        status: InvoiceStatus,
    ) -> Invoice:
        now = now_utc()
        row = self.postgres.execute_returning(
            """
            INSERT INTO invoices (
                id, user_id, company_id, invoice_number,
                customer, invoice_date, due_date, payment_terms,
                products, subtotal, cgst_total, sgst_total, round_off, grand_total,
                notes, status, paid_at, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s
            )
            RETURNING *
            """,
            (
                uuid4(), user_id, company_id, invoice_number,
                jsonb(customer.model_dump()),
                data.invoice_date,
                self._resolve_due_date(data.invoice_date, data.due_date),
                data.payment_terms or self.config.default_payment_terms,
                jsonb([p.model_dump() for p in products]),
                totals.subtotal, totals.cgst_total, totals.sgst_total,
                totals.round_off, totals.grand_total,
                data.notes, status, now if status == InvoiceStatus.PAID else None,
                now, now
            )
        )[0]
        return Invoice.model_validate(row)

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Create an invoice for the current user's company.

        Args:
            data: Customer snapshot, dates and line items

        Returns:
            Created invoice with computed line items and totals

        Raises:
            ValueError: If the company has not been set up
            DuplicateInvoiceError: If both the sequential and the fallback
                invoice numbers collide
        """
        user_id = get_current_user_id()
        company = self.company_service.require()

        products = self.price_line_items(data.products)
        totals = self._persistable_totals(products)
        customer = self._with_shipping_default(data.customer)
        status = data.status or self.config.default_status

        year = now_utc().year
        invoice_number = self.allocator.allocate(user_id, company.id, year)

        try:
            invoice = self._insert(
                invoice_number, user_id, company.id, data, customer, products, totals, status
            )
        except pg_errors.UniqueViolation:
            fallback = self.allocator.fallback_number(year)
            logger.warning(
                f"Invoice number {invoice_number} already exists, retrying as {fallback}"
            )
            try:
                invoice = self._insert(
                    fallback, user_id, company.id, data, customer, products, totals, status
                )
            except pg_errors.UniqueViolation as e:
                raise DuplicateInvoiceError(
                    "Invoice number already exists. Please try again."
                ) from e

        logger.info(
            f"Invoice {invoice.invoice_number} created: {len(products)} items, "
            f"grand total {invoice.grand_total}"
        )
        return invoice

    def next_invoice_number(self) -> str:
        """
        Preview the number the next invoice will most likely get.

        Nothing is reserved; create() allocates again.
        """
        company = self.company_service.require()
        return self.allocator.allocate(get_current_user_id(), company.id)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Returns:
            Invoice if it exists and belongs to the current user, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s AND user_id = %s",
            (invoice_id, get_current_user_id())
        )

        if row is None:
            return None

        return Invoice.model_validate(row)

    def list(self, filters: InvoiceListFilters) -> InvoicePage:
        """
        List the current user's invoices with filtering, sorting and paging.

        Args:
            filters: status, customer name substring, invoice date range,
                sort field/order, page and page size

        Returns:
            One page of invoices plus pagination metadata
        """
        limit = min(filters.limit, self.config.max_page_size)
        offset = (filters.page - 1) * limit

        conditions = ["user_id = %s"]
        params: list = [get_current_user_id()]

        if filters.status is not None:
            conditions.append("status = %s")
            params.append(filters.status)
        if filters.customer_name:
            conditions.append("customer->>'name' ILIKE %s")
            params.append(f"%{_escape_like(filters.customer_name)}%")
        if filters.start_date is not None:
            conditions.append("invoice_date >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            conditions.append("invoice_date <= %s")
            params.append(filters.end_date)

        where = " AND ".join(conditions)
        # sort_by and sort_order are Literal-validated, safe to interpolate
        direction = "DESC" if filters.sort_order == "desc" else "ASC"

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM invoices WHERE {where}",
            tuple(params)
        ) or 0

        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            WHERE {where}
            ORDER BY {filters.sort_by} {direction}, id
            LIMIT %s OFFSET %s
            """,
            tuple(params + [limit, offset])
        )

        return InvoicePage(
            invoices=[Invoice.model_validate(row) for row in rows],
            pagination=Pagination(
                page=filters.page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit),
            ),
        )

    def dashboard_stats(self, today: date | None = None) -> DashboardStats:
        """
        Headline counts and amounts across all of the user's invoices.

        Pending means draft, generated or sent. Monthly and yearly revenue
        count every invoice dated in the current month/year.
        """
        today = today or today_utc()
        month_start = today.replace(day=1)
        year_start = date(today.year, 1, 1)

        rows = self.postgres.execute(
            "SELECT status, grand_total, invoice_date FROM invoices WHERE user_id = %s",
            (get_current_user_id(),)
        )

        counts = {"paid": 0, "overdue": 0, "pending": 0}
        total_amount = paid_amount = pending_amount = _ZERO
        monthly_revenue = yearly_revenue = _ZERO

        for row in rows:
            status = InvoiceStatus(row["status"])
            amount = row["grand_total"] or _ZERO
            total_amount += amount

            if status == InvoiceStatus.PAID:
                counts["paid"] += 1
                paid_amount += amount
            elif status == InvoiceStatus.OVERDUE:
                counts["overdue"] += 1
            elif status in PENDING_STATUSES:
                counts["pending"] += 1
                pending_amount += amount

            if row["invoice_date"] >= month_start:
                monthly_revenue += amount
            if row["invoice_date"] >= year_start:
                yearly_revenue += amount

        if total_amount > 0:
            rate = (paid_amount / total_amount * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            collection_rate = float(rate)
        else:
            collection_rate = 0.0

        return DashboardStats(
            total=len(rows),
            paid=counts["paid"],
            overdue=counts["overdue"],
            pending=counts["pending"],
            total_amount=total_amount,
            paid_amount=paid_amount,
            pending_amount=pending_amount,
            monthly_revenue=monthly_revenue,
            yearly_revenue=yearly_revenue,
            collection_rate=collection_rate,
        )

    # -------------------------------------------------------------------------
    # Update / delete
    # -------------------------------------------------------------------------

    def _stamp_paid_at(self, status: InvoiceStatus, current: Invoice):
        if status == InvoiceStatus.PAID:
            return current.paid_at or now_utc()
        return current.paid_at

    def _apply_updates(self, invoice_id: UUID, set_values: dict) -> Invoice:
        set_parts = [f"{column} = %s" for column in set_values]
        params = list(set_values.values())

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend([invoice_id, get_current_user_id()])

        row = self.postgres.execute_returning(
            f"""
            UPDATE invoices
            SET {', '.join(set_parts)}
            WHERE id = %s AND user_id = %s
            RETURNING *
            """,
            tuple(params)
        )[0]

        return Invoice.model_validate(row)

    def update(self, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Update an invoice.

        New line items are re-priced and the totals recomputed. Customer
        fields are merged onto the stored snapshot. The due date rule is
        re-applied whenever either date changes.

        Raises:
            ValueError: If invoice not found
        """
        current = self.get_by_id(invoice_id)
        if current is None:
            raise ValueError(f"Invoice {invoice_id} not found")

        set_values = {}

        if data.products is not None:
            products = self.price_line_items(data.products)
            set_values["products"] = jsonb([p.model_dump() for p in products])
            set_values.update(asdict(self._persistable_totals(products)))

        if data.customer is not None:
            changes = {
                field: value
                for field, value in data.customer.model_dump(exclude_unset=True).items()
                if value is not None or field in _CLEARABLE_CUSTOMER_FIELDS
            }
            merged = current.customer.model_dump() | changes
            customer = self._with_shipping_default(CustomerSnapshot.model_validate(merged))
            set_values["customer"] = jsonb(customer.model_dump())

        if data.invoice_date is not None or data.due_date is not None:
            invoice_date = data.invoice_date or current.invoice_date
            set_values["invoice_date"] = invoice_date
            set_values["due_date"] = self._resolve_due_date(
                invoice_date, data.due_date or current.due_date
            )

        if data.payment_terms is not None:
            set_values["payment_terms"] = data.payment_terms
        if data.notes is not None:
            set_values["notes"] = data.notes

        if data.status is not None:
            set_values["status"] = data.status
            set_values["paid_at"] = self._stamp_paid_at(data.status, current)

        if not set_values:
            return current

        updated = self._apply_updates(invoice_id, set_values)
        logger.info(f"Invoice {updated.invoice_number} updated: {', '.join(sorted(set_values))}")
        return updated

    def update_status(self, invoice_id: UUID, status: InvoiceStatus) -> Invoice:
        """
        Move an invoice to any status. Marking it paid records paid_at.

        Raises:
            ValueError: If invoice not found
        """
        current = self.get_by_id(invoice_id)
        if current is None:
            raise ValueError(f"Invoice {invoice_id} not found")

        updated = self._apply_updates(invoice_id, {
            "status": status,
            "paid_at": self._stamp_paid_at(status, current),
        })

        logger.info(
            f"Invoice {updated.invoice_number} status {current.status.value} -> {status.value}"
        )
        return updated

    def delete(self, invoice_id: UUID) -> bool:
        """
        Permanently delete an invoice.

        Returns:
            True if deleted, False if not found
        """
        rows = self.postgres.execute_returning(
            "DELETE FROM invoices WHERE id = %s AND user_id = %s RETURNING invoice_number",
            (invoice_id, get_current_user_id())
        )

        if not rows:
            return False

        logger.info(f"Invoice {rows[0]['invoice_number']} deleted")
        return True
