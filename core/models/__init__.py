"""Core domain models."""

from core.models.company import Company, CompanyCreate, CompanyUpdate, CompanyAddress, CompanyContact
from core.models.bank import BankProfile, BankProfileUpsert, AccountType
from core.models.invoice import (
    Address,
    CustomerSnapshot,
    CustomerSnapshotUpdate,
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

__all__ = [
    # Company
    "Company", "CompanyCreate", "CompanyUpdate", "CompanyAddress", "CompanyContact",
    # Bank
    "BankProfile", "BankProfileUpsert", "AccountType",
    # Invoice
    "Address", "CustomerSnapshot", "CustomerSnapshotUpdate",
    "LineItem", "LineItemInput",
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceStatus", "PENDING_STATUSES",
    "InvoiceListFilters", "InvoicePage", "Pagination", "InvoicePreview", "DashboardStats",
]
