"""Bank profile models. Printed on invoices as payment instructions."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AccountType(str, Enum):
    SAVINGS = "savings"
    CURRENT = "current"


class BankProfileUpsert(BaseModel):
    """Data required to save the user's bank details."""

    model_config = {"str_strip_whitespace": True}

    bank_name: str = Field(..., min_length=1, max_length=255)
    branch_name: str = Field(..., min_length=1, max_length=255)
    account_number: str = Field(..., min_length=1, max_length=34)
    ifsc_code: str = Field(..., min_length=1, max_length=11)
    account_holder_name: str = Field(..., min_length=1, max_length=255)
    account_type: AccountType = AccountType.SAVINGS
    upi_id: str = Field("", max_length=100)


class BankProfile(BaseModel):
    """
    Bank profile as stored.

    id and timestamps are None for the blank profile returned before the
    user has saved any details.
    """

    id: UUID | None = None
    user_id: UUID
    bank_name: str = ""
    branch_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""
    account_holder_name: str = ""
    account_type: AccountType = AccountType.SAVINGS
    upi_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
