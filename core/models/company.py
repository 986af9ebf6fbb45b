"""Company (seller) profile models. One company per user."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from core.gst import is_valid_gstin


class CompanyAddress(BaseModel):
    """Registered business address."""

    model_config = {"str_strip_whitespace": True}

    street: str = Field("", max_length=255)
    city: str = Field("", max_length=100)
    state: str = Field("", max_length=100)
    pincode: str = Field("", pattern=r"^(\d{6})?$")
    country: str = Field("India", max_length=100)


class CompanyContact(BaseModel):
    model_config = {"str_strip_whitespace": True}

    email: EmailStr | None = None
    phone: str = Field("", max_length=50)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


def _check_gst_number(value):
    if not isinstance(value, str):
        return value
    value = value.strip().upper()
    if not value or not is_valid_gstin(value):
        raise ValueError("gst_number must be a valid 15 character GSTIN")
    return value


class CompanyCreate(BaseModel):
    """Data required to set up the user's company."""

    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., min_length=1, max_length=255)
    gst_number: str = Field(..., max_length=15)
    logo_url: str = Field("", max_length=500)
    address: CompanyAddress = Field(default_factory=CompanyAddress)
    contact: CompanyContact = Field(default_factory=CompanyContact)

    @field_validator("gst_number", mode="before")
    @classmethod
    def validate_gst_number(cls, value):
        return _check_gst_number(value)


class CompanyUpdate(BaseModel):
    """Data that can be updated on the company. All fields optional."""

    model_config = {"str_strip_whitespace": True}

    name: str | None = Field(None, min_length=1, max_length=255)
    gst_number: str | None = Field(None, max_length=15)
    logo_url: str | None = Field(None, max_length=500)
    address: CompanyAddress | None = None
    contact: CompanyContact | None = None

    @field_validator("gst_number", mode="before")
    @classmethod
    def validate_gst_number(cls, value):
        return _check_gst_number(value)


class Company(BaseModel):
    """Full company entity as stored."""

    id: UUID
    user_id: UUID
    name: str
    gst_number: str
    logo_url: str
    address: CompanyAddress
    contact: CompanyContact
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
