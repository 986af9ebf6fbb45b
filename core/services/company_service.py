"""
Company service.

Each user has exactly one company (the seller printed on every invoice).
All operations are automatically scoped to the current user via RLS.
"""

import logging
from uuid import uuid4

from clients.postgres_client import PostgresClient, jsonb
from core.exceptions import AlreadyExistsError
from core.models import Company, CompanyCreate, CompanyUpdate
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {"name", "gst_number", "logo_url", "address", "contact"}
_JSONB_COLUMNS = {"address", "contact"}


class CompanyService:
    """Service for the user's company profile."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self) -> Company | None:
        """The current user's company, or None if not set up yet."""
        row = self.postgres.execute_single(
            "SELECT * FROM companies WHERE user_id = %s",
            (get_current_user_id(),)
        )

        if row is None:
            return None

        return Company.model_validate(row)

    def require(self) -> Company:
        """
        The current user's company.

        Raises:
            ValueError: If the company has not been set up
        """
        company = self.get()
        if company is None:
            raise ValueError("Company not found. Please set up your company details first.")
        return company

    def create(self, data: CompanyCreate) -> Company:
        """
        Set up the user's company.

        Raises:
            AlreadyExistsError: If the user already has a company
        """
        if self.get() is not None:
            raise AlreadyExistsError("Company already exists for this user")

        user_id = get_current_user_id()
        now = now_utc()

        row = self.postgres.execute_returning(
            """
            INSERT INTO companies (
                id, user_id, name, gst_number, logo_url,
                address, contact, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s,
                %s, %s, %s, %s
            )
            RETURNING *
            """,
            (
                uuid4(), user_id, data.name, data.gst_number, data.logo_url,
                jsonb(data.address.model_dump(mode="json")),
                jsonb(data.contact.model_dump(mode="json")),
                now, now
            )
        )[0]

        company = Company.model_validate(row)
        logger.info(f"Company {company.id} created")
        return company

    def update(self, data: CompanyUpdate) -> Company:
        """
        Update company fields. Only fields present in the request change;
        address and contact are merged onto the stored values.

        Raises:
            ValueError: If the company has not been set up
        """
        current = self.require()

        # A null top-level field leaves the column alone. Nulls inside address
        # and contact overwrite the stored value.
        updates = data.model_dump(mode="json", exclude_unset=True)
        valid_updates = {
            k: v for k, v in updates.items() if k in _UPDATABLE_COLUMNS and v is not None
        }
        if not valid_updates:
            return current

        set_parts = []
        params = []
        for field, value in valid_updates.items():
            if field in _JSONB_COLUMNS:
                merged = getattr(current, field).model_dump(mode="json") | value
                value = jsonb(merged)
            set_parts.append(f"{field} = %s")
            params.append(value)

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.append(current.id)

        row = self.postgres.execute_returning(
            f"""
            UPDATE companies
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            tuple(params)
        )[0]

        return Company.model_validate(row)
