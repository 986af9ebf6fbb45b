"""
Bank profile service.

One bank profile per user, printed on invoices as payment instructions.
Saving is an upsert: the first save creates the profile, later saves
overwrite it.
"""

import logging
from uuid import uuid4

from clients.postgres_client import PostgresClient
from core.models import BankProfile, BankProfileUpsert
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class BankService:
    """Service for the user's bank profile."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self) -> BankProfile:
        """
        The current user's bank profile.

        Returns a blank, unsaved profile when nothing has been stored yet,
        so the form always has something to bind to.
        """
        user_id = get_current_user_id()
        row = self.postgres.execute_single(
            "SELECT * FROM bank_profiles WHERE user_id = %s",
            (user_id,)
        )

        if row is None:
            return BankProfile(user_id=user_id)

        return BankProfile.model_validate(row)

    def upsert(self, data: BankProfileUpsert) -> BankProfile:
        """
        Create or replace the user's bank details.

        Args:
            data: Complete bank details (required fields validated by the model)

        Returns:
            The stored profile
        """
        user_id = get_current_user_id()
        now = now_utc()

        row = self.postgres.execute_returning(
            """
            INSERT INTO bank_profiles (
                id, user_id, bank_name, branch_name, account_number,
                ifsc_code, account_holder_name, account_type, upi_id,
                created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s
            )
            ON CONFLICT (user_id) DO UPDATE SET
                bank_name = EXCLUDED.bank_name,
                branch_name = EXCLUDED.branch_name,
                account_number = EXCLUDED.account_number,
                ifsc_code = EXCLUDED.ifsc_code,
                account_holder_name = EXCLUDED.account_holder_name,
                account_type = EXCLUDED.account_type,
                upi_id = EXCLUDED.upi_id,
                updated_at = EXCLUDED.updated_at
            RETURNING *
            """,
            (
                uuid4(), user_id, data.bank_name, data.branch_name, data.account_number,
                data.ifsc_code.upper(), data.account_holder_name, data.account_type, data.upi_id,
                now, now
            )
        )[0]

        profile = BankProfile.model_validate(row)
        logger.info(f"Bank profile {profile.id} saved")
        return profile
