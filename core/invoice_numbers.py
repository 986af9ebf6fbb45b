"""
Invoice number allocation.

Numbers look like INV-2026-0042: a per-owner sequence within the calendar
year. The allocator is best effort. The (user_id, invoice_number) unique
index is what actually guarantees uniqueness; when the sequence cannot be
used the allocator hands out a timestamp form, INV-2026-F12345678.
"""

import logging
import re
from typing import Callable
from uuid import UUID

import psycopg2

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc, epoch_millis

logger = logging.getLogger(__name__)

INVOICE_NUMBER_PATTERN = re.compile(r"^INV-\d{4}-(\d{4}|F\d{8})$")

MAX_SEQUENCE = 9999


class InvoiceNumberAllocator:
    """Allocates the next invoice number from persisted history."""

    def __init__(self, postgres: PostgresClient, clock: Callable = now_utc):
        self.postgres = postgres
        self._clock = clock

    def fallback_number(self, year: int | None = None) -> str:
        """Timestamp form: last 8 digits of the epoch in milliseconds."""
        now = self._clock()
        year = year or now.year
        suffix = str(epoch_millis(now))[-8:]
        return f"INV-{year}-F{suffix}"

    def _highest_sequence(self, user_id: UUID, company_id: UUID, prefix: str) -> int:
        rows = self.postgres.execute(
            """
            SELECT invoice_number FROM invoices
            WHERE (user_id = %s OR company_id = %s) AND invoice_number LIKE %s
            """,
            (user_id, company_id, f"{prefix}%")
        )

        sequence_pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        for row in rows:
            match = sequence_pattern.match(row["invoice_number"])
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def allocate(self, user_id: UUID, company_id: UUID, year: int | None = None) -> str:
        """
        Allocate the next invoice number for an owner.

        Args:
            user_id: Owning user
            company_id: The owner's company
            year: Calendar year of the sequence (defaults to the current year)

        Returns:
            INV-{year}-{NNNN}, or INV-{year}-F{8 digits} when the sequence
            number is taken, exhausted, or history could not be read.
        """
        year = year or self._clock().year
        prefix = f"INV-{year}-"

        try:
            sequence = self._highest_sequence(user_id, company_id, prefix) + 1
            if sequence > MAX_SEQUENCE:
                logger.warning(f"Invoice sequence exhausted for {year}, using timestamp number")
                return self.fallback_number(year)

            candidate = f"{prefix}{sequence:04d}"
            taken = self.postgres.execute_scalar(
                "SELECT EXISTS (SELECT 1 FROM invoices WHERE user_id = %s AND invoice_number = %s)",
                (user_id, candidate)
            )
        except psycopg2.Error as e:
            logger.warning(f"Invoice number scan failed, using timestamp number: {e}")
            return self.fallback_number(year)

        if taken:
            logger.warning(f"Invoice number {candidate} already taken, using timestamp number")
            return self.fallback_number(year)

        return candidate
