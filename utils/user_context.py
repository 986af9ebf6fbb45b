"""Propagate the invoicing account owner through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> UUID:
    """
    Get the owning user's ID from context.

    Raises RuntimeError if no user context is set. Every company, bank
    profile and invoice query is scoped to this user, so reaching here
    without one is a bug.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of an identified request."
        )
    return user_id


def set_current_user_id(user_id: UUID) -> None:
    """Bind the owning user for the current request."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """
    Clear user context.

    Must be called in a finally block so one request's owner never
    leaks into the next.
    """
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Temporarily act as a given user (tests, scripts, admin tooling).

    Example:
        with user_context(owner_id):
            invoices = invoice_service.list(InvoiceListFilters())
    """
    previous = _current_user_id.get()
    set_current_user_id(user_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous)
