"""Typed exceptions for invoicing failures that are not plain validation errors."""


class InvoicingError(Exception):
    """Base class for invoicing errors."""


class AlreadyExistsError(InvoicingError):
    """The record is one-per-user and the user already has one."""


class DuplicateInvoiceError(AlreadyExistsError):
    """
    The invoice number collided with an existing one, twice.

    Raised only after the timestamp fallback number also hit the unique
    index. The client should simply retry.
    """
