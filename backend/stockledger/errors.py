# Overview: Error taxonomy shared by the ledger services and the HTTP routes.

"""
Ledger errors.

Every service failure is a LedgerError carrying a human-readable message,
an optional details dict, and the HTTP status the routes answer with.
Raising any of them inside a ledger transaction aborts it with no writes.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger operation failures."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationFailed(LedgerError):
    """Bad or missing input, non-positive totals, mismatched sums."""


class NotFound(LedgerError):
    """A referenced Account, Sell, Debt, DebtPayment or SKU does not exist."""

    status_code = 404


class OutOfStock(LedgerError):
    """Requested quantity exceeds what the SKU has available."""

    status_code = 409


class InvalidQuantity(OutOfStock):
    """
    A zero or negative line quantity.

    Reported through the stock reservation path, so callers handling
    OutOfStock see it too; it is still a client input problem (400).
    """

    status_code = 400


class Conflict(LedgerError):
    """Operation blocked by dependent records (e.g. a debt with payments)."""

    status_code = 409


class TransientStoreFailure(LedgerError):
    """Lock wait, timeout or write conflict that outlived the retry budget."""

    status_code = 503


class InternalLedgerError(LedgerError):
    """Unexpected store error."""

    status_code = 500
