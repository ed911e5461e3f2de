"""Exception taxonomy for ``ledger_cli``.

Every error the package raises on purpose derives from :class:`LedgerError`
so the CLI can report it uniformly. Write failures from the remote ledger are
surfaced as :class:`LedgerApiError` and never recovered locally.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal


class LedgerError(Exception):
    """Base class for all ``ledger_cli`` errors."""


class ConfigError(LedgerError):
    """Invalid or incomplete configuration."""


class ValidationError(LedgerError):
    """One or more input problems, reported together.

    Commands collect every problem before raising so the user can fix all of
    them in a single pass. ``errors`` keeps the individual messages.
    """

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: list[str] = list(errors)
        if not self.errors:
            raise ValueError("ValidationError requires at least one error message")
        if len(self.errors) == 1:
            message = self.errors[0]
        else:
            message = "Validation failed:\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message)


def raise_if_errors(errors: list[str]) -> None:
    """Raise :class:`ValidationError` when ``errors`` is non-empty."""

    if errors:
        raise ValidationError(errors)


class MergeConflictError(LedgerError):
    """Two transactions cannot be merged because their amounts differ."""

    def __init__(
        self, report: str, *, edit_amount: Decimal | None, revert_amount: Decimal | None
    ) -> None:
        super().__init__(f"Cannot merge: amounts differ. {report}")
        self.report = report
        self.edit_amount = edit_amount
        self.revert_amount = revert_amount


class MergeStateError(LedgerError):
    """A merge operation was driven out of order (e.g. applied twice)."""


class LedgerApiError(LedgerError):
    """Non-2xx answer from the remote ledger API."""

    def __init__(self, status_code: int, message: str, *, url: str | None = None) -> None:
        detail = f"{status_code} {message}".strip()
        super().__init__(f"Ledger API error: {detail}" + (f" ({url})" if url else ""))
        self.status_code = status_code
        self.message = message
        self.url = url

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


__all__ = [
    "ConfigError",
    "LedgerApiError",
    "LedgerError",
    "MergeConflictError",
    "MergeStateError",
    "ValidationError",
    "raise_if_errors",
]
