"""Domain types for ``ledger_cli``.

The ledger API's JSON is parsed through :mod:`ledger_cli.wire` and turned into
the plain dataclasses below. Collections on :class:`Transaction` are stored as
tuples (urls, attachments, remote ids) so that two transactions never share a
mutable list by accident; ``properties`` is a dict owned by its transaction.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .wire import TRANSACTION_KNOWN_KEYS, BookPayload, TransactionPayload

# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Account:
    """Reference to a ledger account as embedded in a transaction."""

    id: str | None = None
    name: str | None = None

    @property
    def is_present(self) -> bool:
        return bool(self.id or self.name)

    def label(self) -> str:
        return self.name or self.id or ""

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        if self.name is not None:
            out["name"] = self.name
        return out


@dataclass(frozen=True, slots=True)
class Attachment:
    """A file attached to a transaction.

    Identity is the file id when the ledger assigned one, otherwise the
    source url. Two attachments with the same identity are the same file.
    """

    id: str | None = None
    name: str | None = None
    url: str | None = None
    content_type: str | None = None

    @property
    def key(self) -> str | None:
        return self.id or self.url

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        if self.name is not None:
            out["name"] = self.name
        if self.url is not None:
            out["url"] = self.url
        if self.content_type is not None:
            out["contentType"] = self.content_type
        return out


def format_amount(amount: Decimal | None) -> str | None:
    """Render ``amount`` in plain notation (never scientific)."""

    if amount is None:
        return None
    return format(amount, "f")


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Transaction:
    """A single dated monetary posting between a credit and a debit account.

    ``extra`` holds payload keys this package does not model; they are sent
    back untouched on update.
    """

    id: str | None = None
    book_id: str | None = None
    date: str | None = None
    amount: Decimal | None = None
    description: str | None = None
    credit_account: Account | None = None
    debit_account: Account | None = None
    urls: tuple[str, ...] = ()
    attachments: tuple[Attachment, ...] = ()
    remote_ids: tuple[str, ...] = ()
    properties: dict[str, str] = field(default_factory=dict)
    posted: bool = False
    checked: bool = False
    trashed: bool = False
    created_at: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, book_id: str | None = None) -> Transaction:
        p = TransactionPayload.model_validate(dict(payload))

        credit = _account_from(p.credit_account, p.credit_account_id)
        debit = _account_from(p.debit_account, p.debit_account_id)

        return cls(
            id=p.id,
            book_id=p.book_id or book_id,
            date=p.date,
            amount=p.amount,
            description=p.description,
            credit_account=credit,
            debit_account=debit,
            urls=tuple(p.urls),
            attachments=tuple(
                Attachment(id=f.id, name=f.name, url=f.url, content_type=f.content_type)
                for f in p.files
            ),
            remote_ids=tuple(p.remote_ids),
            properties=dict(p.properties),
            posted=p.posted,
            checked=p.checked,
            trashed=p.trashed,
            created_at=p.created_at,
            extra={k: v for k, v in payload.items() if k not in TRANSACTION_KNOWN_KEYS},
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the ledger JSON shape for this transaction."""

        out: dict[str, Any] = dict(self.extra)
        if self.id is not None:
            out["id"] = self.id
        if self.book_id is not None:
            out["bookId"] = self.book_id
        if self.date is not None:
            out["date"] = self.date
        if self.amount is not None:
            out["amount"] = format_amount(self.amount)
        if self.description is not None:
            out["description"] = self.description
        if self.credit_account is not None and self.credit_account.is_present:
            out["creditAccount"] = self.credit_account.to_payload()
        if self.debit_account is not None and self.debit_account.is_present:
            out["debitAccount"] = self.debit_account.to_payload()
        out["urls"] = list(self.urls)
        out["files"] = [a.to_payload() for a in self.attachments]
        out["remoteIds"] = list(self.remote_ids)
        out["properties"] = dict(self.properties)
        out["posted"] = self.posted
        out["checked"] = self.checked
        out["trashed"] = self.trashed
        if self.created_at is not None:
            out["createdAt"] = str(self.created_at)
        return out


def _account_from(obj: Any, legacy_id: str | None) -> Account | None:
    if obj is not None and (obj.id or obj.name):
        return Account(id=obj.id, name=obj.name)
    if legacy_id:
        return Account(id=legacy_id)
    return None


# ---------------------------------------------------------------------------
# Book
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Book:
    id: str
    name: str | None = None
    fraction_digits: int | None = None
    properties: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Book:
        p = BookPayload.model_validate(dict(payload))
        return cls(
            id=p.id,
            name=p.name,
            fraction_digits=p.fraction_digits,
            properties=dict(p.properties),
        )

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id}
        if self.name is not None:
            out["name"] = self.name
        if self.fraction_digits is not None:
            out["fractionDigits"] = self.fraction_digits
        out["properties"] = dict(self.properties)
        return out


# ---------------------------------------------------------------------------
# Merge result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of a committed merge, handed back to the caller.

    Attributes
    ----------
    merged_transaction:
        The surviving transaction as returned by the ledger after update.
    reverted_transaction_id:
        Identifier of the transaction that was trashed.
    audit_record:
        Mirrors the conflict report at approval time. A blocked merge never
        reaches this point, so the value is ``None`` for every result.
    field_differences:
        Non-blocking notes about fields that differed between the two
        transactions (date, description, accounts). Informational only.
    """

    merged_transaction: Transaction
    reverted_transaction_id: str
    audit_record: str | None = None
    field_differences: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "mergedTransaction": self.merged_transaction.to_payload(),
            "revertedTransactionId": self.reverted_transaction_id,
            "auditRecord": self.audit_record,
            "fieldDifferences": list(self.field_differences),
        }


__all__ = [
    "Account",
    "Attachment",
    "Book",
    "MergeResult",
    "Transaction",
    "format_amount",
]
