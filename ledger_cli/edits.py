"""Field edits for ``transaction create`` and ``transaction update``.

Both commands take the same loosely typed options (strings from the command
line) and turn them into a :class:`~ledger_cli.models.Transaction`. Every
problem found along the way (bad amount, malformed ``key=value`` flag,
unknown account) is collected and raised once as a
:class:`~ledger_cli.errors.ValidationError`, before anything is written.

``--from``/``--to`` accept an account id or name and are resolved against the
book concurrently.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Protocol

from .aio import gather_settled
from .errors import raise_if_errors
from .logging_setup import get_logger
from .models import Account, Transaction

_LOG = get_logger("ledger_cli.edits")


class AccountLookup(Protocol):
    async def get_account(self, book_id: str, id_or_name: str) -> Account | None: ...


def parse_property_flag(raw: str) -> tuple[str, str]:
    """Split ``key=value`` on the first ``=``. An empty value means "delete"."""

    key, sep, value = raw.partition("=")
    if not sep:
        raise ValueError(f'Invalid property format: "{raw}". Expected key=value')
    if not key.strip():
        raise ValueError(f'Invalid property format: "{raw}". Key cannot be empty')
    return key, value


def parse_amount(raw: str) -> Decimal:
    text = raw.strip()
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {raw!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {raw!r}")
    return amount


@dataclass(frozen=True, slots=True)
class TransactionChanges:
    """Options given on the command line; ``None`` means "not given"."""

    date: str | None = None
    amount: str | None = None
    description: str | None = None
    from_account: str | None = None
    to_account: str | None = None
    urls: Sequence[str] | None = None
    remote_ids: Sequence[str] | None = None
    properties: Sequence[str] = ()


def apply_property_flags(
    properties: dict[str, str], flags: Sequence[str], errors: list[str]
) -> dict[str, str]:
    out = dict(properties)
    for raw in flags:
        try:
            key, value = parse_property_flag(raw)
        except ValueError as e:
            errors.append(str(e))
            continue
        if value == "":
            out.pop(key, None)
        else:
            out[key] = value
    return out


async def _resolve_accounts(
    client: AccountLookup, book_id: str, changes: TransactionChanges, errors: list[str]
) -> tuple[Account | None, Account | None]:
    async def _lookup(ref: str | None) -> Account | None:
        if ref is None:
            return None
        return await client.get_account(book_id, ref)

    credit, debit = await gather_settled(
        _lookup(changes.from_account), _lookup(changes.to_account), label="account lookup"
    )
    if changes.from_account is not None and credit is None:
        errors.append(f"Credit account (--from) not found: {changes.from_account}")
    if changes.to_account is not None and debit is None:
        errors.append(f"Debit account (--to) not found: {changes.to_account}")
    return credit, debit


async def build_new_transaction(
    client: AccountLookup, book_id: str, changes: TransactionChanges
) -> Transaction:
    """Return an unsaved transaction for ``book_id`` built from ``changes``."""

    errors: list[str] = []
    amount: Decimal | None = None
    if changes.amount is not None:
        try:
            amount = parse_amount(changes.amount)
        except ValueError as e:
            errors.append(str(e))

    credit, debit = await _resolve_accounts(client, book_id, changes, errors)
    properties = apply_property_flags({}, changes.properties, errors)
    raise_if_errors(errors)

    return Transaction(
        book_id=book_id,
        date=changes.date,
        amount=amount,
        description=changes.description or None,
        credit_account=credit,
        debit_account=debit,
        urls=tuple(dict.fromkeys(changes.urls or ())),
        remote_ids=tuple(dict.fromkeys(changes.remote_ids or ())),
        properties=properties,
    )


async def apply_changes(
    client: AccountLookup, tx: Transaction, changes: TransactionChanges
) -> Transaction:
    """Apply ``changes`` to ``tx`` in place; only given fields change.

    ``urls`` replaces the whole list when given. Nothing is modified when any
    change is invalid.
    """

    errors: list[str] = []
    amount = tx.amount
    if changes.amount is not None:
        try:
            amount = parse_amount(changes.amount)
        except ValueError as e:
            errors.append(str(e))

    credit, debit = await _resolve_accounts(client, tx.book_id or "", changes, errors)
    properties = apply_property_flags(tx.properties, changes.properties, errors)
    raise_if_errors(errors)

    if changes.date is not None:
        tx.date = changes.date
    if changes.description is not None:
        tx.description = changes.description
    if credit is not None:
        tx.credit_account = credit
    if debit is not None:
        tx.debit_account = debit
    if changes.urls is not None:
        tx.urls = tuple(dict.fromkeys(changes.urls))
    tx.amount = amount
    tx.properties = properties
    _LOG.debug("prepared update of transaction %s", tx.id)
    return tx


__all__ = [
    "AccountLookup",
    "TransactionChanges",
    "apply_changes",
    "apply_property_flags",
    "build_new_transaction",
    "parse_amount",
    "parse_property_flag",
]
