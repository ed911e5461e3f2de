"""Transaction merge engine.

Collapses two transactions that represent the same economic event (for
example a duplicate import) into one. The flow is::

    load_transaction_pair -> TransactionMergeOperation (conflict gate,
    reconciliation) -> apply_merged_data -> commit_merge

- The designation of which transaction survives (edit) and which is retired
  (revert) is made once, by a :data:`DesignationPolicy`, and never re-derived.
- Only the amount gates a merge. Two transactions with different amounts are
  never merged: collapsing them would misstate the book.
- The commit issues the update and the trash concurrently. If only one of
  them lands, re-running the same merge is the recovery path; reconciliation
  is idempotent and an already-trashed revert transaction is not trashed
  again.

:func:`merge_transactions` wires the steps together and is what the CLI
calls.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from decimal import Decimal
from typing import Protocol, TypeAlias

from .aio import failures, gather_settled, raise_for_outcomes, settle
from .errors import MergeConflictError, MergeStateError, ValidationError
from .logging_setup import get_logger
from .models import Account, MergeResult, Transaction, format_amount
from .reconcile import MergedFields, reconcile_fields

_LOG = get_logger("ledger_cli.merge")


class LedgerGateway(Protocol):
    """The slice of :class:`~ledger_cli.client.LedgerClient` a merge needs."""

    async def get_transaction(self, book_id: str, transaction_id: str) -> Transaction | None: ...

    async def update_transaction(self, tx: Transaction) -> Transaction: ...

    async def trash_transaction(self, tx: Transaction) -> Transaction: ...


# ---------------------------------------------------------------------------
# Designation
# ---------------------------------------------------------------------------

DesignationPolicy: TypeAlias = Callable[[Transaction, Transaction], tuple[Transaction, Transaction]]
"""Return ``(edit, revert)`` for two loaded transactions."""


def first_argument_wins(first: Transaction, second: Transaction) -> tuple[Transaction, Transaction]:
    return first, second


def prefer_posted_then_newest(
    first: Transaction, second: Transaction
) -> tuple[Transaction, Transaction]:
    """Keep the posted transaction; between equals keep the newer one.

    Ties on both posting state and creation time keep ``first``.
    """

    if first.posted != second.posted:
        return (first, second) if first.posted else (second, first)
    if (first.created_at or 0) < (second.created_at or 0):
        return second, first
    return first, second


DESIGNATION_POLICIES: dict[str, DesignationPolicy] = {
    "first": first_argument_wins,
    "posted": prefer_posted_then_newest,
}


# ---------------------------------------------------------------------------
# Conflict detection
# ---------------------------------------------------------------------------


def _amount_text(amount: Decimal | None) -> str:
    return format_amount(amount) if amount is not None else "(none)"


def detect_conflict(edit: Transaction, revert: Transaction) -> str | None:
    """Return a report when the two amounts differ, else ``None``.

    Amounts are compared as :class:`~decimal.Decimal` values, so ``100`` and
    ``100.00`` are equal. A missing amount only equals another missing amount.
    """

    a, b = edit.amount, revert.amount
    if a is None and b is None:
        return None
    if a is not None and b is not None and a == b:
        return None
    return (
        f"Cannot merge transactions with different amounts: "
        f"{_amount_text(a)} vs {_amount_text(b)}. "
        "Please reconcile amounts manually before merging."
    )


def _account_text(acc: Account | None) -> str:
    return acc.label() if acc is not None and acc.is_present else "(none)"


def same_account(a: Account, b: Account) -> bool:
    """Whether two references name the same account.

    The ledger may report an account by id only (legacy payloads) or by id
    and name; when both sides carry an id, the id decides.
    """

    if a.id and b.id:
        return a.id == b.id
    return a == b


def describe_differences(edit: Transaction, revert: Transaction) -> tuple[str, ...]:
    """Non-blocking notes on date, description and account differences."""

    notes: list[str] = []
    if (edit.date or "") != (revert.date or ""):
        notes.append(f"date: {edit.date or '(none)'} kept, {revert.date or '(none)'} discarded")
    if (edit.description or "") != (revert.description or ""):
        notes.append(
            f"description: {edit.description or '(none)'!r} kept, "
            f"{revert.description or '(none)'!r} discarded"
        )
    for side in ("credit", "debit"):
        mine: Account | None = getattr(edit, f"{side}_account")
        theirs: Account | None = getattr(revert, f"{side}_account")
        if mine is None or not mine.is_present or theirs is None or not theirs.is_present:
            continue
        if not same_account(mine, theirs):
            notes.append(
                f"{side} account: {_account_text(mine)} kept, {_account_text(theirs)} discarded"
            )
    return tuple(notes)


# ---------------------------------------------------------------------------
# Merge operation
# ---------------------------------------------------------------------------


class MergeState(enum.Enum):
    VALIDATING = "validating"
    BLOCKED = "blocked"
    RECONCILED = "reconciled"
    APPLYING = "applying"
    COMMITTED = "committed"
    FAILED = "failed"


class TransactionMergeOperation:
    """Designation, conflict report and reconciled fields for one merge.

    Everything is computed at construction. The loaded transactions are left
    untouched until :meth:`apply_merged_data` is called, and that call is
    refused when ``conflict_report`` is set.
    """

    def __init__(
        self,
        first: Transaction,
        second: Transaction,
        *,
        policy: DesignationPolicy = first_argument_wins,
    ) -> None:
        self.state = MergeState.VALIDATING
        edit, revert = policy(first, second)
        if not ({id(edit), id(revert)} == {id(first), id(second)} and edit is not revert):
            raise ValueError("designation policy must return both input transactions")

        self.edit_transaction: Transaction = edit
        self.revert_transaction: Transaction = revert
        self.conflict_report: str | None = detect_conflict(edit, revert)
        self.field_differences: tuple[str, ...] = describe_differences(edit, revert)
        self.merged_fields: MergedFields | None = (
            None if self.conflict_report is not None else reconcile_fields(edit, revert)
        )
        # A re-run after a partial commit finds the edit side already merged.
        self.already_merged: bool = (
            self.merged_fields is not None and self.merged_fields.matches(edit)
        )
        self.applied = False
        self.state = (
            MergeState.BLOCKED if self.conflict_report is not None else MergeState.RECONCILED
        )

    def conflict_error(self) -> MergeConflictError:
        if self.conflict_report is None:
            raise MergeStateError("operation has no amount conflict")
        return MergeConflictError(
            self.conflict_report,
            edit_amount=self.edit_transaction.amount,
            revert_amount=self.revert_transaction.amount,
        )

    def apply_merged_data(self) -> None:
        """Write the reconciled fields onto the edit transaction (once)."""

        if self.conflict_report is not None:
            raise self.conflict_error()
        if self.applied:
            raise MergeStateError("merged data was already applied to this operation")
        merged = self.merged_fields
        if merged is None:
            raise MergeStateError("operation has no reconciled fields to apply")

        edit = self.edit_transaction
        edit.urls = merged.urls
        edit.attachments = merged.attachments
        edit.remote_ids = merged.remote_ids
        edit.properties = dict(merged.properties)
        edit.credit_account = merged.credit_account
        edit.debit_account = merged.debit_account
        self.applied = True


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


async def load_transaction_pair(
    client: LedgerGateway, book_id: str, first_id: str, second_id: str
) -> tuple[Transaction, Transaction]:
    """Fetch both transactions concurrently and report every problem at once."""

    errors: list[str] = []
    if first_id.strip() and first_id == second_id:
        errors.append(f"Cannot merge a transaction with itself: {first_id}")

    async def _lookup(transaction_id: str) -> Transaction | None:
        if not transaction_id.strip():
            return None
        return await client.get_transaction(book_id, transaction_id)

    first, second = await gather_settled(
        _lookup(first_id), _lookup(second_id), label="transaction lookup"
    )

    for tid, tx in ((first_id, first), (second_id, second)):
        if tx is None:
            errors.append(
                f"Transaction not found: {tid}" if tid.strip() else "Missing transaction id"
            )
    if errors:
        raise ValidationError(errors)

    for tx in (first, second):
        if not tx.book_id:
            tx.book_id = book_id
    return first, second


# ---------------------------------------------------------------------------
# Applier
# ---------------------------------------------------------------------------


async def commit_merge(client: LedgerGateway, operation: TransactionMergeOperation) -> MergeResult:
    """Update the edit transaction and trash the revert transaction."""

    if operation.conflict_report is not None:
        raise operation.conflict_error()
    if not operation.applied:
        raise MergeStateError("apply_merged_data() must be called before committing")
    if operation.state is not MergeState.RECONCILED:
        raise MergeStateError(f"cannot commit a merge in state {operation.state.value}")

    edit = operation.edit_transaction
    revert = operation.revert_transaction
    operation.state = MergeState.APPLYING

    if operation.already_merged:
        _LOG.info("transaction %s already carries the merged data", edit.id)
    writes = [client.update_transaction(edit)]
    if revert.trashed:
        _LOG.info("transaction %s is already trashed; skipping trash", revert.id)
    else:
        writes.append(client.trash_transaction(revert))

    outcomes = await settle(*writes)
    errors = failures(outcomes)
    if errors:
        operation.state = MergeState.FAILED
        update_ok = not isinstance(outcomes[0], BaseException)
        trash_ok = len(outcomes) < 2 or not isinstance(outcomes[1], BaseException)
        _LOG.warning(
            "merge of %s into %s failed (update %s, trash %s); re-run the merge to finish",
            revert.id,
            edit.id,
            "ok" if update_ok else "failed",
            "ok" if trash_ok else "failed",
        )
        raise_for_outcomes(outcomes, label="merge commit")

    operation.state = MergeState.COMMITTED
    _LOG.info("merged transaction %s into %s", revert.id, edit.id)
    return MergeResult(
        merged_transaction=outcomes[0],
        reverted_transaction_id=revert.id or "",
        field_differences=operation.field_differences,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def merge_transactions(
    client: LedgerGateway,
    book_id: str,
    first_id: str,
    second_id: str,
    *,
    policy: DesignationPolicy = first_argument_wins,
) -> MergeResult:
    """Merge two transactions of ``book_id`` and return the result.

    Raises
    ------
    ValidationError
        One or both ids do not resolve (every failing id is listed).
    MergeConflictError
        The amounts differ; nothing was written.
    LedgerApiError
        A remote write failed. When both writes fail an ``ExceptionGroup``
        carries the two errors.
    """

    first, second = await load_transaction_pair(client, book_id, first_id, second_id)
    operation = TransactionMergeOperation(first, second, policy=policy)
    if operation.conflict_report is not None:
        _LOG.info("merge blocked: %s", operation.conflict_report)
        raise operation.conflict_error()

    operation.apply_merged_data()
    return await commit_merge(client, operation)


__all__ = [
    "DESIGNATION_POLICIES",
    "DesignationPolicy",
    "LedgerGateway",
    "MergeState",
    "TransactionMergeOperation",
    "commit_merge",
    "describe_differences",
    "detect_conflict",
    "first_argument_wins",
    "load_transaction_pair",
    "merge_transactions",
    "prefer_posted_then_newest",
    "same_account",
]
