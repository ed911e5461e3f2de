"""Field reconciliation for a transaction merge.

Given the surviving (edit) and retired (revert) transaction, compute the
field values to write onto the edit transaction. The computation is pure: no
remote calls, no mutation of either input, and the same two inputs always
produce the same :class:`MergedFields`.

Rules
-----
- urls and remote ids: union with exact-string dedup; edit's entries keep
  their order and the revert's new entries follow.
- attachments: union keyed by file id (source url when there is no id).
- properties: the edit transaction wins on every key it already has; keys
  only present on the revert side are added.
- accounts: a credit or debit reference missing on the edit side is filled
  from the revert side. A present reference is never replaced.
- date, description, amount: not part of the result; the edit transaction
  keeps its own values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .models import Account, Attachment, Transaction


@dataclass(frozen=True, slots=True)
class MergedFields:
    """The reconciled values to write onto the edit transaction."""

    urls: tuple[str, ...]
    attachments: tuple[Attachment, ...]
    remote_ids: tuple[str, ...]
    properties: Mapping[str, str]
    credit_account: Account | None
    debit_account: Account | None

    def matches(self, tx: Transaction) -> bool:
        """Whether ``tx`` already carries exactly these values."""

        return (
            tuple(tx.urls) == self.urls
            and tuple(tx.attachments) == self.attachments
            and tuple(tx.remote_ids) == self.remote_ids
            and dict(tx.properties) == dict(self.properties)
            and tx.credit_account == self.credit_account
            and tx.debit_account == self.debit_account
        )


def union_strings(first: Iterable[str], second: Iterable[str]) -> tuple[str, ...]:
    """Ordered union of two string collections (case-sensitive)."""

    seen: set[str] = set()
    out: list[str] = []
    for value in (*first, *second):
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return tuple(out)


def union_attachments(
    first: Iterable[Attachment], second: Iterable[Attachment]
) -> tuple[Attachment, ...]:
    """Ordered union of attachments keyed by id, or by url when id is absent.

    Attachments with neither id nor url cannot be compared; they are kept
    unless an identical value was already taken.
    """

    seen_keys: set[str] = set()
    out: list[Attachment] = []
    for att in (*first, *second):
        key = att.key
        if key is None:
            if att not in out:
                out.append(att)
            continue
        if key in seen_keys:
            continue
        seen_keys.add(key)
        out.append(att)
    return tuple(out)


def merge_properties(edit: Mapping[str, str], revert: Mapping[str, str]) -> dict[str, str]:
    merged = dict(edit)
    for key, value in revert.items():
        if key not in merged:
            merged[key] = value
    return merged


def _fill_gap(edit: Account | None, revert: Account | None) -> Account | None:
    if edit is not None and edit.is_present:
        return edit
    if revert is not None and revert.is_present:
        return Account(id=revert.id, name=revert.name)
    return edit


def reconcile_fields(edit: Transaction, revert: Transaction) -> MergedFields:
    return MergedFields(
        urls=union_strings(edit.urls, revert.urls),
        attachments=union_attachments(edit.attachments, revert.attachments),
        remote_ids=union_strings(edit.remote_ids, revert.remote_ids),
        properties=MappingProxyType(merge_properties(edit.properties, revert.properties)),
        credit_account=_fill_gap(edit.credit_account, revert.credit_account),
        debit_account=_fill_gap(edit.debit_account, revert.debit_account),
    )


__all__ = [
    "MergedFields",
    "merge_properties",
    "reconcile_fields",
    "union_attachments",
    "union_strings",
]
