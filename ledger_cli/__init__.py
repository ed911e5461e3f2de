"""Public interface for the ``ledger_cli`` package.

This module exposes the merge engine, the API client and the public
models/types as the stable import surface. There is no runtime logic here,
only symbol re-exports.
"""

from .client import LedgerClient
from .config import LedgerSettings
from .edits import TransactionChanges, apply_changes, build_new_transaction
from .errors import (
    ConfigError,
    LedgerApiError,
    LedgerError,
    MergeConflictError,
    MergeStateError,
    ValidationError,
)
from .merge import (
    MergeState,
    TransactionMergeOperation,
    commit_merge,
    describe_differences,
    detect_conflict,
    first_argument_wins,
    load_transaction_pair,
    merge_transactions,
    prefer_posted_then_newest,
    same_account,
)
from .models import Account, Attachment, Book, MergeResult, Transaction
from .reconcile import MergedFields, reconcile_fields

__all__ = [
    # Merge engine
    "merge_transactions",
    "load_transaction_pair",
    "detect_conflict",
    "describe_differences",
    "reconcile_fields",
    "commit_merge",
    "first_argument_wins",
    "prefer_posted_then_newest",
    "same_account",
    "TransactionMergeOperation",
    "MergeState",
    "MergedFields",
    # Transaction edits
    "TransactionChanges",
    "apply_changes",
    "build_new_transaction",
    # Client / config
    "LedgerClient",
    "LedgerSettings",
    # Models / types
    "Account",
    "Attachment",
    "Book",
    "MergeResult",
    "Transaction",
    # Errors
    "LedgerError",
    "ConfigError",
    "ValidationError",
    "MergeConflictError",
    "MergeStateError",
    "LedgerApiError",
]
