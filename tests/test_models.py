from __future__ import annotations

from decimal import Decimal

import pydantic
import pytest

from ledger_cli.models import Account, MergeResult, Transaction, format_amount
from tests.helpers.ledger_stub import make_tx


def test_amount_is_parsed_exactly():
    tx = Transaction.from_payload({"id": "t1", "amount": "0.10000000000000001"})
    assert tx.amount == Decimal("0.10000000000000001")


def test_float_amount_is_rejected():
    with pytest.raises(pydantic.ValidationError):
        Transaction.from_payload({"id": "t1", "amount": 0.1})


def test_blank_amount_is_missing():
    assert Transaction.from_payload({"id": "t1", "amount": "  "}).amount is None


def test_null_collections_become_empty():
    tx = Transaction.from_payload(
        {"id": "t1", "urls": None, "files": None, "remoteIds": None, "properties": None}
    )
    assert tx.urls == () and tx.attachments == () and tx.remote_ids == ()
    assert tx.properties == {}


def test_legacy_account_id_fields_fill_references():
    tx = Transaction.from_payload(
        {"id": "t1", "creditAccountId": "acc-1", "debitAccount": {"id": "acc-2", "name": "Food"}}
    )
    assert tx.credit_account == Account(id="acc-1")
    assert tx.debit_account == Account(id="acc-2", name="Food")
    assert "creditAccountId" not in tx.extra


def test_format_amount_never_uses_exponent():
    assert format_amount(Decimal("1E+2")) == "100"
    assert format_amount(None) is None


def test_merge_result_payload_shape():
    result = MergeResult(
        merged_transaction=make_tx("t1"),
        reverted_transaction_id="t2",
        field_differences=("date: 2025-01-01 kept, 2025-01-02 discarded",),
    )
    payload = result.to_payload()
    assert payload["revertedTransactionId"] == "t2"
    assert payload["auditRecord"] is None
    assert payload["mergedTransaction"]["amount"] == "100"
    assert payload["fieldDifferences"] == ["date: 2025-01-01 kept, 2025-01-02 discarded"]
