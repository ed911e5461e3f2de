from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from ledger_cli.edits import (
    TransactionChanges,
    apply_changes,
    build_new_transaction,
    parse_amount,
    parse_property_flag,
)
from ledger_cli.errors import ValidationError
from tests.helpers.ledger_stub import FakeLedger, make_tx


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("code=1010", ("code", "1010")),
        ("address=Rua=1096", ("address", "Rua=1096")),
        ("gone=", ("gone", "")),
    ],
)
def test_parse_property_flag(raw: str, expected: tuple[str, str]):
    assert parse_property_flag(raw) == expected


@pytest.mark.parametrize("raw", ["novalue", "=x", " =x"])
def test_parse_property_flag_rejects_malformed(raw: str):
    with pytest.raises(ValueError, match="Invalid property format"):
        parse_property_flag(raw)


def test_parse_amount():
    assert parse_amount(" 12.50 ") == Decimal("12.50")
    for bad in ("abc", "", "NaN", "Infinity"):
        with pytest.raises(ValueError, match="Invalid amount"):
            parse_amount(bad)


def test_build_new_transaction_resolves_accounts_concurrently():
    ledger = FakeLedger()
    changes = TransactionChanges(
        date="2025-09-01",
        amount="7",
        from_account="Bank",
        to_account="Food",
        urls=["u1", "u2", "u1"],
        properties=["a=1", "b=2", "a="],
    )

    tx = asyncio.run(build_new_transaction(ledger, "book-1", changes))

    assert tx.id is None and tx.book_id == "book-1"
    assert tx.amount == Decimal("7")
    assert tx.credit_account is not None and tx.credit_account.id == "acc-bank"
    assert tx.debit_account is not None and tx.debit_account.id == "acc-food"
    assert tx.urls == ("u1", "u2")
    assert tx.properties == {"b": "2"}
    assert ledger.max_inflight == 2


def test_apply_changes_is_all_or_nothing():
    tx = make_tx("t1", description="Coffee", properties={"code": "X"})
    bad = TransactionChanges(description="Tea", amount="x", properties=["oops"])

    with pytest.raises(ValidationError) as ei:
        asyncio.run(apply_changes(FakeLedger(), tx, bad))

    assert ei.value.errors == [
        "Invalid amount: 'x'",
        'Invalid property format: "oops". Expected key=value',
    ]
    assert tx.description == "Coffee"
    assert tx.properties == {"code": "X"}


def test_apply_changes_replaces_urls_only_when_given():
    tx = make_tx("t1", urls=("old",))

    asyncio.run(apply_changes(FakeLedger(), tx, TransactionChanges(description="Tea")))
    assert tx.urls == ("old",) and tx.description == "Tea"

    asyncio.run(apply_changes(FakeLedger(), tx, TransactionChanges(urls=["new"])))
    assert tx.urls == ("new",)
