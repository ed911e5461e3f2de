# ruff: noqa: E501
from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import ledger_cli.cli as cli_mod
from ledger_cli.errors import LedgerApiError
from tests.helpers.ledger_stub import FakeLedger, make_tx

runner = CliRunner()


@pytest.fixture
def ledger(monkeypatch: pytest.MonkeyPatch) -> FakeLedger:
    fake = FakeLedger(
        make_tx("t1", urls=("a",), properties={"code": "X"}),
        make_tx("t2", urls=("b",), properties={"note": "y"}),
        make_tx("t3", amount="150"),
    )
    monkeypatch.setattr(cli_mod, "make_client", lambda settings: fake)
    return fake


def test_merge_json_output(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["--format", "json", "transaction", "merge", "t1", "t2", "-b", "book-1"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["revertedTransactionId"] == "t2"
    assert payload["auditRecord"] is None
    assert payload["mergedTransaction"]["urls"] == ["a", "b"]
    assert payload["mergedTransaction"]["properties"] == {"code": "X", "note": "y"}
    assert ledger.stored("t2").trashed is True


def test_merge_table_output(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "merge", "t1", "t2", "--book", "book-1"])

    assert result.exit_code == 0, result.output
    assert "Trashed transaction: t2" in result.output


def test_merge_conflict_exits_non_zero_without_writes(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "merge", "t1", "t3", "-b", "book-1"])

    assert result.exit_code == 1
    assert "Error merging transactions" in result.output
    assert "100" in result.output and "150" in result.output
    assert ledger.writes() == []


def test_merge_reports_both_missing_ids(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "merge", "x1", "x2", "-b", "book-1"])

    assert result.exit_code == 1
    assert "Transaction not found: x1" in result.output
    assert "Transaction not found: x2" in result.output


def test_merge_option_problems_are_reported_together(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "merge", "t1", "t2", "--keep", "oldest"])

    assert result.exit_code == 1
    assert "Missing required option: --book" in result.output
    assert "Unsupported --keep value" in result.output
    assert ledger.calls == []


def test_merge_keep_posted(monkeypatch: pytest.MonkeyPatch):
    fake = FakeLedger(make_tx("t1", posted=False), make_tx("t2", posted=True))
    monkeypatch.setattr(cli_mod, "make_client", lambda settings: fake)

    result = runner.invoke(
        cli_mod.app, ["-f", "json", "transaction", "merge", "t1", "t2", "-b", "book-1", "--keep", "posted"]
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["revertedTransactionId"] == "t1"


def test_write_failure_is_reported(ledger: FakeLedger):
    ledger.fail_on["trash_transaction"] = LedgerApiError(503, "unavailable")

    result = runner.invoke(cli_mod.app, ["transaction", "merge", "t1", "t2", "-b", "book-1"])

    assert result.exit_code == 1
    assert "503 unavailable" in result.output


def test_get_and_lifecycle_commands(ledger: FakeLedger):
    got = runner.invoke(cli_mod.app, ["-f", "json", "transaction", "get", "t1", "-b", "book-1"])
    assert got.exit_code == 0, got.output
    assert json.loads(got.output)["id"] == "t1"

    posted = runner.invoke(cli_mod.app, ["-f", "json", "transaction", "post", "t1", "-b", "book-1"])
    assert posted.exit_code == 0, posted.output
    assert json.loads(posted.output)["posted"] is True

    trashed = runner.invoke(cli_mod.app, ["-f", "json", "transaction", "trash", "t3", "-b", "book-1"])
    assert trashed.exit_code == 0, trashed.output
    assert ledger.stored("t3").trashed is True

    missing = runner.invoke(cli_mod.app, ["transaction", "check", "nope", "-b", "book-1"])
    assert missing.exit_code == 1
    assert "Error checking transaction: Transaction not found: nope" in missing.output


def test_list_requires_book_and_query(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "list"])
    assert result.exit_code == 1
    assert "--book" in result.output and "--query" in result.output

    ok = runner.invoke(cli_mod.app, ["-f", "csv", "transaction", "list", "-b", "book-1", "-q", "account:Bank"])
    assert ok.exit_code == 0, ok.output
    assert ok.output.splitlines()[0].startswith("Date,Amount")
    assert len(ok.output.splitlines()) == 4


def test_book_get(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["-f", "json", "book", "get", "book-1"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["name"] == "Test Book"


def test_invalid_format_is_rejected(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["-f", "xml", "book", "get", "book-1"])
    assert result.exit_code == 1
    assert "Unsupported format" in result.output


def test_format_from_dotenv(ledger: FakeLedger, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    # ``load_dotenv`` writes straight into os.environ; register the key so
    # monkeypatch removes it again after the test.
    monkeypatch.setenv("LEDGER_CLI_FORMAT", "")
    monkeypatch.delenv("LEDGER_CLI_FORMAT")
    (tmp_path / ".env").write_text("LEDGER_CLI_FORMAT=json\n", encoding="utf-8")

    result = runner.invoke(cli_mod.app, ["book", "get", "book-1"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["id"] == "book-1"


def test_create_transaction(ledger: FakeLedger):
    result = runner.invoke(
        cli_mod.app,
        [
            "-f", "json", "transaction", "create", "-b", "book-1",
            "--date", "2025-09-01", "--amount", "42.50", "--description", "Taxi",
            "--from", "Bank", "--to", "acc-food",
            "--url", "https://r/1", "--url", "https://r/1", "--remote-id", "bank-9",
            "-p", "code=T1", "-p", "empty=",
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["id"] == "new-1"
    assert payload["amount"] == "42.50"
    assert payload["creditAccount"] == {"id": "acc-bank", "name": "Bank"}
    assert payload["debitAccount"] == {"id": "acc-food", "name": "Food"}
    assert payload["urls"] == ["https://r/1"]
    assert payload["remoteIds"] == ["bank-9"]
    assert payload["properties"] == {"code": "T1"}
    assert ledger.stored("new-1").description == "Taxi"


def test_create_reports_missing_options_together(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "create", "-b", "book-1"])

    assert result.exit_code == 1
    assert "Missing required option: --date" in result.output
    assert "Missing required option: --amount" in result.output
    assert ledger.calls == []


def test_create_reports_every_invalid_value(ledger: FakeLedger):
    result = runner.invoke(
        cli_mod.app,
        [
            "transaction", "create", "-b", "book-1", "--date", "2025-09-01",
            "--amount", "abc", "--from", "Nope", "-p", "broken",
        ],
    )

    assert result.exit_code == 1
    assert "Invalid amount: 'abc'" in result.output
    assert "Credit account (--from) not found: Nope" in result.output
    assert 'Invalid property format: "broken". Expected key=value' in result.output
    assert [c for c in ledger.calls if c[0] == "create_transaction"] == []


def test_update_changes_only_given_fields(ledger: FakeLedger):
    result = runner.invoke(
        cli_mod.app,
        [
            "transaction", "update", "t1", "-b", "book-1",
            "--description", "Coffee beans", "--to", "Food",
            "-p", "code=", "-p", "note=n", "--url", "https://new",
        ],
    )

    assert result.exit_code == 0, result.output
    stored = ledger.stored("t1")
    assert stored.description == "Coffee beans"
    assert stored.debit_account is not None and stored.debit_account.id == "acc-food"
    assert stored.properties == {"note": "n"}
    assert stored.urls == ("https://new",)
    assert stored.date == "2025-08-10"
    assert str(stored.amount) == "100"


def test_update_with_unknown_account_writes_nothing(ledger: FakeLedger):
    result = runner.invoke(
        cli_mod.app, ["transaction", "update", "t1", "-b", "book-1", "--to", "Nope", "--amount", "5"]
    )

    assert result.exit_code == 1
    assert "Debit account (--to) not found: Nope" in result.output
    assert [c for c in ledger.calls if c[0] == "update_transaction"] == []
    assert str(ledger.stored("t1").amount) == "100"


def test_update_missing_transaction(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["transaction", "update", "nope", "-b", "book-1"])

    assert result.exit_code == 1
    assert "Error updating transaction: Transaction not found: nope" in result.output


def test_list_with_properties_column(ledger: FakeLedger):
    result = runner.invoke(
        cli_mod.app, ["-f", "json", "transaction", "list", "-b", "book-1", "-q", "x", "--properties"]
    )

    assert result.exit_code == 0, result.output
    records = {r["Id"]: r for r in json.loads(result.output)}
    assert records["t1"]["Properties"] == {"code": "X"}

    plain = runner.invoke(cli_mod.app, ["-f", "json", "transaction", "list", "-b", "book-1", "-q", "x"])
    assert "Properties" not in json.loads(plain.output)[0]


def test_verbose_logs_carry_command_context(ledger: FakeLedger):
    ledger.fail_on["trash_transaction"] = LedgerApiError(503, "unavailable")

    result = runner.invoke(cli_mod.app, ["-v", "transaction", "merge", "t1", "t2", "-b", "book-1"])

    assert result.exit_code == 1
    assert "ledger_cli.merge WARNING [book=book-1 tx=t1,t2] merge of t2 into t1 failed" in result.output


def test_unknown_log_level_is_rejected(ledger: FakeLedger):
    result = runner.invoke(cli_mod.app, ["--log-level", "chatty", "book", "get", "book-1"])

    assert result.exit_code == 1
    assert "Unknown log level: 'CHATTY'" in result.output
