"""Output rendering for CLI commands.

Three formats are supported:

- ``table``: ``rich`` tables for humans (key/value rows for a single item).
- ``json``: indented JSON, suitable for piping into ``jq``.
- ``csv``: comma-separated rows; single items are not tabular and fall back
  to JSON.

Tabular data is passed around as a matrix whose first row holds headers.
"""

from __future__ import annotations

import csv
import io
import json
import sys
from collections.abc import Iterable, Mapping, Sequence
from typing import IO, Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import Transaction, format_amount

NO_RESULTS = "No results found."

TRANSACTION_HEADERS: tuple[str, ...] = (
    "Date",
    "Amount",
    "From",
    "To",
    "Description",
    "Id",
    "Posted",
    "Checked",
)


def _stream(out: IO[str] | None) -> IO[str]:
    return out if out is not None else sys.stdout


def _console(stream: IO[str]) -> Console:
    # Piped output is not width-limited by a terminal.
    isatty = getattr(stream, "isatty", None)
    width = None if callable(isatty) and isatty() else 240
    return Console(file=stream, soft_wrap=True, width=width)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def transaction_matrix(
    transactions: Iterable[Transaction], *, include_properties: bool = False
) -> list[list[Any]]:
    """One row per transaction; ``include_properties`` adds a Properties column."""

    headers = list(TRANSACTION_HEADERS)
    if include_properties:
        headers.append("Properties")
    rows: list[list[Any]] = [headers]
    for tx in transactions:
        row: list[Any] = [
            tx.date,
            format_amount(tx.amount),
            tx.credit_account.label() if tx.credit_account else None,
            tx.debit_account.label() if tx.debit_account else None,
            tx.description,
            tx.id,
            tx.posted,
            tx.checked,
        ]
        if include_properties:
            row.append(dict(tx.properties))
        rows.append(row)
    return rows


def format_csv(matrix: Sequence[Sequence[Any]]) -> str:
    if len(matrix) <= 1:
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for row in matrix:
        writer.writerow([_cell(v) for v in row])
    return buf.getvalue().rstrip("\n")


def format_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def render_table(
    matrix: Sequence[Sequence[Any]], fmt: str, *, out: IO[str] | None = None
) -> None:
    """Render ``matrix`` (row 0 = headers) in ``fmt``."""

    stream = _stream(out)
    if fmt == "json":
        headers = [str(h) for h in matrix[0]] if matrix else []
        records = [dict(zip(headers, row, strict=False)) for row in matrix[1:]]
        stream.write(format_json(records) + "\n")
        return
    if fmt == "csv":
        stream.write((format_csv(matrix) or NO_RESULTS) + "\n")
        return

    if len(matrix) <= 1:
        stream.write(NO_RESULTS + "\n")
        return
    table = Table(show_edge=False, header_style="bold")
    for header in matrix[0]:
        table.add_column(str(header))
    for row in matrix[1:]:
        table.add_row(*(Text(_cell(v)) for v in row))
    _console(stream).print(table)


def render_item(item: Mapping[str, Any], fmt: str, *, out: IO[str] | None = None) -> None:
    """Render a single record as key/value rows, or as JSON."""

    stream = _stream(out)
    if fmt in {"json", "csv"}:
        stream.write(format_json(dict(item)) + "\n")
        return

    rows = [(k, _cell(v)) for k, v in item.items() if v not in (None, "", [], {})]
    if not rows:
        stream.write(NO_RESULTS + "\n")
        return
    table = Table(show_header=False, show_edge=False, box=None, pad_edge=False)
    table.add_column(style="bold")
    table.add_column()
    for key, value in rows:
        table.add_row(Text(str(key)), Text(value))
    _console(stream).print(table)


__all__ = [
    "NO_RESULTS",
    "TRANSACTION_HEADERS",
    "format_csv",
    "format_json",
    "render_item",
    "render_table",
    "transaction_matrix",
]
