"""Typer-based console interface for ``ledger_cli``.

Commands are grouped by entity (``book``, ``transaction``). The root callback
loads ``.env`` from the current working directory (without overriding
variables already set), configures logging once, and resolves
:class:`~ledger_cli.config.LedgerSettings`. Each command opens one
:class:`~ledger_cli.client.LedgerClient`, runs its coroutine with
``asyncio.run`` and renders the result in the selected output format.

Errors are written to stderr as ``Error <action>: <message>`` and the
process exits with status 1.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, TypeVar

import typer

from .client import LedgerClient
from .config import OUTPUT_FORMATS, LedgerSettings, load_env_file
from .edits import TransactionChanges, apply_changes, build_new_transaction
from .errors import LedgerError, ValidationError, raise_if_errors
from .logging_setup import configure_logging, get_logger, level_for_verbosity, log_context
from .merge import DESIGNATION_POLICIES, merge_transactions
from .models import Transaction
from .render import render_item, render_table, transaction_matrix

_LOG = get_logger("ledger_cli.cli")

T = TypeVar("T")


# ---- Small module-level helpers used by CLI commands -------------------------


def make_client(settings: LedgerSettings) -> LedgerClient:
    """Build the API client for a command (tests replace this factory)."""

    return LedgerClient(settings)


def _state(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.find_root().obj
    if not isinstance(obj, dict) or "settings" not in obj:
        raise typer.Exit(1)
    return obj


def _require(**options: tuple[Any, str]) -> None:
    """Collect every missing required option into one ``ValidationError``."""

    raise_if_errors(
        [
            f"Missing required option: {flag}"
            for value, flag in options.values()
            if value is None or (isinstance(value, str) and not value.strip())
        ]
    )


def _report(label: str, err: BaseException) -> None:
    if isinstance(err, ExceptionGroup):
        typer.echo(f"Error {label}: {err.message}", err=True)
        for sub in err.exceptions:
            typer.echo(f"  - {sub}", err=True)
        return
    typer.echo(f"Error {label}: {err}", err=True)


def _run(
    ctx: typer.Context,
    label: str,
    action: Callable[[LedgerClient], Awaitable[T]],
    **context: str | None,
) -> T:
    """Run ``action`` against a fresh client; report failures and exit 1.

    ``context`` (book and transaction ids) tags every log record emitted
    while the action runs.
    """

    settings: LedgerSettings = _state(ctx)["settings"]

    async def _go() -> T:
        with log_context(**context):
            async with make_client(settings) as client:
                return await action(client)

    try:
        return asyncio.run(_go())
    except (LedgerError, ExceptionGroup) as e:
        _report(label, e)
        raise typer.Exit(1) from e
    except Exception as e:
        _LOG.debug("unexpected failure while %s", label, exc_info=True)
        _report(label, e)
        raise typer.Exit(1) from e


def _fail(label: str, err: LedgerError) -> None:
    _report(label, err)
    raise typer.Exit(1)


async def _fetch(client: LedgerClient, book_id: str, transaction_id: str) -> Transaction:
    tx = await client.get_transaction(book_id, transaction_id)
    if tx is None:
        raise ValidationError([f"Transaction not found: {transaction_id}"])
    return tx


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
BOOK_OPTION = typer.Option("--book", "-b", help="Book ID")


# ---- Typer apps ---------------------------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Command-line client for a remote double-entry bookkeeping service.",
)
book_app = typer.Typer(no_args_is_help=True, help="Inspect books.")
transaction_app = typer.Typer(no_args_is_help=True, help="Manage transactions.")
app.add_typer(book_app, name="book")
app.add_typer(transaction_app, name="transaction")


@app.callback()
def _root(
    ctx: typer.Context,
    output_format: Annotated[
        str | None,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table, json or csv (default: LEDGER_CLI_FORMAT or table).",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(help="Log level (falls back to LEDGER_CLI_LOG_LEVEL)."),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="-v for INFO, -vv for DEBUG."),
    ] = 0,
) -> None:
    """Root command: load ``.env``, configure logging and resolve settings."""

    # Load environment from .env in CWD (override=False to keep existing env)
    load_env_file()

    # Central logging setup so child loggers inherit configuration
    try:
        configure_logging(log_level if log_level is not None else level_for_verbosity(verbose))
    except ValueError as e:
        _fail("parsing options", ValidationError([str(e)]))

    try:
        settings = LedgerSettings.from_env()
    except LedgerError as e:
        _fail("loading configuration", e)

    fmt = (output_format or settings.output_format).strip().lower()
    if fmt not in OUTPUT_FORMATS:
        _fail(
            "parsing options",
            ValidationError(
                [f"Unsupported format: {fmt!r}. Allowed: {', '.join(OUTPUT_FORMATS)}"]
            ),
        )
    ctx.obj = {"settings": settings, "format": fmt}


# ---- book ---------------------------------------------------------------------


@book_app.command("get")
def book_get(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book ID")],
) -> None:
    """Show a book."""

    book = _run(ctx, "getting book", lambda client: client.get_book(book_id), book=book_id)
    render_item(book.to_payload(), _state(ctx)["format"])


# ---- transaction --------------------------------------------------------------

# Options shared by ``create`` and ``update``.
DATE_OPTION = typer.Option("--date", help="Transaction date")
AMOUNT_OPTION = typer.Option("--amount", help="Transaction amount")
DESCRIPTION_OPTION = typer.Option("--description", help="Transaction description")
FROM_OPTION = typer.Option("--from", help="Credit account (source), by id or name")
TO_OPTION = typer.Option("--to", help="Debit account (destination), by id or name")
PROPERTY_OPTION = typer.Option(
    "--property", "-p", help="Set a property as key=value (repeatable, empty value deletes)"
)


@transaction_app.command("get")
def transaction_get(
    ctx: typer.Context,
    transaction_id: Annotated[str, typer.Argument(help="Transaction ID")],
    book: Annotated[str | None, BOOK_OPTION] = None,
) -> None:
    """Show a transaction."""

    try:
        _require(book=(book, "--book"))
    except ValidationError as e:
        _fail("getting transaction", e)
    tx = _run(
        ctx,
        "getting transaction",
        lambda client: _fetch(client, book, transaction_id),
        book=book,
        tx=transaction_id,
    )
    render_item(tx.to_payload(), _state(ctx)["format"])


@transaction_app.command("list")
def transaction_list(
    ctx: typer.Context,
    book: Annotated[str | None, BOOK_OPTION] = None,
    query: Annotated[str | None, typer.Option("--query", "-q", help="Search query")] = None,
    limit: Annotated[int, typer.Option(min=1, max=1000, help="Maximum rows")] = 100,
    properties: Annotated[
        bool, typer.Option("--properties", "-p", help="Include custom properties")
    ] = False,
) -> None:
    """List transactions matching a query."""

    try:
        _require(book=(book, "--book"), query=(query, "--query"))
    except ValidationError as e:
        _fail("listing transactions", e)

    items, _cursor = _run(
        ctx,
        "listing transactions",
        lambda client: client.list_transactions(book, query, limit=limit),
        book=book,
    )
    render_table(
        transaction_matrix(items, include_properties=properties), _state(ctx)["format"]
    )


@transaction_app.command("create")
def transaction_create(
    ctx: typer.Context,
    book: Annotated[str | None, BOOK_OPTION] = None,
    date: Annotated[str | None, DATE_OPTION] = None,
    amount: Annotated[str | None, AMOUNT_OPTION] = None,
    description: Annotated[str | None, DESCRIPTION_OPTION] = None,
    from_account: Annotated[str | None, FROM_OPTION] = None,
    to_account: Annotated[str | None, TO_OPTION] = None,
    url: Annotated[list[str] | None, typer.Option("--url", help="URL (repeatable)")] = None,
    remote_id: Annotated[
        list[str] | None, typer.Option("--remote-id", help="Remote ID (repeatable)")
    ] = None,
    prop: Annotated[list[str] | None, PROPERTY_OPTION] = None,
) -> None:
    """Create a transaction."""

    label = "creating transaction"
    try:
        _require(book=(book, "--book"), date=(date, "--date"), amount=(amount, "--amount"))
    except ValidationError as e:
        _fail(label, e)

    changes = TransactionChanges(
        date=date,
        amount=amount,
        description=description,
        from_account=from_account,
        to_account=to_account,
        urls=url,
        remote_ids=remote_id,
        properties=prop or (),
    )

    async def _action(client: LedgerClient) -> Transaction:
        tx = await build_new_transaction(client, book, changes)
        return await client.create_transaction(tx)

    created = _run(ctx, label, _action, book=book)
    render_item(created.to_payload(), _state(ctx)["format"])


@transaction_app.command("update")
def transaction_update(
    ctx: typer.Context,
    transaction_id: Annotated[str, typer.Argument(help="Transaction ID")],
    book: Annotated[str | None, BOOK_OPTION] = None,
    date: Annotated[str | None, DATE_OPTION] = None,
    amount: Annotated[str | None, AMOUNT_OPTION] = None,
    description: Annotated[str | None, DESCRIPTION_OPTION] = None,
    from_account: Annotated[str | None, FROM_OPTION] = None,
    to_account: Annotated[str | None, TO_OPTION] = None,
    url: Annotated[
        list[str] | None, typer.Option("--url", help="URL (repeatable, replaces all)")
    ] = None,
    prop: Annotated[list[str] | None, PROPERTY_OPTION] = None,
) -> None:
    """Update the given fields of a transaction."""

    label = "updating transaction"
    try:
        _require(book=(book, "--book"))
    except ValidationError as e:
        _fail(label, e)

    changes = TransactionChanges(
        date=date,
        amount=amount,
        description=description,
        from_account=from_account,
        to_account=to_account,
        urls=url,
        properties=prop or (),
    )

    async def _action(client: LedgerClient) -> Transaction:
        tx = await _fetch(client, book, transaction_id)
        await apply_changes(client, tx, changes)
        return await client.update_transaction(tx)

    updated = _run(ctx, label, _action, book=book, tx=transaction_id)
    render_item(updated.to_payload(), _state(ctx)["format"])


def _lifecycle_command(name: str, label: str, method: str, doc: str) -> None:
    def command(
        ctx: typer.Context,
        transaction_id: Annotated[str, typer.Argument(help="Transaction ID")],
        book: Annotated[str | None, BOOK_OPTION] = None,
    ) -> None:
        try:
            _require(book=(book, "--book"))
        except ValidationError as e:
            _fail(label, e)

        async def _action(client: LedgerClient) -> Transaction:
            tx = await _fetch(client, book, transaction_id)
            return await getattr(client, method)(tx)

        result = _run(ctx, label, _action, book=book, tx=transaction_id)
        render_item(result.to_payload(), _state(ctx)["format"])

    command.__doc__ = doc
    transaction_app.command(name)(command)


_lifecycle_command("post", "posting transaction", "post_transaction", "Post a transaction.")
_lifecycle_command("check", "checking transaction", "check_transaction", "Check a transaction.")
_lifecycle_command("trash", "trashing transaction", "trash_transaction", "Trash a transaction.")


@transaction_app.command("merge")
def transaction_merge(
    ctx: typer.Context,
    first_id: Annotated[str, typer.Argument(help="Transaction to keep (by default)")],
    second_id: Annotated[str, typer.Argument(help="Transaction to merge in and trash")],
    book: Annotated[str | None, BOOK_OPTION] = None,
    keep: Annotated[
        str,
        typer.Option(
            help="Which transaction survives: 'first' (positional) or 'posted' "
            "(posted beats draft, then the newest)."
        ),
    ] = "first",
) -> None:
    """Merge two duplicate transactions into one and trash the other."""

    label = "merging transactions"
    problems: list[str] = []
    if book is None or not book.strip():
        problems.append("Missing required option: --book")
    policy = DESIGNATION_POLICIES.get(keep)
    if policy is None:
        problems.append(
            f"Unsupported --keep value: {keep!r}. Allowed: {', '.join(DESIGNATION_POLICIES)}"
        )
    if problems:
        _fail(label, ValidationError(problems))

    result = _run(
        ctx,
        label,
        lambda client: merge_transactions(client, book, first_id, second_id, policy=policy),
        book=book,
        tx=f"{first_id},{second_id}",
    )

    fmt = _state(ctx)["format"]
    if fmt in {"json", "csv"}:
        render_item(result.to_payload(), "json")
        return
    render_item(result.merged_transaction.to_payload(), "table")
    typer.echo(f"Trashed transaction: {result.reverted_transaction_id}")
    for note in result.field_differences:
        typer.echo(f"Note: {note}")


def main() -> None:  # pragma: no cover - console script entry point
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
