"""Async client for the remote ledger REST API.

Thin wrapper over ``httpx.AsyncClient``. Each method maps to one endpoint and
returns domain objects from :mod:`ledger_cli.models`. Non-2xx answers raise
:class:`~ledger_cli.errors.LedgerApiError`; ``get_transaction`` is the one
call that turns a 404 into ``None`` because "not found" is an expected answer
when validating user-supplied ids.

Usage::

    async with LedgerClient(LedgerSettings.from_env()) as client:
        tx = await client.get_transaction(book_id, tx_id)
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from .config import AGENT_ID, LedgerSettings
from .errors import LedgerApiError
from .logging_setup import get_logger
from .models import Account, Book, Transaction
from .wire import AccountPayload, TransactionListPayload

_LOG = get_logger("ledger_cli.client")


def _seg(value: str) -> str:
    return quote(value, safe="")


def _error_message(resp: httpx.Response) -> str:
    """Best-effort extraction of the API's error message."""

    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if body.get("message"):
            return str(body["message"])
    return resp.reason_phrase


class LedgerClient:
    """Async REST client bound to one API base URL and credential set.

    Parameters
    ----------
    settings:
        Connection settings (base URL, credentials, timeout).
    transport:
        Optional ``httpx`` transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        settings: LedgerSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        headers = {"bkper-agent-id": AGENT_ID, "Accept": "application/json"}
        if settings.access_token:
            headers["Authorization"] = f"Bearer {settings.access_token}"
        params = {"key": settings.api_key} if settings.api_key else None
        self._http = httpx.AsyncClient(
            base_url=settings.api_url,
            headers=headers,
            params=params,
            timeout=settings.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---- transport ----------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        _LOG.debug("%s %s", method, path)
        resp = await self._http.request(method, path, json=json, params=params)
        if resp.status_code >= 400:
            raise LedgerApiError(resp.status_code, _error_message(resp), url=path)
        if not resp.content:
            return None
        return resp.json()

    # ---- books --------------------------------------------------------------

    async def get_book(self, book_id: str) -> Book:
        data = await self._request("GET", f"/v5/books/{_seg(book_id)}")
        return Book.from_payload(data)

    # ---- accounts -----------------------------------------------------------

    async def get_account(self, book_id: str, id_or_name: str) -> Account | None:
        """Resolve an account by id or name; ``None`` when the ledger reports 404."""

        try:
            data = await self._request(
                "GET", f"/v5/books/{_seg(book_id)}/accounts/{_seg(id_or_name)}"
            )
        except LedgerApiError as e:
            if e.not_found:
                return None
            raise
        if not data:
            return None
        p = AccountPayload.model_validate(data)
        return Account(id=p.id, name=p.name)

    # ---- transactions -------------------------------------------------------

    async def get_transaction(self, book_id: str, transaction_id: str) -> Transaction | None:
        """Return the transaction, or ``None`` when the ledger reports 404."""

        try:
            data = await self._request(
                "GET", f"/v5/books/{_seg(book_id)}/transactions/{_seg(transaction_id)}"
            )
        except LedgerApiError as e:
            if e.not_found:
                _LOG.info("transaction %s not found in book %s", transaction_id, book_id)
                return None
            raise
        if not data:
            return None
        return Transaction.from_payload(data, book_id=book_id)

    async def list_transactions(
        self,
        book_id: str,
        query: str,
        *,
        limit: int = 100,
        cursor: str | None = None,
    ) -> tuple[list[Transaction], str | None]:
        """Return one page of transactions matching ``query`` and the next cursor."""

        params: dict[str, Any] = {"query": query, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        data = await self._request(
            "GET", f"/v5/books/{_seg(book_id)}/transactions", params=params
        )
        page = TransactionListPayload.model_validate(data or {})
        items = [Transaction.from_payload(item, book_id=book_id) for item in page.items]
        return items, page.cursor

    async def _write(self, method: str, book_id: str, suffix: str, tx: Transaction) -> Transaction:
        data = await self._request(
            method, f"/v5/books/{_seg(book_id)}/transactions{suffix}", json=tx.to_payload()
        )
        return Transaction.from_payload(data or tx.to_payload(), book_id=book_id)

    def _book_of(self, tx: Transaction) -> str:
        if not tx.book_id:
            raise ValueError(f"transaction {tx.id!r} has no book id")
        return tx.book_id

    async def create_transaction(self, tx: Transaction) -> Transaction:
        return await self._write("POST", self._book_of(tx), "", tx)

    async def update_transaction(self, tx: Transaction) -> Transaction:
        return await self._write("PUT", self._book_of(tx), "", tx)

    async def trash_transaction(self, tx: Transaction) -> Transaction:
        return await self._write("PATCH", self._book_of(tx), "/trash", tx)

    async def post_transaction(self, tx: Transaction) -> Transaction:
        return await self._write("PATCH", self._book_of(tx), "/post", tx)

    async def check_transaction(self, tx: Transaction) -> Transaction:
        return await self._write("PATCH", self._book_of(tx), "/check", tx)


__all__ = ["LedgerClient"]
