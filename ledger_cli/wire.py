"""Validated views of the ledger API's JSON payloads.

The remote API speaks camelCase JSON. These models validate the fields the
package relies on and keep everything else (``extra="allow"``) so that an
update round-trips unknown fields unchanged.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str | None = None


class FilePayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str | None = None
    url: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")


class TransactionPayload(BaseModel):
    """A transaction as returned by ``GET /books/{bookId}/transactions/{id}``.

    ``amount`` arrives as a decimal string and is parsed straight into
    :class:`~decimal.Decimal`; a JSON float is rejected so a binary
    approximation can never leak into the comparison of two amounts.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    book_id: str | None = Field(default=None, alias="bookId")
    date: str | None = None
    amount: Decimal | None = None
    description: str | None = None
    credit_account: AccountPayload | None = Field(default=None, alias="creditAccount")
    debit_account: AccountPayload | None = Field(default=None, alias="debitAccount")
    # Legacy compatibility fields carrying only the account id.
    credit_account_id: str | None = Field(default=None, alias="creditAccountId")
    debit_account_id: str | None = Field(default=None, alias="debitAccountId")
    urls: list[str] = Field(default_factory=list)
    files: list[FilePayload] = Field(default_factory=list)
    remote_ids: list[str] = Field(default_factory=list, alias="remoteIds")
    properties: dict[str, str] = Field(default_factory=dict)
    posted: bool = False
    checked: bool = False
    trashed: bool = False
    created_at: int | None = Field(default=None, alias="createdAt")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_from_text(cls, v: Any) -> Any:
        if v is None or isinstance(v, Decimal):
            return v
        if isinstance(v, float):
            raise ValueError("amount must be a decimal string, not a float")
        if isinstance(v, int) and not isinstance(v, bool):
            return Decimal(v)
        if isinstance(v, str):
            text = v.strip()
            if not text:
                return None
            try:
                return Decimal(text)
            except InvalidOperation as e:
                raise ValueError(f"amount is not a decimal number: {v!r}") from e
        return v

    @field_validator("urls", "remote_ids", mode="before")
    @classmethod
    def _none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("properties", mode="before")
    @classmethod
    def _none_as_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("files", mode="before")
    @classmethod
    def _files_none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class TransactionListPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    items: list[dict[str, Any]] = Field(default_factory=list)
    cursor: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _items_none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class BookPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str | None = None
    fraction_digits: int | None = Field(default=None, alias="fractionDigits")
    properties: dict[str, str] = Field(default_factory=dict)

    @field_validator("properties", mode="before")
    @classmethod
    def _none_as_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v


# Payload keys owned by the typed fields above; everything else is "extra".
TRANSACTION_KNOWN_KEYS: frozenset[str] = frozenset(
    {
        "id",
        "bookId",
        "date",
        "amount",
        "description",
        "creditAccount",
        "debitAccount",
        "creditAccountId",
        "debitAccountId",
        "urls",
        "files",
        "remoteIds",
        "properties",
        "posted",
        "checked",
        "trashed",
        "createdAt",
    }
)


__all__ = [
    "AccountPayload",
    "BookPayload",
    "FilePayload",
    "TRANSACTION_KNOWN_KEYS",
    "TransactionListPayload",
    "TransactionPayload",
]
