"""Await a fixed set of coroutines and collect every failure.

``gather_settled`` never stops early: every awaitable runs to completion,
results come back in input order, and failures are only raised once all of
them have settled.

- Exactly one failure is re-raised as-is so callers can catch the concrete
  type (e.g. :class:`~ledger_cli.errors.LedgerApiError`).
- Two or more failures are raised together as an ``ExceptionGroup``.

Callers that need to inspect partial success before raising (the merge
commit logs which write landed) use :func:`settle` and
:func:`raise_for_outcomes` separately.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence
from typing import Any


async def settle(*aws: Awaitable[Any]) -> list[Any]:
    """Return each awaitable's result or the exception it raised, in order."""

    return list(await asyncio.gather(*aws, return_exceptions=True))


def failures(outcomes: Sequence[Any]) -> list[Exception]:
    errors: list[Exception] = []
    for out in outcomes:
        if isinstance(out, BaseException):
            if not isinstance(out, Exception):
                # KeyboardInterrupt/SystemExit and friends are never grouped.
                raise out
            errors.append(out)
    return errors


def raise_for_outcomes(outcomes: Sequence[Any], *, label: str) -> None:
    """Raise the single failure as-is, or an ``ExceptionGroup`` of several."""

    errors = failures(outcomes)
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise ExceptionGroup(f"{label}: {len(errors)} concurrent calls failed", errors)


async def gather_settled(*aws: Awaitable[Any], label: str = "gather_settled") -> list[Any]:
    """Run ``aws`` concurrently, wait for all, then raise collected errors."""

    outcomes = await settle(*aws)
    raise_for_outcomes(outcomes, label=label)
    return outcomes


__all__ = ["failures", "gather_settled", "raise_for_outcomes", "settle"]
