"""Pytest configuration for test isolation.

The CLI reads connection settings from the environment (and from a ``.env``
in the working directory) and configures the package logger once per
process. Both would leak between tests, so every test runs from its own
temporary directory with the ``BKPER_*``/``LEDGER_CLI_*`` variables cleared
and the package logger reset afterwards.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from ledger_cli.logging_setup import reset_logging

_ENV_PREFIXES = ("BKPER_", "LEDGER_CLI_")


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Force a clean environment and working directory per test."""

    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    reset_logging()
