"""Runtime settings for ``ledger_cli``.

Settings come from process environment variables. The CLI loads a ``.env``
file from the current working directory first (``override=False`` so values
already exported win), then calls :meth:`LedgerSettings.from_env`.

Environment variables
---------------------
- ``BKPER_API_URL``: base URL of the ledger REST API.
- ``BKPER_API_KEY``: optional API key sent as the ``key`` query parameter.
- ``BKPER_ACCESS_TOKEN``: optional OAuth bearer token.
- ``LEDGER_CLI_TIMEOUT``: request timeout in seconds (default 30).
- ``LEDGER_CLI_FORMAT``: default output format (``table``/``json``/``csv``).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_API_URL = "https://app.bkper.com/_ah/api/bkper"
DEFAULT_TIMEOUT_SECONDS = 30.0
OUTPUT_FORMATS: tuple[str, ...] = ("table", "json", "csv")
AGENT_ID = "ledger-cli"


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    """Resolved connection and output settings."""

    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    access_token: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    output_format: str = "table"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LedgerSettings:
        env = os.environ if environ is None else environ

        api_url = (env.get("BKPER_API_URL") or "").strip() or DEFAULT_API_URL

        raw_timeout = (env.get("LEDGER_CLI_TIMEOUT") or "").strip()
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise ConfigError(
                    f"LEDGER_CLI_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                ) from e
            if timeout <= 0:
                raise ConfigError("LEDGER_CLI_TIMEOUT must be positive")
        else:
            timeout = DEFAULT_TIMEOUT_SECONDS

        output_format = (env.get("LEDGER_CLI_FORMAT") or "table").strip().lower()
        if output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unsupported LEDGER_CLI_FORMAT: {output_format!r}. "
                f"Allowed: {list(OUTPUT_FORMATS)}"
            )

        return cls(
            api_url=api_url.rstrip("/"),
            api_key=(env.get("BKPER_API_KEY") or "").strip() or None,
            access_token=(env.get("BKPER_ACCESS_TOKEN") or "").strip() or None,
            timeout=timeout,
            output_format=output_format,
        )


def load_env_file(directory: Path | None = None) -> None:
    """Load ``.env`` from ``directory`` (default: CWD) without overriding."""

    load_dotenv(dotenv_path=(directory or Path.cwd()) / ".env", override=False)


__all__ = [
    "AGENT_ID",
    "DEFAULT_API_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "LedgerSettings",
    "OUTPUT_FORMATS",
    "load_env_file",
]
