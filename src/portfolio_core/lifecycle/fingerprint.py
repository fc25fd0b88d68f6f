"""Content-addressed warning identity and fixed severity mapping."""

from __future__ import annotations

import hashlib

from portfolio_core.models.lifecycle import OverviewMode, Severity
from portfolio_core.models.valuation import WarningCode

_ERROR_CODES = frozenset(
    {
        WarningCode.MISSING_PRICE,
        WarningCode.ETF_LOOKTHROUGH_UNAVAILABLE,
        WarningCode.UNKNOWN_TICKER,
    }
)


def severity_for_code(code: WarningCode) -> Severity:
    return Severity.ERROR if code in _ERROR_CODES else Severity.WARNING


def fingerprint_key(
    code: WarningCode,
    account_id: str | None,
    instrument_id: str | None,
    symbol: str,
    mode: OverviewMode,
) -> str:
    """Pipe-joined identity; the date and message are deliberately absent."""
    return "|".join(
        [
            WarningCode(code).value,
            account_id or "",
            instrument_id or "",
            symbol.upper(),
            OverviewMode(mode).value,
        ]
    )


def fingerprint(
    code: WarningCode,
    account_id: str | None,
    instrument_id: str | None,
    symbol: str,
    mode: OverviewMode,
) -> str:
    """SHA-256 hex digest of :func:`fingerprint_key`."""
    key = fingerprint_key(code, account_id, instrument_id, symbol, mode)
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
