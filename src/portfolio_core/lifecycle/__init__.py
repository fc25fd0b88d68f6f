"""Warning lifecycle: fingerprinting, the warning ledger store and reconciliation."""

from portfolio_core.lifecycle.fingerprint import fingerprint, fingerprint_key, severity_for_code
from portfolio_core.lifecycle.store import SqlWarningLedgerStore, WarningLedgerStore, entry_from_row
from portfolio_core.lifecycle.tracker import WarningLifecycleTracker

__all__ = [
    "SqlWarningLedgerStore",
    "WarningLedgerStore",
    "WarningLifecycleTracker",
    "entry_from_row",
    "fingerprint",
    "fingerprint_key",
    "severity_for_code",
]
