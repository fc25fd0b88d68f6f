"""Reconciles computed warnings against the persisted warning ledger."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

import structlog

from portfolio_core.lifecycle.fingerprint import fingerprint, severity_for_code
from portfolio_core.lifecycle.store import WarningLedgerStore
from portfolio_core.models.lifecycle import OverviewMode, ReconcileResult, WarningObservation
from portfolio_core.models.valuation import DataWarning

log = structlog.get_logger("warning_lifecycle")


class WarningLifecycleTracker:
    """Upsert what was observed, then resolve what went away.

    Only run this for unfiltered views: a sliced holding set would resolve
    warnings that are still present in the full portfolio.
    """

    def __init__(self, store: WarningLedgerStore) -> None:
        self.store = store

    def observe(
        self,
        as_of: date,
        warning: DataWarning,
        mode: OverviewMode,
        account_id: str | None = None,
    ) -> WarningObservation:
        owner = account_id or warning.account_id
        return WarningObservation(
            fingerprint=fingerprint(warning.code, owner, warning.instrument_id, warning.symbol, mode),
            date=as_of,
            code=warning.code,
            severity=severity_for_code(warning.code),
            mode=mode,
            account_id=owner,
            instrument_id=warning.instrument_id,
            symbol=warning.symbol,
            message=warning.message,
        )

    def reconcile(
        self,
        as_of: date,
        warnings: Iterable[DataWarning],
        mode: OverviewMode | str,
        account_id: str | None = None,
    ) -> ReconcileResult:
        mode = OverviewMode(mode)
        observed: set[str] = set()
        upserted = 0
        for warning in warnings:
            observation = self.observe(as_of, warning, mode, account_id)
            self.store.upsert(observation)
            observed.add(observation.fingerprint)
            upserted += 1

        # sweep only after every upsert so the active set is complete
        active = self.store.list_active(mode, as_of, account_id)
        stale_ids = [row_id for row_id, fp in active if fp not in observed]
        resolved = self.store.resolve(stale_ids, as_of) if stale_ids else 0

        log.info(
            "warnings_reconciled",
            as_of=as_of.isoformat(),
            mode=mode.value,
            account_id=account_id,
            observed=len(observed),
            resolved=resolved,
        )
        return ReconcileResult(upserted=upserted, resolved=resolved)
