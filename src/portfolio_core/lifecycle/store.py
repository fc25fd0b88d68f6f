"""Warning ledger persistence: upsert by fingerprint, bulk resolve by id."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date

from sqlalchemy import desc, update
from sqlalchemy.orm import Session

from portfolio_core.db.tables.valuation import WarningEventRow
from portfolio_core.models.lifecycle import OverviewMode, WarningLedgerEntry, WarningObservation


class WarningLedgerStore(ABC):
    @abstractmethod
    def upsert(self, observation: WarningObservation) -> None:
        """Create the record, or mark it seen again and clear its resolution."""

    @abstractmethod
    def list_active(
        self,
        mode: OverviewMode,
        as_of: date,
        account_id: str | None = None,
    ) -> list[tuple[int, str]]:
        """(id, fingerprint) of unresolved records dated on or before *as_of*."""

    @abstractmethod
    def resolve(self, ids: Sequence[int], resolved_at: date) -> int:
        """Mark *ids* resolved; return how many were updated."""

    @abstractmethod
    def list_recent(
        self,
        mode: OverviewMode,
        as_of: date,
        account_id: str | None = None,
        limit: int = 100,
    ) -> list[WarningLedgerEntry]:
        """Newest records first, resolved ones included."""


def entry_from_row(row: WarningEventRow) -> WarningLedgerEntry:
    meta = row.metadata_ or {}
    symbol = meta.get("symbol")
    message = meta.get("message")
    return WarningLedgerEntry(
        id=row.id,
        fingerprint=row.fingerprint,
        date=row.date,
        first_seen_at=row.first_seen_at,
        last_seen_at=row.last_seen_at,
        resolved_at=row.resolved_at,
        code=row.code,
        severity=row.severity,
        mode=row.mode,
        account_id=row.account_id,
        instrument_id=row.instrument_id,
        symbol=symbol if isinstance(symbol, str) else None,
        message=message if isinstance(message, str) else None,
    )


class SqlWarningLedgerStore(WarningLedgerStore):
    """Writes through *session*; the caller owns the transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, observation: WarningObservation) -> None:
        metadata = {
            "message": observation.message,
            "symbol": observation.symbol,
            "mode": observation.mode.value,
        }
        row = (
            self.session.query(WarningEventRow)
            .filter(WarningEventRow.fingerprint == observation.fingerprint)
            .one_or_none()
        )
        if row is None:
            self.session.add(
                WarningEventRow(
                    fingerprint=observation.fingerprint,
                    date=observation.date,
                    first_seen_at=observation.date,
                    last_seen_at=observation.date,
                    resolved_at=None,
                    code=observation.code.value,
                    severity=observation.severity.value,
                    mode=observation.mode.value,
                    account_id=observation.account_id,
                    instrument_id=observation.instrument_id,
                    metadata_=metadata,
                )
            )
        else:
            row.date = observation.date
            row.last_seen_at = observation.date
            row.resolved_at = None
            row.severity = observation.severity.value
            row.metadata_ = metadata
        self.session.flush()

    def list_active(
        self,
        mode: OverviewMode,
        as_of: date,
        account_id: str | None = None,
    ) -> list[tuple[int, str]]:
        q = self.session.query(WarningEventRow.id, WarningEventRow.fingerprint).filter(
            WarningEventRow.resolved_at.is_(None),
            WarningEventRow.mode == OverviewMode(mode).value,
            WarningEventRow.date <= as_of,
        )
        if account_id is not None:
            q = q.filter(WarningEventRow.account_id == account_id)
        return [(row_id, fp) for row_id, fp in q.order_by(WarningEventRow.id).all()]

    def resolve(self, ids: Sequence[int], resolved_at: date) -> int:
        if not ids:
            return 0
        result = self.session.execute(
            update(WarningEventRow)
            .where(WarningEventRow.id.in_(list(ids)))
            .values(resolved_at=resolved_at)
            .execution_options(synchronize_session="fetch")
        )
        self.session.flush()
        return result.rowcount

    def list_recent(
        self,
        mode: OverviewMode,
        as_of: date,
        account_id: str | None = None,
        limit: int = 100,
    ) -> list[WarningLedgerEntry]:
        q = self.session.query(WarningEventRow).filter(
            WarningEventRow.mode == OverviewMode(mode).value,
            WarningEventRow.date <= as_of,
        )
        if account_id is not None:
            q = q.filter(WarningEventRow.account_id == account_id)
        rows = q.order_by(desc(WarningEventRow.date), desc(WarningEventRow.created_at), desc(WarningEventRow.id))
        return [entry_from_row(r) for r in rows.limit(limit).all()]
