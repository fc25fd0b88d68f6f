"""Transaction create / replace / list with ledger integrity checks."""

from __future__ import annotations

from datetime import date, datetime

import structlog
from sqlalchemy.orm import Session

from portfolio_core.db.tables.ledger import AccountRow, InstrumentRow, TransactionRow, new_id, utcnow
from portfolio_core.errors import DomainValidationError
from portfolio_core.ledger.integrity import assert_history_consistent
from portfolio_core.ledger.ordering import sort_for_replay
from portfolio_core.models.transaction import Transaction, TransactionDraft, TransactionType
from portfolio_core.models.valuation import AssetKind
from portfolio_core.sources.sql import transaction_from_row

log = structlog.get_logger("transactions")

TRADE_TYPES = (TransactionType.BUY.value, TransactionType.SELL.value)


class TransactionService:
    """Writes go through *session* and are flushed, not committed."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # --- checks ---

    def _assert_account(self, account_id: str) -> None:
        if self.session.get(AccountRow, account_id) is None:
            raise DomainValidationError(f"Account {account_id} does not exist")

    def _assert_tradable(self, instrument_id: str) -> None:
        instrument = self.session.get(InstrumentRow, instrument_id)
        if instrument is None:
            raise DomainValidationError(f"Instrument {instrument_id} does not exist")
        if instrument.kind == AssetKind.CASH.value:
            raise DomainValidationError("BUY/SELL does not support CASH instruments")

    def _assert_external_ref_unique(self, account_id: str, external_ref: str | None, exclude_id: str | None = None) -> None:
        if not external_ref:
            return
        q = self.session.query(TransactionRow.id).filter(
            TransactionRow.account_id == account_id,
            TransactionRow.external_ref == external_ref,
        )
        if exclude_id is not None:
            q = q.filter(TransactionRow.id != exclude_id)
        if q.first() is not None:
            raise DomainValidationError(f"Duplicate external_ref {external_ref!r} for account {account_id}")

    def _position_history(self, account_id: str, instrument_id: str) -> list[Transaction]:
        rows = (
            self.session.query(TransactionRow)
            .filter(
                TransactionRow.account_id == account_id,
                TransactionRow.instrument_id == instrument_id,
                TransactionRow.type.in_(TRADE_TYPES),
            )
            .all()
        )
        return [transaction_from_row(r) for r in rows]

    def _candidate(self, tx_id: str, draft: TransactionDraft, created_at: datetime) -> Transaction:
        return Transaction(
            id=tx_id,
            account_id=draft.account_id,
            instrument_id=draft.instrument_id,
            type=draft.type,
            trade_date=draft.trade_date,
            settle_date=draft.settle_date,
            quantity=draft.quantity,
            price=draft.price,
            amount=draft.resolved_amount(),
            fee_amount=draft.fee_amount,
            created_at=created_at,
            external_ref=draft.external_ref,
            notes=draft.notes,
        )

    # --- operations ---

    def create(self, draft: TransactionDraft) -> Transaction:
        """Insert *draft* after checking it keeps every position non-negative.

        Raises:
            DomainValidationError: unknown account/instrument, CASH trade or
                duplicate external ref.
            InsufficientLotsError: the trade would oversell at some point in
                history.
        """
        self._assert_account(draft.account_id)
        self._assert_external_ref_unique(draft.account_id, draft.external_ref)

        candidate = self._candidate(new_id(), draft, utcnow())
        if draft.type.is_trade:
            self._assert_tradable(draft.instrument_id)
            assert_history_consistent(self._position_history(draft.account_id, draft.instrument_id), candidate)

        row = TransactionRow(id=candidate.id, created_at=candidate.created_at)
        self._apply(row, candidate)
        self.session.add(row)
        self.session.flush()
        log.info("transaction_created", transaction_id=row.id, account_id=row.account_id, type=row.type)
        return transaction_from_row(row)

    def update(self, tx_id: str, draft: TransactionDraft) -> Transaction:
        """Replace transaction *tx_id* with *draft*, keeping its ``created_at``.

        Both the position the row moves into and the one it leaves are
        replayed over their full history.
        """
        row = self.session.get(TransactionRow, tx_id)
        if row is None:
            raise DomainValidationError("Transaction not found")
        self._assert_account(draft.account_id)
        self._assert_external_ref_unique(draft.account_id, draft.external_ref, exclude_id=tx_id)

        candidate = self._candidate(tx_id, draft, row.created_at)
        new_key = (draft.account_id, draft.instrument_id) if draft.type.is_trade else None
        old_key = (row.account_id, row.instrument_id) if row.type in TRADE_TYPES and row.instrument_id else None

        if new_key is not None:
            self._assert_tradable(draft.instrument_id)
            assert_history_consistent(self._position_history(*new_key), candidate, replaces_id=tx_id)
        if old_key is not None and old_key != new_key:
            assert_history_consistent(self._position_history(*old_key), None, replaces_id=tx_id)

        self._apply(row, candidate)
        self.session.flush()
        log.info("transaction_updated", transaction_id=tx_id, account_id=row.account_id, type=row.type)
        return transaction_from_row(row)

    def list(
        self,
        account_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[Transaction]:
        """Transactions in replay order, optionally scoped by account and trade date."""
        if from_date and to_date and from_date > to_date:
            raise DomainValidationError("from must be <= to")
        q = self.session.query(TransactionRow)
        if account_id is not None:
            q = q.filter(TransactionRow.account_id == account_id)
        if from_date is not None:
            q = q.filter(TransactionRow.trade_date >= from_date)
        if to_date is not None:
            q = q.filter(TransactionRow.trade_date <= to_date)
        return sort_for_replay(transaction_from_row(r) for r in q.all())

    @staticmethod
    def _apply(row: TransactionRow, tx: Transaction) -> None:
        row.account_id = tx.account_id
        row.instrument_id = tx.instrument_id
        row.type = tx.type.value
        row.trade_date = tx.trade_date
        row.settle_date = tx.settle_date
        row.quantity = tx.quantity
        row.price = tx.price
        row.amount = tx.amount
        row.fee_amount = tx.fee_amount
        row.external_ref = tx.external_ref
        row.notes = tx.notes
