"""Tests for the transaction write path and its history integrity checks."""

from __future__ import annotations

from datetime import date

import pytest

from fakes import seed_account, seed_instrument
from portfolio_core.db.tables.ledger import TransactionRow
from portfolio_core.errors import DomainValidationError, InsufficientLotsError
from portfolio_core.models.transaction import TransactionDraft, TransactionType
from portfolio_core.transactions import TransactionService

D1 = date(2025, 2, 3)
D2 = date(2025, 2, 4)
D3 = date(2025, 2, 5)


def _buy(quantity, day=D1, instrument_id="inst-aapl", account_id="acct-1", **kw):
    return TransactionDraft(
        account_id=account_id, instrument_id=instrument_id, type="BUY", trade_date=day,
        quantity=quantity, price=10, **kw,
    )


def _sell(quantity, day=D2, instrument_id="inst-aapl", account_id="acct-1"):
    return TransactionDraft(
        account_id=account_id, instrument_id=instrument_id, type="SELL", trade_date=day,
        quantity=quantity, price=12,
    )


@pytest.fixture
def service(db_session):
    seed_account(db_session, "acct-1")
    seed_account(db_session, "acct-2")
    seed_instrument(db_session, "AAPL")
    seed_instrument(db_session, "MSFT")
    seed_instrument(db_session, "USD", kind="CASH", instrument_id="inst-cash")
    return TransactionService(db_session)


class TestCreate:
    def test_deposit(self, service):
        tx = service.create(TransactionDraft(account_id="acct-1", type="DEPOSIT", trade_date=D1, amount=500))
        assert tx.type is TransactionType.DEPOSIT
        assert tx.amount == 500
        assert tx.created_at.tzinfo is not None

    def test_trade_amount_derived(self, service):
        tx = service.create(_buy(5, fee_amount=1))
        assert tx.amount == 50
        assert tx.fee_amount == 1

    def test_unknown_account(self, service):
        with pytest.raises(DomainValidationError, match="Account ghost does not exist"):
            service.create(TransactionDraft(account_id="ghost", type="DEPOSIT", trade_date=D1, amount=1))

    def test_unknown_instrument(self, service):
        with pytest.raises(DomainValidationError, match="Instrument inst-nope does not exist"):
            service.create(_buy(1, instrument_id="inst-nope"))

    def test_cash_instrument_rejected(self, service):
        with pytest.raises(DomainValidationError, match="CASH"):
            service.create(_buy(1, instrument_id="inst-cash"))

    def test_duplicate_external_ref_per_account(self, service):
        service.create(TransactionDraft(account_id="acct-1", type="DEPOSIT", trade_date=D1, amount=1, external_ref="r1"))
        with pytest.raises(DomainValidationError, match="Duplicate external_ref"):
            service.create(
                TransactionDraft(account_id="acct-1", type="DEPOSIT", trade_date=D2, amount=1, external_ref="r1")
            )
        service.create(TransactionDraft(account_id="acct-2", type="DEPOSIT", trade_date=D1, amount=1, external_ref="r1"))

    def test_oversell_rejected_and_not_written(self, service, db_session):
        service.create(_buy(5))
        with pytest.raises(InsufficientLotsError):
            service.create(_sell(6))
        assert db_session.query(TransactionRow).count() == 1

    def test_backdated_sell_rejected(self, service):
        service.create(_buy(5, day=D2))
        with pytest.raises(InsufficientLotsError):
            service.create(_sell(1, day=D1))

    def test_other_account_lots_not_used(self, service):
        service.create(_buy(5))
        with pytest.raises(InsufficientLotsError):
            service.create(_sell(1, account_id="acct-2"))


class TestUpdate:
    def test_replace_keeps_id_and_created_at(self, service):
        original = service.create(_buy(5))
        updated = service.update(original.id, _buy(8))
        assert updated.id == original.id
        assert updated.quantity == 8
        assert updated.created_at == original.created_at

    def test_shrinking_buy_below_later_sell_rejected(self, service):
        buy = service.create(_buy(5))
        service.create(_sell(4, day=D3))
        with pytest.raises(InsufficientLotsError):
            service.update(buy.id, _buy(3))

    def test_moving_buy_away_from_sold_position_rejected(self, service):
        buy = service.create(_buy(5))
        service.create(_sell(5, day=D3))
        with pytest.raises(InsufficientLotsError):
            service.update(buy.id, _buy(5, instrument_id="inst-msft"))

    def test_trade_to_cash_event(self, service):
        buy = service.create(_buy(5))
        tx = service.update(buy.id, TransactionDraft(account_id="acct-1", type="DEPOSIT", trade_date=D1, amount=9))
        assert tx.type is TransactionType.DEPOSIT
        assert tx.instrument_id is None
        assert tx.quantity is None

    def test_external_ref_may_be_kept(self, service):
        tx = service.create(_buy(5, external_ref="broker-1"))
        service.update(tx.id, _buy(6, external_ref="broker-1"))

    def test_not_found(self, service):
        with pytest.raises(DomainValidationError, match="Transaction not found"):
            service.update("missing", _buy(1))


class TestList:
    def test_replay_order_and_filters(self, service):
        late = service.create(TransactionDraft(account_id="acct-1", type="DEPOSIT", trade_date=D3, amount=1))
        early = service.create(TransactionDraft(account_id="acct-1", type="DEPOSIT", trade_date=D1, amount=1))
        other = service.create(TransactionDraft(account_id="acct-2", type="DEPOSIT", trade_date=D2, amount=1))

        assert [t.id for t in service.list()] == [early.id, other.id, late.id]
        assert [t.id for t in service.list(account_id="acct-1")] == [early.id, late.id]
        assert [t.id for t in service.list(from_date=D2, to_date=D2)] == [other.id]

    def test_inverted_range(self, service):
        with pytest.raises(DomainValidationError):
            service.list(from_date=D3, to_date=D1)
