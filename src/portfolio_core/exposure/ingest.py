"""Curated ETF constituent weight ingestion."""

from __future__ import annotations

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from portfolio_core.db.tables.ledger import InstrumentRow
from portfolio_core.db.tables.market_data import EtfConstituentRow
from portfolio_core.errors import DomainValidationError
from portfolio_core.models.market import ConstituentIngest, ConstituentIngestResult
from portfolio_core.models.valuation import AssetKind

log = structlog.get_logger("constituent_ingest")


def ingest_etf_constituents(session: Session, payload: ConstituentIngest) -> ConstituentIngestResult:
    """Write one dated weight set per ETF named in *payload*.

    Every ETF symbol must resolve to an ETF instrument or nothing is written.
    Repeated (etf, constituent) rows keep the last weight.  With
    ``replace_existing`` the ETF's dataset for that date is dropped first;
    otherwise rows are upserted into it.
    """
    etf_symbols = list(dict.fromkeys(row.etf_symbol for row in payload.rows))
    etf_rows = (
        session.query(InstrumentRow)
        .filter(func.upper(InstrumentRow.symbol).in_(etf_symbols), InstrumentRow.kind == AssetKind.ETF.value)
        .all()
    )
    etf_by_symbol = {r.symbol.upper(): r for r in etf_rows}
    missing = [s for s in etf_symbols if s not in etf_by_symbol]
    if missing:
        raise DomainValidationError(f"ETF instruments not found for symbols: {', '.join(missing)}")

    deduped: dict[tuple[str, str], float] = {}
    for row in payload.rows:
        deduped[(etf_by_symbol[row.etf_symbol].id, row.constituent_symbol)] = row.weight

    etf_ids = [r.id for r in etf_rows]
    if payload.replace_existing:
        session.query(EtfConstituentRow).filter(
            EtfConstituentRow.etf_instrument_id.in_(etf_ids),
            EtfConstituentRow.as_of_date == payload.as_of_date,
        ).delete(synchronize_session=False)
        existing: dict[tuple[str, str], EtfConstituentRow] = {}
    else:
        existing = {
            (r.etf_instrument_id, r.constituent_symbol): r
            for r in session.query(EtfConstituentRow).filter(
                EtfConstituentRow.etf_instrument_id.in_(etf_ids),
                EtfConstituentRow.as_of_date == payload.as_of_date,
            )
        }

    for (etf_id, symbol), weight in deduped.items():
        current = existing.get((etf_id, symbol))
        if current is not None:
            current.weight = weight
            current.source = payload.source
            continue
        session.add(
            EtfConstituentRow(
                etf_instrument_id=etf_id,
                constituent_symbol=symbol,
                weight=weight,
                as_of_date=payload.as_of_date,
                source=payload.source,
            )
        )
    session.flush()

    log.info(
        "constituents_ingested",
        as_of=payload.as_of_date.isoformat(),
        etfs=etf_symbols,
        rows=len(deduped),
        replace_existing=payload.replace_existing,
    )
    return ConstituentIngestResult(
        as_of_date=payload.as_of_date,
        source=payload.source,
        replace_existing=payload.replace_existing,
        etfs_processed=etf_symbols,
        rows_written=len(deduped),
        rows_received=len(payload.rows),
    )
