"""Market data shapes returned by price and constituent collaborators."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PriceQuote(BaseModel):
    """Latest known close at or before a requested date."""

    model_config = ConfigDict(frozen=True)

    instrument_id: str
    date: date
    close: float


class DailyClose(BaseModel):
    """One daily bar close as returned by a market data provider."""

    date: date
    close: float


class ConstituentSet(BaseModel):
    """Dated constituent weights for one ETF (symbol -> weight)."""

    etf_instrument_id: str
    as_of_date: date
    weights: dict[str, float] = Field(default_factory=dict)


class InstrumentInfo(BaseModel):
    """Instrument identity plus optional classification metadata.

    Missing classification fields are the normal "unclassified" state.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    kind: str
    currency: str | None = None
    country: str | None = None
    sector: str | None = None
    industry: str | None = None


class ConstituentWeightRow(BaseModel):
    """One ingest row: an ETF symbol, one of its constituents and its weight."""

    etf_symbol: str = Field(min_length=1, max_length=32)
    constituent_symbol: str = Field(min_length=1, max_length=32)
    weight: float = Field(gt=0, allow_inf_nan=False)

    @field_validator("etf_symbol", "constituent_symbol")
    @classmethod
    def _upper(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be blank")
        return v


class ConstituentIngest(BaseModel):
    as_of_date: date
    source: str = Field(default="curated_manual", min_length=1, max_length=64)
    replace_existing: bool = True
    rows: list[ConstituentWeightRow] = Field(min_length=1)


class ConstituentIngestResult(BaseModel):
    as_of_date: date
    source: str
    replace_existing: bool
    etfs_processed: list[str]
    rows_written: int
    rows_received: int
