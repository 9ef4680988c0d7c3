from pydantic import BaseModel, ConfigDict, Field


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider_id: str
    price_usd: float = Field(default=0.0, ge=0.0)
    change_24h_pct: float = 0.0


class HistoricalSeries(BaseModel):
    """Daily closing prices in chronological order."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    prices: list[float] = []


class HistoricalBatch(BaseModel):
    """All-or-nothing outcome of a historical fetch."""

    ok: bool
    series: list[HistoricalSeries] = []
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "HistoricalBatch":
        return cls(ok=False, series=[], error=error)


class BucketStatus(BaseModel):
    available_tokens: int
    capacity: int
