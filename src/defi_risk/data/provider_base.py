from typing import Any, Protocol, TypeVar

import httpx
import pydantic
from pydantic import BaseModel

from defi_risk.errors import PriceFeedError
from defi_risk.models.market import HistoricalSeries, PriceQuote

M = TypeVar("M", bound=BaseModel)

DEFAULT_TIMEOUT = 30.0
DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "defi-risk/0.1",
}


class PriceProvider(Protocol):
    """Protocol for upstream price APIs."""

    name: str

    async def current_prices(self, ids: list[str]) -> list[PriceQuote]:
        """Spot USD quotes for ``ids``; unknown ids come back as zero quotes."""
        ...

    async def historical_prices(self, provider_id: str, days: int) -> HistoricalSeries:
        """Daily closes for the last ``days`` days, oldest first."""
        ...


def build_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
    )


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    params: dict[str, str | int] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """GET ``url`` and decode JSON, mapping every failure to PriceFeedError."""
    try:
        resp = await client.get(url, params=params, headers=headers)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise PriceFeedError(
            f"{source} responded with {e.response.status_code}", cause=e
        ) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise PriceFeedError(f"{source} request failed", cause=e) from e

    try:
        return resp.json()
    except ValueError as e:
        raise PriceFeedError(f"{source} returned invalid JSON", cause=e) from e


def parse_payload(model: type[M], payload: Any, *, source: str) -> M:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise PriceFeedError(f"{source} payload failed validation", cause=e) from e
