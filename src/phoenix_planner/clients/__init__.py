"""Market data provider — quotes over HTTP, fundamentals and sentiment derived locally."""

import logging
from datetime import datetime

import httpx

from phoenix_planner.config import MarketDataConfig
from phoenix_planner.models import Fundamentals, HealthStatus, Quote, Sentiment

logger = logging.getLogger(__name__)

_USER_AGENT = "phoenix-planner/0.1 (quote reader)"

_HEALTH_COMMENTS = {
    HealthStatus.HEALTHY: "Solid fundamentals with steady growth and profitability.",
    HealthStatus.SUBHEALTHY: "Average fundamentals; watch leverage and earnings quality.",
    HealthStatus.CRISIS: "Weak fundamentals; elevated short-term risk.",
}


def _char_sum(symbol: str) -> int:
    return sum(ord(c) for c in symbol)


def placeholder_quote(symbol: str, currency: str = "USD") -> Quote:
    """Deterministic stand-in price used when no live quote is available."""
    return Quote(
        symbol=symbol,
        price=float(_char_sum(symbol) % 50 + 20),
        currency=currency,
        timestamp=datetime.now(),
    )


class MarketDataClient:
    """Supplies the three diagnosis signals for a symbol.

    ``fetch_quote`` never raises: any network or parsing failure falls back to
    ``placeholder_quote``. Fundamentals and sentiment are computed locally.
    """

    def __init__(
        self,
        config: MarketDataConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or MarketDataConfig()
        self.http_client = http_client

    async def fetch_quote(self, symbol: str) -> Quote:
        if not self.config.live_quotes:
            return placeholder_quote(symbol, self.config.currency)
        try:
            quote = await self._fetch_live_quote(symbol)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Quote fetch for %s failed, using placeholder: %s", symbol, e)
            quote = None
        if quote is None:
            return placeholder_quote(symbol, self.config.currency)
        return quote

    async def _fetch_live_quote(self, symbol: str) -> Quote | None:
        params = {"symbols": symbol}
        headers = {"User-Agent": _USER_AGENT}
        if self.http_client is not None:
            resp = await self.http_client.get(
                self.config.quote_url, params=params, headers=headers
            )
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                resp = await client.get(
                    self.config.quote_url, params=params, headers=headers
                )
        resp.raise_for_status()
        return self._parse_quote(resp.json(), symbol, self.config.currency)

    @staticmethod
    def _parse_quote(payload: dict, symbol: str, currency: str = "USD") -> Quote | None:
        """Parse a Yahoo quote response. Returns None when the symbol is unknown."""
        results = (payload.get("quoteResponse") or {}).get("result") or []
        if not results:
            return None
        item = results[0]
        price = next(
            (item[k] for k in ("regularMarketPrice", "bid", "ask") if item.get(k) is not None),
            0,
        )
        return Quote(
            symbol=symbol,
            price=float(price),
            currency=item.get("currency") or currency,
            timestamp=datetime.now(),
        )

    def fetch_fundamentals(self, symbol: str) -> Fundamentals:
        h = 7
        for c in symbol:
            h = h * 31 + ord(c)
        h = abs(h) % 100

        if h > 66:
            health = HealthStatus.HEALTHY
        elif h > 33:
            health = HealthStatus.SUBHEALTHY
        else:
            health = HealthStatus.CRISIS

        return Fundamentals(
            symbol=symbol,
            roe=float(h % 20 - 5),
            debt_ratio=round(h % 60 / 100, 2),
            revenue_yoy=round((h % 40 - 10) / 10, 2),
            health=health,
            comment=_HEALTH_COMMENTS[health],
        )

    def fetch_sentiment(self, symbol: str) -> Sentiment:
        h = _char_sum(symbol) % 200 - 100  # -100..99
        if h >= 0:
            summary = "Market leaning optimistic / greedy"
        else:
            summary = "Market leaning pessimistic / fearful"
        return Sentiment(
            symbol=symbol,
            score=round(h / 100, 2),
            popularity=float(abs(h)),
            summary=summary,
        )
