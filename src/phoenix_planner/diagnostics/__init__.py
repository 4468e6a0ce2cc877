"""Diagnostics aggregator: gathers quote, fundamentals and sentiment concurrently."""

import asyncio
import inspect
import logging
from typing import Any, Callable, Protocol

from phoenix_planner.models import Diagnostics, Fundamentals, Position, Quote, Sentiment

logger = logging.getLogger(__name__)

DEFAULT_SIGNAL_TIMEOUT = 8.0


class SignalProvider(Protocol):
    """Source of the three diagnosis signals. Methods may be sync or async."""

    def fetch_quote(self, symbol: str) -> Quote: ...

    def fetch_fundamentals(self, symbol: str) -> Fundamentals: ...

    def fetch_sentiment(self, symbol: str) -> Sentiment: ...


async def _fetch_signal(
    name: str, fetch: Callable[[str], Any], symbol: str, timeout: float
) -> Any | None:
    """Resolve one signal, degrading to None on error or timeout."""
    try:
        result = fetch(symbol)
        if inspect.isawaitable(result):
            result = await asyncio.wait_for(result, timeout)
        return result
    except asyncio.TimeoutError:
        logger.warning("%s signal for %s timed out after %ss", name, symbol, timeout)
    except Exception as e:
        logger.warning("%s signal for %s unavailable: %s", name, symbol, e)
    return None


async def diagnose(
    position: Position,
    provider: SignalProvider,
    timeout: float = DEFAULT_SIGNAL_TIMEOUT,
) -> Diagnostics:
    """Build a diagnostics snapshot for ``position``. Never fails as a whole."""
    symbol = position.symbol
    quote, fundamentals, sentiment = await asyncio.gather(
        _fetch_signal("quote", provider.fetch_quote, symbol, timeout),
        _fetch_signal("fundamentals", provider.fetch_fundamentals, symbol, timeout),
        _fetch_signal("sentiment", provider.fetch_sentiment, symbol, timeout),
    )
    return Diagnostics(
        symbol=symbol,
        quote=quote,
        fundamentals=fundamentals,
        sentiment=sentiment,
        position=position,
    )
