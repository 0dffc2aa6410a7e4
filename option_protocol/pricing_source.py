"""
pricing_source.py - Market data collaborators for option valuation

Provides the injected data sources the option contract prices against.

Classes:
- MarketQuote: (spot, volatility) observation for an underlying
- PriceOracle: Protocol defining the oracle interface
- StaticPriceOracle: Height-independent quotes
- HeightSeriesPriceOracle: Quotes that change with ledger height
- RiskFreeRateSource: Protocol for the risk-free rate
- ConstantRateSource: A fixed configured rate
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, List, Tuple, Protocol, runtime_checkable
from bisect import bisect_right

from .core import to_decimal


@dataclass(frozen=True, slots=True)
class MarketQuote:
    """Spot price and annualized volatility of an underlying at one height."""
    spot: Decimal
    volatility: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'spot', to_decimal(self.spot))
        object.__setattr__(self, 'volatility', to_decimal(self.volatility))


class MissingQuote(LookupError):
    """Raised when an oracle has no observation for an underlying."""
    pass


@runtime_checkable
class PriceOracle(Protocol):
    """
    Protocol for price oracles.

    An oracle provides the spot price and volatility of an underlying as of a
    ledger height. Implementations raise MissingQuote when nothing is known.
    """

    def get_quote(self, underlying: str, height: int) -> MarketQuote:
        """Get the quote for an underlying at a specific height."""
        ...


@runtime_checkable
class RiskFreeRateSource(Protocol):
    """Protocol for risk-free rate sources."""

    def get_rate(self, height: int) -> Decimal:
        """Get the continuously compounded annual rate at a height."""
        ...


class ConstantRateSource:
    """Risk-free rate fixed by configuration."""

    def __init__(self, rate: Decimal):
        self.rate = to_decimal(rate)
        if not self.rate.is_finite():
            raise ValueError(f"rate must be finite, got {rate}")

    def get_rate(self, height: int) -> Decimal:
        """Get the configured rate (height is ignored)."""
        return self.rate

    def __repr__(self):
        return f"ConstantRateSource({self.rate})"


class StaticPriceOracle:
    """
    Oracle with static quotes (height-independent).

    Quotes remain constant regardless of height until updated.
    """

    def __init__(self, quotes: Optional[Dict[str, MarketQuote]] = None):
        """
        Initialize with a static quote map.

        Args:
            quotes: Dictionary mapping underlying symbols to quotes
        """
        self.quotes: Dict[str, MarketQuote] = dict(quotes or {})

    def get_quote(self, underlying: str, height: int) -> MarketQuote:
        """Get static quote (height is ignored)."""
        if underlying not in self.quotes:
            raise MissingQuote(f"No quote for {underlying}")
        return self.quotes[underlying]

    def update_quote(self, underlying: str, spot: Decimal, volatility: Decimal):
        """Update the quote of an underlying."""
        self.quotes[underlying] = MarketQuote(spot, volatility)

    def __repr__(self):
        return f"StaticPriceOracle({len(self.quotes)} quotes)"


class HeightSeriesPriceOracle:
    """
    Oracle with height-varying quotes.

    Uses the most recent quote at or before the requested height.

    Example:
        oracle = HeightSeriesPriceOracle()
        oracle.add_quote('ATOM', 100, MarketQuote(Decimal("8.01"), Decimal("1.0")))
        oracle.add_quote('ATOM', 200, MarketQuote(Decimal("9.00"), Decimal("0.9")))
        oracle.get_quote('ATOM', 150)  # -> the height-100 quote
    """

    def __init__(self, paths: Optional[Dict[str, List[Tuple[int, MarketQuote]]]] = None):
        """
        Initialize oracle.

        Args:
            paths: Optional dict mapping underlyings to lists of (height, quote).
        """
        self.history: Dict[str, List[Tuple[int, MarketQuote]]] = {}
        if paths:
            for underlying, path in paths.items():
                if not path:
                    continue
                self.history[underlying] = sorted(path, key=lambda x: x[0])

    def add_quote(self, underlying: str, height: int, quote: MarketQuote):
        """Add a quote observation for an underlying at a height."""
        self.history.setdefault(underlying, []).append((height, quote))
        self.history[underlying].sort(key=lambda x: x[0])

    def get_quote(self, underlying: str, height: int) -> MarketQuote:
        """
        Get the quote at or before the specified height.

        Uses binary search for O(log n) lookup.

        Raises:
            MissingQuote: If no observation exists at or before the height
        """
        history = self.history.get(underlying)
        if not history:
            raise MissingQuote(f"No quote for {underlying}")

        heights = [h for h, _ in history]
        idx = bisect_right(heights, height)
        if idx == 0:
            raise MissingQuote(f"No quote for {underlying} at or before height {height}")
        return history[idx - 1][1]

    def __repr__(self):
        total = sum(len(h) for h in self.history.values())
        return f"HeightSeriesPriceOracle({len(self.history)} underlyings, {total} observations)"
