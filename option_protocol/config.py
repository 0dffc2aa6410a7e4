"""
config.py - Injected configuration for the option contract

Everything the contract would otherwise hard-code (risk-free rate, the
height-to-years conversion, pricing precision, the open-funding policy)
lives here so it can be swapped in tests and deployments.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from .access import OpenFundingPolicy
from .core import to_decimal


CONTRACT_NAME = "option-protocol"
CONTRACT_VERSION = "1.0.0"

# Continuously compounded annual risk-free rate
DEFAULT_RISK_FREE_RATE = Decimal("0.0021")

# Ledger heights per year (6-second blocks)
DEFAULT_ORDINALS_PER_YEAR = 5_256_000

DEFAULT_STORE_KEY = "state"


@dataclass(frozen=True, slots=True)
class OptionConfig:
    """
    Contract configuration.

    Attributes:
        risk_free_rate: Rate used by the default ConstantRateSource
        ordinals_per_year: Heights per year; T = (expiration - now) / ordinals_per_year
        open_funding_policy: Who may trigger open funding
        store_key: Key of the option record in the store
        contract_name: Name recorded at creation
        contract_version: Version recorded at creation
    """
    risk_free_rate: Decimal = DEFAULT_RISK_FREE_RATE
    ordinals_per_year: int = DEFAULT_ORDINALS_PER_YEAR
    open_funding_policy: OpenFundingPolicy = OpenFundingPolicy.ANYONE
    store_key: str = DEFAULT_STORE_KEY
    contract_name: str = CONTRACT_NAME
    contract_version: str = CONTRACT_VERSION

    def __post_init__(self):
        object.__setattr__(self, 'risk_free_rate', to_decimal(self.risk_free_rate))
        if not self.risk_free_rate.is_finite():
            raise ValueError(f"risk_free_rate must be finite, got {self.risk_free_rate}")
        if isinstance(self.ordinals_per_year, bool) or not isinstance(self.ordinals_per_year, int):
            raise ValueError(f"ordinals_per_year must be an integer, got {self.ordinals_per_year!r}")
        if self.ordinals_per_year <= 0:
            raise ValueError(f"ordinals_per_year must be positive, got {self.ordinals_per_year}")
        if not self.store_key:
            raise ValueError("store_key cannot be empty")

    def years_until(self, expiration: int, now: int) -> Decimal:
        """Time to expiry in years."""
        return Decimal(expiration - now) / Decimal(self.ordinals_per_year)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> OptionConfig:
        """
        Build a config from plain values, e.g. parsed settings.

        Unknown keys are rejected so typos do not silently fall back to defaults.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")
        kwargs = dict(values)
        if 'open_funding_policy' in kwargs and not isinstance(kwargs['open_funding_policy'], OpenFundingPolicy):
            kwargs['open_funding_policy'] = OpenFundingPolicy(kwargs['open_funding_policy'])
        if 'ordinals_per_year' in kwargs:
            kwargs['ordinals_per_year'] = int(kwargs['ordinals_per_year'])
        return cls(**kwargs)
