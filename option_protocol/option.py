"""
option.py - The Option Record and its Valuation Helpers

OptionRecord holds the immutable terms of the single open option together with
the audit record of funds attached at creation. It exists from successful
creation until a terminal transition (early sale or expiration) deletes it.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Tuple

from .core import Coin, InvalidTerms, to_decimal


MONEYNESS_ITM = "ITM"
MONEYNESS_ATM = "ATM"
MONEYNESS_OTM = "OTM"


@dataclass(frozen=True, slots=True)
class OptionRecord:
    """
    Terms and funds position of one option.

    Attributes:
        owner: Option holder
        liquidity: Counterparty liquidity pool
        expiration: Ledger height after which the option may be settled
        is_put: True for a put, False for a call
        is_sell: True if the holder is short at open, False if long
        strike: Strike price, denominated in the settlement currency
        quantity: Number of option units
        settlement_currency: Currency of premium and cash payoff legs
        collateral_currency: Currency of physically settled collateral legs
            (also the underlying whose quote prices the option)
        funds_received_at_open: Funds attached at creation (audit only)
        created_height: Ledger height at creation
    """
    owner: str
    liquidity: str
    expiration: int
    is_put: bool
    is_sell: bool
    strike: Coin
    quantity: int
    settlement_currency: str
    collateral_currency: str
    funds_received_at_open: Tuple[Coin, ...] = ()
    created_height: int = 0

    @property
    def option_type(self) -> str:
        return "put" if self.is_put else "call"

    @property
    def side(self) -> str:
        return "sell" if self.is_sell else "buy"

    @property
    def strike_notional(self) -> Decimal:
        """strike × quantity, the cash collateral behind a put."""
        return self.strike.amount * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation for query responses."""
        return {
            'owner': self.owner,
            'liquidity': self.liquidity,
            'expiration': self.expiration,
            'is_put': self.is_put,
            'is_sell': self.is_sell,
            'strike': {'amount': str(self.strike.amount), 'denom': self.strike.denom},
            'quantity': self.quantity,
            'settlement_currency': self.settlement_currency,
            'collateral_currency': self.collateral_currency,
            'funds_received_at_open': [
                {'amount': str(c.amount), 'denom': c.denom} for c in self.funds_received_at_open
            ],
            'created_height': self.created_height,
        }

    def __repr__(self) -> str:
        return (f"OptionRecord({self.side} {self.quantity} {self.option_type} "
                f"@ {self.strike.amount} {self.strike.denom}, exp={self.expiration}, "
                f"owner={self.owner}, pool={self.liquidity})")


def create_option_record(
    owner: str,
    strike: Coin,
    expiration: int,
    is_put: bool,
    is_sell: bool,
    quantity: int,
    liquidity_pool: str,
    settlement_currency: str,
    collateral_currency: str,
    attached_funds: Iterable[Coin] = (),
    created_height: int = 0,
) -> OptionRecord:
    """
    Validate terms and build an OptionRecord.

    Timing (expiration after the current height) is checked separately by the
    access guard; this function checks the terms themselves.

    Raises:
        InvalidTerms: If any term is missing or out of range
    """
    if not owner or not owner.strip():
        raise InvalidTerms("owner cannot be empty")
    if not liquidity_pool or not liquidity_pool.strip():
        raise InvalidTerms("liquidity pool cannot be empty")
    if owner == liquidity_pool:
        raise InvalidTerms("owner and liquidity pool must be different")
    if not settlement_currency or not collateral_currency:
        raise InvalidTerms("settlement and collateral currencies are required")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidTerms(f"quantity must be an integer, got {quantity!r}")
    if quantity <= 0:
        raise InvalidTerms(f"quantity must be positive, got {quantity}")
    if isinstance(expiration, bool) or not isinstance(expiration, int):
        raise InvalidTerms(f"expiration must be an integer height, got {expiration!r}")
    if not isinstance(strike, Coin):
        raise InvalidTerms(f"strike must be a Coin, got {strike!r}")
    if not strike.amount.is_finite() or strike.amount <= Decimal("0"):
        raise InvalidTerms(f"strike must be positive, got {strike.amount}")
    if strike.denom != settlement_currency:
        raise InvalidTerms(
            f"strike is quoted in {strike.denom}, settlement currency is {settlement_currency}"
        )

    return OptionRecord(
        owner=owner,
        liquidity=liquidity_pool,
        expiration=expiration,
        is_put=bool(is_put),
        is_sell=bool(is_sell),
        strike=strike,
        quantity=quantity,
        settlement_currency=settlement_currency,
        collateral_currency=collateral_currency,
        funds_received_at_open=tuple(attached_funds),
        created_height=created_height,
    )


def is_in_the_money(record: OptionRecord, spot: Decimal) -> bool:
    """Calls are in the money strictly above strike, puts strictly below."""
    spot = to_decimal(spot)
    if record.is_put:
        return spot < record.strike.amount
    return spot > record.strike.amount


def get_option_intrinsic_value(record: OptionRecord, spot: Decimal) -> Decimal:
    """
    Intrinsic value of the whole position.

    For calls: max(0, spot - strike) × quantity
    For puts: max(0, strike - spot) × quantity
    """
    spot = to_decimal(spot)
    strike = record.strike.amount
    if record.is_put:
        intrinsic = max(Decimal("0"), strike - spot)
    else:
        intrinsic = max(Decimal("0"), spot - strike)
    return intrinsic * record.quantity


def get_option_moneyness(record: OptionRecord, spot: Decimal, atm_band: Decimal = Decimal("0.01")) -> str:
    """
    Moneyness status: 'ITM', 'ATM' or 'OTM'.

    ATM is a band of atm_band (default 1%) of the strike around the strike.
    """
    spot = to_decimal(spot)
    strike = record.strike.amount
    if abs(spot - strike) <= strike * atm_band:
        return MONEYNESS_ATM
    return MONEYNESS_ITM if is_in_the_money(record, spot) else MONEYNESS_OTM
