"""
settlement.py - Pure Functions Deriving the Transfers of Each Transition

Every function takes a LedgerView (read-only) and the OptionRecord and returns
one PendingTransaction holding every leg of the transition, so the ledger
executes them all or none. Nothing here touches balances or the store.

Legs are rounded to the precision of the currency they move. A leg whose
rounded amount is zero is left out.
"""

from __future__ import annotations
from decimal import Decimal
from typing import List, Optional, Tuple

from .core import (
    LedgerView, Move, PendingTransaction, TransactionOrigin, OriginType,
    InvalidPricingInput,
    build_transaction, to_decimal,
)
from .option import OptionRecord, is_in_the_money


EVENT_OPEN_FUNDING = "OPEN_FUNDING"
EVENT_EARLY_SALE = "EARLY_SALE"
EVENT_EXPIRE = "EXPIRE"


def _origin(record_key: str, event_type: str, origin_type: OriginType = OriginType.CONTRACT) -> TransactionOrigin:
    return TransactionOrigin(
        origin_type=origin_type,
        source_id="option_contract",
        record_key=record_key,
        event_type=event_type,
    )


def _append_leg(
    view: LedgerView,
    moves: List[Move],
    amount: Decimal,
    currency: str,
    source: str,
    dest: str,
    contract_id: str,
) -> None:
    """Round the amount to the currency's precision and append a move if non-zero."""
    rounded = view.get_unit(currency).round(amount)
    if rounded > Decimal("0"):
        moves.append(Move(
            quantity=rounded,
            unit_symbol=currency,
            source=source,
            dest=dest,
            contract_id=contract_id,
        ))


def _validate_fair_value(fair_value: Decimal) -> Decimal:
    fair_value = to_decimal(fair_value)
    if not fair_value.is_finite() or fair_value < Decimal("0"):
        raise InvalidPricingInput(f"fair value must be finite and non-negative, got {fair_value}")
    return fair_value


def _collateral_leg(record: OptionRecord) -> Tuple[Decimal, str]:
    """
    The collateral a long-side holder posts at open.

    Calls are backed by quantity units of the collateral currency, puts by
    strike × quantity in the settlement currency.
    """
    if record.is_put:
        return record.strike_notional, record.settlement_currency
    return Decimal(record.quantity), record.collateral_currency


def compute_open_funding(
    view: LedgerView,
    record: OptionRecord,
    fair_value: Decimal,
    record_key: str = "state",
) -> PendingTransaction:
    """
    Compute the funds exchange that opens the position.

    Args:
        view: Read-only ledger view
        record: The open option
        fair_value: Model price of one option unit at the current height
        record_key: Store key of the option (for the audit origin)

    Returns:
        PendingTransaction with the premium leg and, for a buying holder,
        the collateral leg.

    Funding logic (premium = fair_value × quantity):
        is_sell:     owner pays the premium to the pool. No collateral.
        not is_sell: pool pays the premium to the owner, and the owner posts
                     collateral to the pool (quantity units of the collateral
                     currency for a call, strike × quantity for a put).
    """
    fair_value = _validate_fair_value(fair_value)
    premium = fair_value * record.quantity
    currency = record.settlement_currency
    leg_prefix = f"open_{record_key}"

    moves: List[Move] = []
    if record.is_sell:
        _append_leg(view, moves, premium, currency, record.owner, record.liquidity,
                    f"{leg_prefix}_premium")
    else:
        _append_leg(view, moves, premium, currency, record.liquidity, record.owner,
                    f"{leg_prefix}_premium")
        collateral, collateral_currency = _collateral_leg(record)
        _append_leg(view, moves, collateral, collateral_currency, record.owner, record.liquidity,
                    f"{leg_prefix}_collateral")

    return build_transaction(view, moves, origin=_origin(record_key, EVENT_OPEN_FUNDING))


def compute_early_sale(
    view: LedgerView,
    record: OptionRecord,
    fair_value: Decimal,
    record_key: str = "state",
) -> PendingTransaction:
    """
    Compute the unwind of the position before expiry at its current fair value.

    Unwind logic (value = fair_value × quantity):
        not is_sell: pool pays the owner the current value.
        is_sell:     owner pays the current value to the pool, and the pool
                     returns the collateral leg to the owner.
    """
    fair_value = _validate_fair_value(fair_value)
    value = fair_value * record.quantity
    currency = record.settlement_currency
    leg_prefix = f"sale_{record_key}"

    moves: List[Move] = []
    if not record.is_sell:
        _append_leg(view, moves, value, currency, record.liquidity, record.owner,
                    f"{leg_prefix}_value")
    else:
        _append_leg(view, moves, value, currency, record.owner, record.liquidity,
                    f"{leg_prefix}_premium")
        returned, returned_currency = _collateral_leg(record)
        _append_leg(view, moves, returned, returned_currency, record.liquidity, record.owner,
                    f"{leg_prefix}_return")

    return build_transaction(view, moves, origin=_origin(record_key, EVENT_EARLY_SALE))


def compute_expiry_settlement(
    view: LedgerView,
    record: OptionRecord,
    spot: Decimal,
    record_key: str = "state",
) -> PendingTransaction:
    """
    Compute settlement at expiry from intrinsic value only (no model price).

    Every branch is a single transfer from the pool to the owner.

    Call (ITM when spot > strike):
        not is_sell, ITM: quantity × (spot - strike) in settlement currency
        not is_sell, OTM: quantity units of collateral (collateral return)
        is_sell,     ITM: quantity × spot in settlement currency
        is_sell,     OTM: quantity units of collateral

    Put (ITM when spot < strike):
        not is_sell, ITM: quantity × (strike - spot) in settlement currency
        not is_sell, OTM: strike × quantity in settlement currency (collateral return)
        is_sell,     ITM: quantity units of collateral
        is_sell,     OTM: strike × quantity in settlement currency

    At spot == strike neither a call nor a put is in the money, so a long
    holder only gets the collateral back.

    Raises:
        InvalidPricingInput: If spot is not positive and finite
    """
    spot = to_decimal(spot)
    if not spot.is_finite() or spot <= Decimal("0"):
        raise InvalidPricingInput(f"spot price must be positive and finite, got {spot}")

    strike = record.strike.amount
    quantity = Decimal(record.quantity)
    settlement = record.settlement_currency
    collateral = record.collateral_currency
    itm = is_in_the_money(record, spot)

    amount: Decimal
    currency: str
    if not record.is_put:
        if itm and not record.is_sell:
            amount, currency, leg = quantity * (spot - strike), settlement, "payoff"
        elif itm:
            amount, currency, leg = quantity * spot, settlement, "payoff"
        else:
            amount, currency, leg = quantity, collateral, "collateral_return"
    else:
        if itm and not record.is_sell:
            amount, currency, leg = quantity * (strike - spot), settlement, "payoff"
        elif itm:
            amount, currency, leg = quantity, collateral, "delivery"
        else:
            amount, currency, leg = record.strike_notional, settlement, "collateral_return"

    moves: List[Move] = []
    _append_leg(view, moves, amount, currency, record.liquidity, record.owner,
                f"expire_{record_key}_{leg}")
    return build_transaction(view, moves, origin=_origin(record_key, EVENT_EXPIRE, OriginType.LIFECYCLE))


def describe_transfers(pending: PendingTransaction) -> List[Tuple[str, str, Decimal, str]]:
    """Render the legs as (from, to, amount, currency) instructions for a host."""
    return [(m.source, m.dest, m.quantity, m.unit_symbol) for m in pending.moves]


def net_flows(pending: PendingTransaction, wallet: str, currency: Optional[str] = None) -> Decimal:
    """Net amount a wallet receives from a transaction (negative if it pays)."""
    total = Decimal("0")
    for m in pending.moves:
        if currency is not None and m.unit_symbol != currency:
            continue
        if m.dest == wallet:
            total += m.quantity
        if m.source == wallet:
            total -= m.quantity
    return total
