"""
Core types shared by every part of the option protocol.

- LedgerView: the read-only face of the host ledger
- Coin, Move, PendingTransaction, Transaction, Unit: frozen value types
- the option error taxonomy and the host ledger errors
- cash() / asset(): currency factories

Nothing here mutates a balance; the Ledger is the only writer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_DOWN, getcontext
from enum import Enum
import hashlib
from typing import List, Set, Optional, Protocol, Tuple, FrozenSet, runtime_checkable


# Settlement amounts decide real transfers, so every Decimal operation runs in
# one fixed context. Nothing else in the package touches the global context.
_OPTION_DECIMAL_CONTEXT = getcontext()
_OPTION_DECIMAL_CONTEXT.prec = 50
_OPTION_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# Issuer of every currency; the only wallet allowed below zero.
SYSTEM_WALLET = "system"

UNIT_TYPE_CASH = "CASH"
UNIT_TYPE_ASSET = "ASSET"

# Cash rounds to nearest-even, collateral rounds toward zero.
DECIMAL_ROUNDING = {
    UNIT_TYPE_CASH: ROUND_HALF_EVEN,
    UNIT_TYPE_ASSET: ROUND_DOWN,
}


def to_decimal(value) -> Decimal:
    """Convert int/float/str input to Decimal, passing Decimals through."""
    return value if isinstance(value, Decimal) else Decimal(str(value))


@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to the host ledger.

    Settlement functions take a LedgerView to declare that they only read the
    current height, balances and currency definitions. Ledger implements it;
    tests use FakeView.
    """

    @property
    def current_height(self) -> int:
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        ...

    def list_wallets(self) -> Set[str]:
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        ...


class ExecuteResult(Enum):
    """
    Outcome of Ledger.execute.

    APPLIED: every move applied.
    ALREADY_APPLIED: the intent_id was executed before; nothing moved.
    REJECTED: validation failed; nothing moved.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    CONTRACT = "contract"     # open funding and early sale
    LIFECYCLE = "lifecycle"   # expiration settlement
    SYSTEM = "system"         # issuance


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for host ledger errors."""
    pass


class UnitNotRegistered(LedgerError):
    pass


class WalletNotRegistered(LedgerError):
    pass


class OptionError(Exception):
    """Base exception for option lifecycle errors."""
    pass


class InvalidTerms(OptionError, ValueError):
    """Creation parameters are invalid. Nothing is persisted."""
    pass


class Unauthorized(OptionError):
    """Caller identity or timing precondition failed. No state change."""
    pass


class ExpiredTerms(InvalidTerms, Unauthorized):
    """Terms describe an option whose expiration is not in the future."""
    pass


class NotFound(OptionError, KeyError):
    """Operation on a record that does not exist or was already settled."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "option not found"


class InvalidPricingInput(OptionError, ValueError):
    """Pricing model was given a non-positive or non-finite input."""
    pass


class TransferFailed(OptionError, LedgerError):
    """The host rejected the transfer batch. Record state is untouched."""

    def __init__(self, message: str, result: Optional[ExecuteResult] = None, reason: str = ""):
        super().__init__(message)
        self.result = result
        self.reason = reason


# ============================================================================
# VALUE TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Coin:
    """An amount of one currency, e.g. a strike of 8.00 USDC."""
    amount: Decimal
    denom: str

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_decimal(self.amount))
        if not self.denom or not self.denom.strip():
            raise ValueError("Coin denom cannot be empty")

    def __repr__(self) -> str:
        return f"Coin({self.amount} {self.denom})"


@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Why a transaction exists, kept for audit and folded into its intent_id.

    Attributes:
        origin_type: CONTRACT, LIFECYCLE or SYSTEM
        source_id: Contract name or "issuance"
        record_key: Key of the option record the transfers settle
        event_type: "OPEN_FUNDING", "EARLY_SALE", "EXPIRE" or "ISSUE"
    """
    origin_type: OriginType
    source_id: str
    record_key: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.record_key:
            parts.append(f"key={self.record_key}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


@dataclass(frozen=True, slots=True)
class Move:
    """
    One leg: quantity of unit_symbol from source to dest.

    contract_id names the leg (e.g. "open_alice_premium") so executed
    transactions can be read back leg by leg.
    """
    quantity: Decimal
    unit_symbol: str
    source: str
    dest: str
    contract_id: str

    def __post_init__(self):
        for name in ('source', 'dest', 'unit_symbol', 'contract_id'):
            value = getattr(self, name)
            if not value or not value.strip():
                raise ValueError(f"Move {name} cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if not self.quantity.is_finite() or self.quantity <= 0:
            raise ValueError(f"Move quantity must be finite and positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonical(d: Decimal) -> str:
    """Decimal("1.0") and Decimal("1.00") hash the same."""
    normalized = d.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def _compute_intent_id(moves: Tuple[Move, ...], origin: TransactionOrigin, height: int) -> str:
    """
    Content hash of a transfer batch.

    Built from the origin, the height and the legs in sorted order, so the
    same transition asked for twice at one height hashes identically.
    """
    parts = [
        f"origin:{origin.origin_type.value}:{origin.source_id}",
        f"height:{height}",
        f"key:{origin.record_key or ''}",
        f"event:{origin.event_type or ''}",
    ]
    legs = sorted(
        f"{_canonical(m.quantity)}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}"
        for m in moves
    )
    parts.extend(f"move:{leg}" for leg in legs)
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    Every leg of one transition, not yet executed.

    intent_id is computed from the content when not given.
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    height: int
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(
                self, 'intent_id', _compute_intent_id(self.moves, self.origin, self.height)
            )

    def is_empty(self) -> bool:
        return not self.moves

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """Wrap moves in a PendingTransaction stamped with the view's current height."""
    if origin is None:
        origin = TransactionOrigin(OriginType.CONTRACT, "contract")
    return PendingTransaction(moves=tuple(moves), origin=origin, height=view.current_height)


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed transfer batch as recorded in the ledger's transaction log.

    height is when the batch was built, execution_height when it was applied.
    contract_ids collects the leg names of the moves.
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    height: int
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_height: int
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.contract_ids is None:
            object.__setattr__(self, 'contract_ids', frozenset(m.contract_id for m in self.moves))

    def __repr__(self) -> str:
        rows = [
            f" Transaction: {self.exec_id}",
            None,
            f"   intent_id : {self.intent_id}",
            f"   height    : {self.height} (executed at {self.execution_height})",
            f"   origin    : {self.origin}",
            None,
        ]
        rows.extend(
            f"   {m.contract_id}: {m.quantity} {m.unit_symbol} {m.source} → {m.dest}"
            for m in self.moves
        )
        width = max(80, max(len(r) for r in rows if r) + 2)
        lines = ["", f"┌{'─' * width}┐"]
        for row in rows:
            lines.append(f"├{'─' * width}┤" if row is None else f"│{row.ljust(width)}│")
        lines.append(f"└{'─' * width}┘")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    A currency the ledger holds balances of.

    decimal_places=None disables rounding.
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: Decimal = Decimal("0")
    max_balance: Decimal = Decimal("Infinity")
    decimal_places: Optional[int] = None

    def round(self, value: Decimal) -> Decimal:
        if self.decimal_places is None:
            return value
        quantum = Decimal(10) ** -self.decimal_places
        return to_decimal(value).quantize(quantum, rounding=DECIMAL_ROUNDING.get(self.unit_type, ROUND_HALF_EVEN))


def cash(symbol: str, name: str, decimal_places: int = 6) -> Unit:
    """Settlement currency (premiums, cash payoffs). Cannot be overdrawn."""
    return Unit(symbol=symbol, name=name, unit_type=UNIT_TYPE_CASH, decimal_places=decimal_places)


def asset(symbol: str, name: str, decimal_places: int = 0) -> Unit:
    """
    Collateral currency, e.g. the underlying delivered for calls.

    Rounds toward zero so a leg never credits more than the source holds.
    """
    return Unit(symbol=symbol, name=name, unit_type=UNIT_TYPE_ASSET, decimal_places=decimal_places)
