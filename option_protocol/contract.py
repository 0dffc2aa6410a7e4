"""
contract.py - Option Lifecycle Controller

OptionContract is the entry point for the surrounding platform. It validates
each request, prices the option when the transition needs a fair value, asks
the settlement engine for the transfer batch, submits that batch to the ledger
and only then touches the record store.

States:
    UNINITIALIZED --create--> ACTIVE --early_sale | expire--> TERMINAL

open_funding runs in ACTIVE and exchanges funds without changing state.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
import itertools
from typing import Iterable, Optional, Set, Tuple, Union

from . import black_scholes
from .access import (
    check_create, check_open_funding, check_early_sale, check_expire,
    eligible_terminal_transition,
)
from .config import OptionConfig
from .core import (
    Coin, Move, PendingTransaction, Transaction, ExecuteResult,
    InvalidTerms, TransferFailed, to_decimal,
)
from .ledger import Ledger
from .logging_config import get_logger
from .option import OptionRecord, create_option_record, get_option_intrinsic_value, get_option_moneyness
from .pricing_source import PriceOracle, RiskFreeRateSource, ConstantRateSource, MarketQuote
from .settlement import compute_open_funding, compute_early_sale, compute_expiry_settlement
from .store import OptionStore

logger = get_logger(__name__)

_instance_numbers = itertools.count(1)


class OptionState(Enum):
    """Lifecycle state of a contract instance."""
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    TERMINAL = "terminal"


@dataclass(frozen=True, slots=True)
class Ack:
    """
    Successful response to a transition.

    Attributes:
        method: Transition name ("instantiate", "open_funding", "early_sale", "expire")
        attributes: Ordered (key, value) response attributes
        transfers: The moves the transition requested and the ledger executed
        result: Ledger outcome (None for transitions that move no funds)
        transaction: The executed ledger transaction, if one was recorded
    """
    method: str
    attributes: Tuple[Tuple[str, str], ...] = ()
    transfers: Tuple[Move, ...] = ()
    result: Optional[ExecuteResult] = None
    transaction: Optional[Transaction] = None

    def attribute(self, key: str) -> Optional[str]:
        """Value of the first attribute with this key, or None."""
        for k, v in self.attributes:
            if k == key:
                return v
        return None


@dataclass(frozen=True, slots=True)
class ContractInfo:
    """Name and version stamped at instantiation."""
    name: str
    version: str


@dataclass(frozen=True, slots=True)
class OptionQuote:
    """Read-only valuation of the open option at one height."""
    height: int
    spot: Decimal
    volatility: Decimal
    risk_free_rate: Decimal
    time_to_expiry: Decimal
    fair_value: Optional[Decimal]
    intrinsic_value: Decimal
    delta: Optional[Decimal]
    moneyness: str
    eligible_transition: str


class OptionContract:
    """
    A single-position option contract.

    One contract instance holds at most one option over its whole life: after a
    terminal transition the instance is spent, and a new option needs a new
    contract.

    Example:
        contract = OptionContract(ledger, StaticPriceOracle({
            "ATOM": MarketQuote(Decimal("8.01"), Decimal("1.0")),
        }))
        contract.create(owner="alice", strike=Coin(Decimal("8"), "USDC"),
                        expiration=1000, is_put=False, is_sell=False, quantity=10,
                        liquidity_pool="pool", settlement_currency="USDC",
                        collateral_currency="ATOM")
        contract.open_funding()
        ledger.advance_height(1000)
        contract.expire()
    """

    def __init__(
        self,
        ledger: Ledger,
        oracle: PriceOracle,
        rate_source: Optional[RiskFreeRateSource] = None,
        config: Optional[OptionConfig] = None,
        store: Optional[OptionStore] = None,
        address: Optional[str] = None,
    ):
        """
        Args:
            ledger: Host ledger executing transfers and providing the height
            oracle: Source of (spot, volatility) for the collateral currency
            rate_source: Risk-free rate source (default: config.risk_free_rate)
            config: Contract configuration (default: OptionConfig())
            store: Record store (default: a private OptionStore)
            address: Identity of this contract instance, used in audit origins
                and intent ids (default: a fresh "option_contract_<n>")
        """
        self.ledger = ledger
        self.oracle = oracle
        self.config = config or OptionConfig()
        self.rate_source = rate_source or ConstantRateSource(self.config.risk_free_rate)
        self.store = store if store is not None else OptionStore()
        self.address = address or f"option_contract_{next(_instance_numbers)}"
        self._info: Optional[ContractInfo] = None
        self._submitted: Set[str] = set()

    @property
    def record_key(self) -> str:
        return f"{self.address}/{self.config.store_key}"

    @property
    def state(self) -> OptionState:
        if self._info is None:
            return OptionState.UNINITIALIZED
        if self.config.store_key in self.store:
            return OptionState.ACTIVE
        return OptionState.TERMINAL

    # ========================================================================
    # TRANSITIONS
    # ========================================================================

    def create(
        self,
        owner: str,
        strike: Union[Coin, Decimal],
        expiration: int,
        is_put: bool,
        is_sell: bool,
        quantity: int,
        liquidity_pool: str,
        settlement_currency: str,
        collateral_currency: str,
        attached_funds: Iterable[Coin] = (),
    ) -> Ack:
        """
        Instantiate the option.

        Raises:
            InvalidTerms: If the terms are invalid or the contract was already
                instantiated (ExpiredTerms if expiration is not in the future)
        """
        if self._info is not None:
            raise InvalidTerms(f"contract {self.address} already holds an option; deploy a new one")
        if not isinstance(strike, Coin):
            try:
                strike = Coin(to_decimal(strike), settlement_currency)
            except (ArithmeticError, ValueError, TypeError) as e:
                raise InvalidTerms(
                    f"strike must be an amount of {settlement_currency!r}, got {strike!r}"
                ) from e

        now = self.ledger.current_height
        record = create_option_record(
            owner=owner,
            strike=strike,
            expiration=expiration,
            is_put=is_put,
            is_sell=is_sell,
            quantity=quantity,
            liquidity_pool=liquidity_pool,
            settlement_currency=settlement_currency,
            collateral_currency=collateral_currency,
            attached_funds=attached_funds,
            created_height=now,
        )
        check_create(record.expiration, now)
        for currency in (settlement_currency, collateral_currency):
            if currency not in self.ledger.units:
                raise InvalidTerms(f"currency {currency} is not registered with the ledger")

        self.store.save(self.config.store_key, record)
        self._info = ContractInfo(self.config.contract_name, self.config.contract_version)
        logger.info("Created %r at height %s", record, now)
        return Ack(
            method="instantiate",
            attributes=(("method", "instantiate"), ("owner", owner)),
        )

    def open_funding(self, caller: Optional[str] = None) -> Ack:
        """
        Exchange the premium (and collateral) that funds the open position.

        Raises:
            NotFound: If no option is open
            Unauthorized: If the funding policy rejects the caller, or the
                option has reached expiration
            TransferFailed: If the ledger rejects the transfers
        """
        record = self.store.load(self.config.store_key)
        now = self.ledger.current_height
        check_open_funding(record, caller, now, self.config.open_funding_policy)

        fair_value, quote, rate, t = self._fair_value(record, now)
        pending = compute_open_funding(self.ledger, record, fair_value, self.record_key)
        result, tx = self._submit(pending, "open_funding")

        logger.info("Funded %r: fair value %s (spot %s, vol %s, r %s, T %s)",
                    record, fair_value, quote.spot, quote.volatility, rate, t)
        return Ack(
            method="open_funding",
            attributes=(
                ("method", "open_funding"),
                ("fair_value", str(fair_value)),
                ("premium", str(fair_value * record.quantity)),
            ),
            transfers=_moved(pending, result),
            result=result,
            transaction=tx,
        )

    def early_sale(self, caller: str) -> Ack:
        """
        Unwind the position before expiry at its current fair value.

        Raises:
            NotFound: If no option is open
            Unauthorized: If caller is not the owner or the option has expired
            TransferFailed: If the ledger rejects the transfers
        """
        record = self.store.load(self.config.store_key)
        now = self.ledger.current_height
        check_early_sale(record, caller, now)

        fair_value, _, _, _ = self._fair_value(record, now)
        pending = compute_early_sale(self.ledger, record, fair_value, self.record_key)
        result, tx = self._submit(pending, "early_sale")

        self.store.remove(self.config.store_key)
        logger.info("Sold %r at fair value %s", record, fair_value)
        return Ack(
            method="early_sale",
            attributes=(("method", "early_sale"), ("fair_value", str(fair_value))),
            transfers=_moved(pending, result),
            result=result,
            transaction=tx,
        )

    def expire(self) -> Ack:
        """
        Settle the option on intrinsic value at or after expiration.

        Raises:
            NotFound: If no option is open
            Unauthorized: If the option has not reached expiration
            TransferFailed: If the ledger rejects the transfers
        """
        record = self.store.load(self.config.store_key)
        now = self.ledger.current_height
        check_expire(record, now)

        quote = self.oracle.get_quote(record.collateral_currency, now)
        pending = compute_expiry_settlement(self.ledger, record, quote.spot, self.record_key)
        result, tx = self._submit(pending, "expire")

        self.store.remove(self.config.store_key)
        logger.info("Expired %r at spot %s", record, quote.spot)
        return Ack(
            method="expire",
            attributes=(("method", "expire"), ("spot", str(quote.spot))),
            transfers=_moved(pending, result),
            result=result,
            transaction=tx,
        )

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_terms(self) -> OptionRecord:
        """
        Terms of the open option.

        Raises:
            NotFound: If no option is open
        """
        return self.store.load(self.config.store_key)

    def get_quote(self) -> OptionQuote:
        """
        Value the open option at the current height without moving funds.

        At or after expiration only intrinsic value is meaningful, so
        fair_value and delta are None.
        """
        record = self.store.load(self.config.store_key)
        now = self.ledger.current_height
        quote = self.oracle.get_quote(record.collateral_currency, now)
        rate = to_decimal(self.rate_source.get_rate(now))
        eligible = eligible_terminal_transition(record, now)

        fair_value = delta = None
        t = Decimal("0")
        if now < record.expiration:
            fair_value, quote, rate, t = self._fair_value(record, now)
            delta_fn = black_scholes.put_delta if record.is_put else black_scholes.call_delta
            delta = delta_fn(quote.spot, record.strike.amount, t, quote.volatility, rate)

        return OptionQuote(
            height=now,
            spot=quote.spot,
            volatility=quote.volatility,
            risk_free_rate=rate,
            time_to_expiry=t,
            fair_value=fair_value,
            intrinsic_value=get_option_intrinsic_value(record, quote.spot),
            delta=delta,
            moneyness=get_option_moneyness(record, quote.spot),
            eligible_transition=eligible,
        )

    def contract_info(self) -> ContractInfo:
        """
        Name and version stamped at instantiation.

        Raises:
            InvalidTerms: If the contract was never instantiated
        """
        if self._info is None:
            raise InvalidTerms(f"contract {self.address} has not been instantiated")
        return self._info

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _fair_value(self, record: OptionRecord, now: int) -> Tuple[Decimal, MarketQuote, Decimal, Decimal]:
        """Price one option unit at the current height."""
        quote = self.oracle.get_quote(record.collateral_currency, now)
        rate = to_decimal(self.rate_source.get_rate(now))
        t = self.config.years_until(record.expiration, now)
        fair_value = black_scholes.price(
            quote.spot, record.strike.amount, t, quote.volatility, rate, record.is_put
        )
        return fair_value, quote, rate, t

    def _submit(self, pending: PendingTransaction, method: str) -> Tuple[ExecuteResult, Optional[Transaction]]:
        """
        Hand the transfer batch to the ledger.

        ALREADY_APPLIED only counts as success for a batch this instance
        submitted before (a repeated open_funding at one height). Any other
        intent the ledger already knows was settled by someone else.

        Raises:
            TransferFailed: If the ledger rejects the batch or it was executed
                by another submitter. Nothing has been written at that point,
                so the record stays as it was.
        """
        result = self.ledger.execute(pending)
        if result is ExecuteResult.REJECTED:
            reason = self.ledger.last_rejection
            logger.warning("%s rejected by ledger %s: %s", method, self.ledger.name, reason)
            raise TransferFailed(f"{method} transfers rejected: {reason}", result, reason)
        if result is ExecuteResult.ALREADY_APPLIED and pending.intent_id not in self._submitted:
            reason = f"intent {pending.intent_id} was executed by another submitter"
            logger.warning("%s on %s: %s", method, self.address, reason)
            raise TransferFailed(f"{method} transfers not applied: {reason}", result, reason)
        self._submitted.add(pending.intent_id)

        tx = None
        for executed in reversed(self.ledger.transaction_log):
            if executed.intent_id == pending.intent_id:
                tx = executed
                break
        return result, tx


def _moved(pending: PendingTransaction, result: ExecuteResult) -> Tuple[Move, ...]:
    """Moves that actually ran: none when the ledger skipped the batch."""
    return pending.moves if result is ExecuteResult.APPLIED else ()
