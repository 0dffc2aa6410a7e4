"""
ledger.py - Host Ledger for Option Settlement

The Ledger stands in for the host chain the option contract runs on. It keeps
wallet balances per currency, owns the block-height clock and applies each
PendingTransaction as one all-or-nothing batch. Nothing else in the package
writes a balance.

Money only enters through issue(), which debits the system wallet, so the
supply of every currency summed over all wallets stays at zero.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Set, Tuple, Any
from decimal import Decimal

from .core import (
    Move, Transaction, Unit,
    PendingTransaction, TransactionOrigin, OriginType,
    ExecuteResult,
    build_transaction,
    SYSTEM_WALLET,
    LedgerError, UnitNotRegistered, WalletNotRegistered,
    to_decimal,
)


def _zero_balances() -> Dict[str, Decimal]:
    return defaultdict(lambda: Decimal("0"))


class Ledger:
    """
    In-memory host ledger: balances, block height and atomic transfer batches.

    Satisfies LedgerView, so settlement functions can read balances and
    currency precision from it without being able to move anything.

    A batch is applied only after every leg passes validation (registered
    currency, registered wallets, no balance pushed under its currency's
    minimum). A batch whose intent_id was already applied is skipped, which
    makes retries of the same transition harmless.

    Not thread-safe: callers serialize access.

    Example:
        ledger = Ledger("cosmos")
        ledger.register_unit(cash("USDC", "USD Coin"))
        ledger.register_wallet("pool")
        ledger.issue("pool", "USDC", Decimal("1000"))
    """

    def __init__(
        self,
        name: str,
        initial_height: int = 0,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Args:
            name: Chain name, stamped on every executed transaction
            initial_height: Block height the clock starts at
            verbose: Print registrations and executed batches to the console
            test_mode: Allow set_balance(), which bypasses double entry
        """
        if initial_height < 0:
            raise ValueError(f"initial_height must be non-negative, got {initial_height}")
        self.name = name
        self.verbose = verbose
        self.units: Dict[str, Unit] = {}
        self.balances: Dict[str, Dict[str, Decimal]] = {SYSTEM_WALLET: _zero_balances()}
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.transaction_log: List[Transaction] = []
        self.last_rejection: str = ""
        self._applied_intents: Set[str] = set()
        self._current_height = initial_height
        self._test_mode = test_mode
        self._next_sequence = 0

    # ------------------------------------------------------------------
    # LedgerView
    # ------------------------------------------------------------------

    @property
    def current_height(self) -> int:
        return self._current_height

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Balance of one currency in one wallet (zero if never touched).

        Raises:
            WalletNotRegistered, UnitNotRegistered
        """
        self._require_wallet(wallet_id)
        self.get_unit(unit_symbol)
        return self.balances[wallet_id].get(unit_symbol, Decimal("0"))

    def list_wallets(self) -> Set[str]:
        return set(self.registered_wallets)

    def get_unit(self, symbol: str) -> Unit:
        try:
            return self.units[symbol]
        except KeyError:
            raise UnitNotRegistered(f"Unit {symbol} not registered") from None

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def list_units(self) -> List[str]:
        return sorted(self.units)

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def total_supply(self, unit_symbol: str) -> Decimal:
        """
        Sum of one currency over every wallet, system wallet included.

        Zero whenever all balance changes went through issue() or execute().
        """
        self.get_unit(unit_symbol)
        total = Decimal("0")
        for wallet in sorted(self.registered_wallets):
            total += self.balances[wallet].get(unit_symbol, Decimal("0"))
        return total

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Check that every registered currency nets to zero across all wallets.

        Returns:
            {'valid': bool, 'supplies': {symbol: total}, 'unbalanced': [symbol, ...]}
        """
        supplies = {symbol: self.total_supply(symbol) for symbol in self.list_units()}
        unbalanced = [symbol for symbol, total in supplies.items() if total != 0]
        return {'valid': not unbalanced, 'supplies': supplies, 'unbalanced': unbalanced}

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def advance_height(self, new_height: int) -> None:
        """Move the clock to new_height. Raises ValueError if that is backwards."""
        if new_height < self._current_height:
            raise ValueError(
                f"Cannot move height backwards: {new_height} < {self._current_height}"
            )
        self._current_height = new_height

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def register_wallet(self, wallet_id: str) -> str:
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = _zero_balances()
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> None:
        """
        Overwrite a balance directly. Test mode only.

        Raises:
            LedgerError: outside test mode
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode; fund wallets with issue()"
            )
        self._require_wallet(wallet_id)
        self.get_unit(unit_symbol)
        self.balances[wallet_id][unit_symbol] = to_decimal(quantity)

    def issue(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> ExecuteResult:
        """Mint quantity into wallet_id, debiting the system wallet."""
        origin = TransactionOrigin(OriginType.SYSTEM, "issuance", event_type="ISSUE")
        move = Move(to_decimal(quantity), unit_symbol, SYSTEM_WALLET, wallet_id,
                    f"issue_{unit_symbol}_{wallet_id}_{self._next_sequence}")
        return self.execute(build_transaction(self, [move], origin=origin))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Apply every move of pending, or none of them.

        Returns:
            APPLIED: moves applied and logged (an empty batch is APPLIED too)
            ALREADY_APPLIED: intent_id seen before, nothing moved
            REJECTED: validation failed, reason left in last_rejection
        """
        self.last_rejection = ""
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self._applied_intents:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        reason = self._rejection_reason(pending)
        if reason:
            self.last_rejection = reason
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            moves=pending.moves,
            origin=pending.origin,
            height=pending.height,
            intent_id=pending.intent_id,
            exec_id=f"exec:{self.name}:{sequence:012d}:{self._current_height}",
            ledger_name=self.name,
            execution_height=self._current_height,
            sequence_number=sequence,
        )
        for move in tx.moves:
            self._shift(move.source, move.unit_symbol, -move.quantity)
            self._shift(move.dest, move.unit_symbol, move.quantity)

        self.transaction_log.append(tx)
        self._applied_intents.add(tx.intent_id)
        if self.verbose:
            self._trace(tx)
        return ExecuteResult.APPLIED

    def _rejection_reason(self, pending: PendingTransaction) -> str:
        """Empty string if pending can be applied, otherwise why not."""
        if pending.height > self._current_height:
            return "future height"

        net: Dict[Tuple[str, str], Decimal] = defaultdict(lambda: Decimal("0"))
        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return f"unit not registered: {move.unit_symbol}"
            for wallet in (move.source, move.dest):
                if wallet not in self.registered_wallets:
                    return f"wallet not registered: {wallet}"
            unit = self.units[move.unit_symbol]
            net[(move.source, move.unit_symbol)] = unit.round(net[(move.source, move.unit_symbol)] - move.quantity)
            net[(move.dest, move.unit_symbol)] = unit.round(net[(move.dest, move.unit_symbol)] + move.quantity)

        # The system wallet goes negative by design (it is the issuer)
        for (wallet, symbol), delta in sorted(net.items()):
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[symbol]
            after = unit.round(self.balances[wallet][symbol] + delta)
            if after < unit.min_balance:
                return f"{wallet} {symbol}: {after} < min {unit.min_balance}"
            if after > unit.max_balance:
                return f"{wallet} {symbol}: {after} > max {unit.max_balance}"
        return ""

    def _shift(self, wallet_id: str, unit_symbol: str, delta: Decimal) -> None:
        unit = self.units[unit_symbol]
        self.balances[wallet_id][unit_symbol] = unit.round(self.balances[wallet_id][unit_symbol] + delta)

    def _require_wallet(self, wallet_id: str) -> None:
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")

    def _trace(self, tx: Transaction) -> None:
        """Print the transaction box with an APPLIED footer."""
        lines = repr(tx).split('\n')
        width = len(lines[-1]) - 2
        lines[-1] = f"├{'─' * width}┤"
        lines.append(f"│{' ✓ APPLIED'.ljust(width)}│")
        lines.append(f"└{'─' * width}┘")
        print("\n".join(lines))

    def __repr__(self) -> str:
        return (f"Ledger({self.name!r}, height={self._current_height}, "
                f"{len(self.registered_wallets)} wallets, {len(self.units)} units, "
                f"{len(self.transaction_log)} txs)")
