"""
conftest.py - Shared pytest fixtures for option protocol tests

Provides common fixtures used across unit, conformance and functional tests:
- Funded ledgers with a settlement (USDC) and a collateral (ATOM) currency
- Oracles quoting the underlying
- Option terms and ready-made contracts
"""

import pytest
from decimal import Decimal
from typing import Any, Dict

from option_protocol import (
    Ledger, Coin, cash, asset,
    MarketQuote, StaticPriceOracle,
    OptionContract, OptionConfig,
    create_option_record,
)

from tests.fake_view import FakeView


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def build_chain(name: str = "chain", height: int = 0) -> Ledger:
    """Ledger with USDC/ATOM and funded alice, bob and pool wallets."""
    ledger = Ledger(name, initial_height=height, verbose=False, test_mode=True)
    ledger.register_unit(cash("USDC", "USD Coin", decimal_places=6))
    ledger.register_unit(asset("ATOM", "Cosmos", decimal_places=6))

    for wallet in ("alice", "bob", "pool"):
        ledger.register_wallet(wallet)

    ledger.issue("alice", "USDC", Decimal("10000"))
    ledger.issue("alice", "ATOM", Decimal("1000"))
    ledger.issue("bob", "USDC", Decimal("10000"))
    ledger.issue("pool", "USDC", Decimal("1000000"))
    ledger.issue("pool", "ATOM", Decimal("100000"))
    return ledger


def option_terms(**overrides: Any) -> Dict[str, Any]:
    """Terms of a 10-unit long ATOM call struck at 8 USDC, expiring at height 1000."""
    terms = dict(
        owner="alice",
        strike=Coin(Decimal("8"), "USDC"),
        expiration=1000,
        is_put=False,
        is_sell=False,
        quantity=10,
        liquidity_pool="pool",
        settlement_currency="USDC",
        collateral_currency="ATOM",
    )
    terms.update(overrides)
    return terms


def snapshot(ledger: Ledger) -> Dict[tuple, Decimal]:
    """All balances of all registered wallets."""
    return {
        (w, u): ledger.get_balance(w, u)
        for w in sorted(ledger.registered_wallets)
        for u in ledger.list_units()
    }


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def chain():
    """Funded ledger at height 0."""
    return build_chain()


@pytest.fixture
def oracle():
    """ATOM quoted at 8.01 with 100% volatility."""
    return StaticPriceOracle({"ATOM": MarketQuote(Decimal("8.01"), Decimal("1.00"))})


# =============================================================================
# CONTRACT FIXTURES
# =============================================================================

@pytest.fixture
def contract(chain, oracle):
    """Contract with default configuration and no option yet."""
    return OptionContract(chain, oracle)


@pytest.fixture
def long_call(contract):
    """Contract holding the default long call."""
    contract.create(**option_terms())
    return contract


@pytest.fixture
def make_contract(chain, oracle):
    """Factory creating default-address contracts over the shared ledger and oracle."""

    def _make(config: OptionConfig = None, **overrides):
        c = OptionContract(chain, oracle, config=config)
        c.create(**option_terms(**overrides))
        return c

    return _make


# =============================================================================
# FAKE VIEW FIXTURES
# =============================================================================

@pytest.fixture
def view():
    """FakeView at height 500 with default USDC/ATOM units."""
    return FakeView(
        balances={
            "alice": {"USDC": Decimal("10000"), "ATOM": Decimal("1000")},
            "pool": {"USDC": Decimal("1000000"), "ATOM": Decimal("100000")},
        },
        height=500,
    )


@pytest.fixture
def record():
    """The default long call as a bare record."""
    return create_option_record(**option_terms())
