"""
Conservation Conformance Tests

INVARIANT: Settlement never creates or destroys value.

    ∀ transition T, ∀ currency u:
        Σ balances(u) after T = Σ balances(u) before T

Every leg moves value between the holder and the pool, so their combined
holdings of each currency are unchanged by the whole lifecycle.
"""

import pytest
from hypothesis import given, settings, note, HealthCheck
from hypothesis import strategies as st
from decimal import Decimal

from option_protocol import (
    Coin, OptionContract, StaticPriceOracle, MarketQuote, net_flows,
)
from tests.conftest import build_chain, option_terms


# =============================================================================
# STRATEGIES
# =============================================================================

@st.composite
def lifecycles(draw):
    """Random terms, market and the height of the terminal transition."""
    expiration = draw(st.integers(min_value=10, max_value=100_000))
    return {
        "is_put": draw(st.booleans()),
        "is_sell": draw(st.booleans()),
        "quantity": draw(st.integers(min_value=1, max_value=50)),
        "strike": draw(st.decimals(min_value=Decimal("1"), max_value=Decimal("20"), places=2)),
        "spot": draw(st.decimals(min_value=Decimal("0.5"), max_value=Decimal("40"), places=2)),
        "settle_spot": draw(st.decimals(min_value=Decimal("0.5"), max_value=Decimal("40"), places=2)),
        "volatility": draw(st.decimals(min_value=Decimal("0.05"), max_value=Decimal("2"), places=2)),
        "expiration": expiration,
        "terminal_height": draw(st.integers(min_value=1, max_value=2 * expiration)),
    }


def pair_holdings(ledger, currency):
    return ledger.get_balance("alice", currency) + ledger.get_balance("pool", currency)


# =============================================================================
# CONSERVATION PROPERTY TESTS
# =============================================================================

class TestConservationProperties:
    """Property-based tests for the conservation invariant."""

    @given(lifecycles())
    @settings(max_examples=150, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_lifecycle_conserves_every_currency(self, scenario):
        """
        PROPERTY: create → open_funding → (early_sale | expire) conserves
        the holder + pool total of each currency, and total supply stays zero.
        """
        note(f"scenario: {scenario}")
        ledger = build_chain()
        oracle = StaticPriceOracle({"ATOM": MarketQuote(scenario["spot"], scenario["volatility"])})
        contract = OptionContract(ledger, oracle)
        contract.create(**option_terms(
            is_put=scenario["is_put"],
            is_sell=scenario["is_sell"],
            quantity=scenario["quantity"],
            strike=Coin(scenario["strike"], "USDC"),
            expiration=scenario["expiration"],
        ))

        before = {u: pair_holdings(ledger, u) for u in ("USDC", "ATOM")}

        contract.open_funding()
        for u in before:
            assert pair_holdings(ledger, u) == before[u]

        ledger.advance_height(scenario["terminal_height"])
        oracle.update_quote("ATOM", scenario["settle_spot"], scenario["volatility"])
        if scenario["terminal_height"] < scenario["expiration"]:
            contract.early_sale("alice")
        else:
            contract.expire()

        for u in before:
            assert pair_holdings(ledger, u) == before[u]
            assert ledger.total_supply(u) == Decimal("0")
        assert ledger.verify_double_entry()["valid"]


class TestConservationExamples:
    """Explicit conservation examples."""

    @pytest.mark.parametrize("is_put,is_sell", [
        (False, False), (False, True), (True, False), (True, True),
    ])
    def test_open_funding_is_zero_sum(self, chain, oracle, is_put, is_sell):
        contract = OptionContract(chain, oracle)
        contract.create(**option_terms(is_put=is_put, is_sell=is_sell))
        before = {u: pair_holdings(chain, u) for u in ("USDC", "ATOM")}
        ack = contract.open_funding()

        assert ack.transfers
        for currency, total in before.items():
            assert pair_holdings(chain, currency) == total
            assert net_flows(ack.transaction, "alice", currency) == -net_flows(ack.transaction, "pool", currency)
