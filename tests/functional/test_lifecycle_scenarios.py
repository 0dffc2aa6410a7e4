"""
test_lifecycle_scenarios.py - End-to-end lifecycle scenario tests

Tests complete option lifecycles on a ledger with a moving market:
- Long call bought, funded and expired in the money
- Long put expiring out of the money (collateral back)
- Short call closed early after a rally
- Short put assigned at expiry (collateral delivered)
- Several contracts sharing one ledger and oracle
"""

import pytest
from decimal import Decimal

from option_protocol import (
    Ledger, Coin, cash, asset,
    OptionContract, OptionConfig, OptionState,
    HeightSeriesPriceOracle, MarketQuote, OpenFundingPolicy,
    ExecuteResult, NotFound, price,
)


ORDINALS_PER_YEAR = 5_256_000


@pytest.fixture
def market():
    """ATOM path: 8.01 at launch, rally to 9.50, sell-off to 6.00 by expiry."""
    return HeightSeriesPriceOracle({
        "ATOM": [
            (0, MarketQuote(Decimal("8.01"), Decimal("1.00"))),
            (400, MarketQuote(Decimal("9.50"), Decimal("0.80"))),
            (900, MarketQuote(Decimal("6.00"), Decimal("1.20"))),
        ],
    })


@pytest.fixture
def network():
    """Production-mode ledger funded through issuance only."""
    ledger = Ledger("cosmos", verbose=False)
    ledger.register_unit(cash("USDC", "USD Coin", decimal_places=6))
    ledger.register_unit(asset("ATOM", "Cosmos", decimal_places=6))
    for wallet in ("alice", "carol", "pool"):
        ledger.register_wallet(wallet)
    ledger.issue("alice", "USDC", Decimal("5000"))
    ledger.issue("alice", "ATOM", Decimal("500"))
    ledger.issue("carol", "USDC", Decimal("5000"))
    ledger.issue("pool", "USDC", Decimal("250000"))
    ledger.issue("pool", "ATOM", Decimal("25000"))
    return ledger


def terms(owner="alice", **overrides):
    values = dict(
        owner=owner,
        strike=Coin(Decimal("8"), "USDC"),
        expiration=1000,
        is_put=False,
        is_sell=False,
        quantity=100,
        liquidity_pool="pool",
        settlement_currency="USDC",
        collateral_currency="ATOM",
    )
    values.update(overrides)
    return values


def fair(spot, vol, now, expiration=1000, strike="8", is_put=False):
    t = Decimal(expiration - now) / Decimal(ORDINALS_PER_YEAR)
    return price(Decimal(spot), Decimal(strike), t, Decimal(vol), Decimal("0.0021"), is_put)


def six(amount):
    return amount.quantize(Decimal("0.000001"))


class TestLongCallLifecycle:

    def test_funded_and_expired_in_the_money(self, network, market):
        market.add_quote("ATOM", 1000, MarketQuote(Decimal("9.25"), Decimal("1.00")))
        contract = OptionContract(network, market)

        network.advance_height(100)
        contract.create(**terms())
        contract.open_funding()
        premium = six(fair("8.01", "1.00", 100) * 100)

        assert network.get_balance("alice", "USDC") == Decimal("5000") + premium
        assert network.get_balance("alice", "ATOM") == Decimal("400")

        network.advance_height(1000)
        ack = contract.expire()

        # 100 × (9.25 - 8)
        assert ack.transfers[0].quantity == Decimal("125")
        assert network.get_balance("alice", "USDC") == Decimal("5125") + premium
        assert network.get_balance("pool", "USDC") == Decimal("249875") - premium
        assert contract.state is OptionState.TERMINAL
        assert network.verify_double_entry()["valid"]


class TestLongPutLifecycle:

    def test_expired_out_of_the_money_returns_collateral(self, network, market):
        market.add_quote("ATOM", 1000, MarketQuote(Decimal("8.40"), Decimal("1.00")))
        contract = OptionContract(network, market)
        contract.create(**terms(is_put=True))
        contract.open_funding()
        premium = six(fair("8.01", "1.00", 0, is_put=True) * 100)

        # Strike notional of 800 USDC posted, premium received
        assert network.get_balance("alice", "USDC") == Decimal("4200") + premium

        network.advance_height(1200)
        contract.expire()

        assert network.get_balance("alice", "USDC") == Decimal("5000") + premium
        assert network.get_balance("pool", "USDC") == Decimal("250000") - premium


class TestShortCallLifecycle:

    def test_closed_early_after_rally(self, network, market):
        contract = OptionContract(network, market)
        contract.create(**terms(is_sell=True))
        contract.open_funding()
        premium = six(fair("8.01", "1.00", 0) * 100)
        assert network.get_balance("alice", "USDC") == Decimal("5000") - premium

        network.advance_height(500)
        quote = contract.get_quote()
        assert quote.spot == Decimal("9.50")
        assert quote.moneyness == "ITM"
        assert quote.eligible_transition == "early_sale"

        ack = contract.early_sale("alice")
        value = six(fair("9.50", "0.80", 500) * 100)

        assert ack.attribute("fair_value") == str(fair("9.50", "0.80", 500))
        assert network.get_balance("alice", "USDC") == Decimal("5000") - premium - value
        assert network.get_balance("alice", "ATOM") == Decimal("600")
        with pytest.raises(NotFound):
            contract.get_quote()


class TestShortPutLifecycle:

    def test_assigned_at_expiry(self, network, market):
        contract = OptionContract(network, market)
        contract.create(**terms(owner="carol", is_put=True, is_sell=True))
        contract.open_funding()
        premium = six(fair("8.01", "1.00", 0, is_put=True) * 100)

        network.advance_height(1000)
        ack = contract.expire()

        # Spot 6.00 < strike: 100 ATOM delivered to the holder
        assert [(m.unit_symbol, m.quantity) for m in ack.transfers] == [("ATOM", Decimal("100"))]
        assert network.get_balance("carol", "ATOM") == Decimal("100")
        assert network.get_balance("carol", "USDC") == Decimal("5000") - premium


class TestSharedLedger:

    def test_independent_contracts(self, network, market):
        owner_only = OptionConfig(open_funding_policy=OpenFundingPolicy.OWNER_ONLY)
        calls = OptionContract(network, market, address="calls")
        puts = OptionContract(network, market, config=owner_only, address="puts")

        calls.create(**terms())
        puts.create(**terms(owner="carol", is_put=True))
        assert calls.open_funding().result == ExecuteResult.APPLIED
        assert puts.open_funding("carol").result == ExecuteResult.APPLIED

        network.advance_height(1000)
        calls.expire()
        puts.expire()

        assert calls.state is OptionState.TERMINAL
        assert puts.state is OptionState.TERMINAL
        for unit in ("USDC", "ATOM"):
            assert network.total_supply(unit) == Decimal("0")
        # Expiry transactions carry each contract's own key
        keys = {tx.origin.record_key for tx in network.transaction_log[-2:]}
        assert keys == {"calls/state", "puts/state"}
