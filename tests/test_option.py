"""
test_option.py - Unit tests for option.py

Tests:
- Term validation in create_option_record
- OptionRecord derived properties and serialization
- Moneyness and intrinsic value helpers
"""

import pytest
from decimal import Decimal

from option_protocol import (
    Coin, InvalidTerms,
    OptionRecord, create_option_record,
    is_in_the_money, get_option_intrinsic_value, get_option_moneyness,
)
from option_protocol.option import MONEYNESS_ITM, MONEYNESS_ATM, MONEYNESS_OTM
from tests.conftest import option_terms


class TestCreateOptionRecord:
    """Tests for term validation."""

    def test_valid_terms(self):
        record = create_option_record(**option_terms())
        assert record.owner == "alice"
        assert record.liquidity == "pool"
        assert record.strike == Coin(Decimal("8"), "USDC")
        assert record.quantity == 10
        assert record.expiration == 1000
        assert record.is_put is False
        assert record.is_sell is False
        assert record.funds_received_at_open == ()

    def test_attached_funds_recorded(self):
        funds = [Coin(Decimal("5"), "USDC"), Coin(Decimal("1"), "ATOM")]
        record = create_option_record(attached_funds=funds, **option_terms())
        assert record.funds_received_at_open == tuple(funds)

    def test_created_height_recorded(self):
        record = create_option_record(created_height=42, **option_terms())
        assert record.created_height == 42

    @pytest.mark.parametrize("overrides", [
        {"owner": ""},
        {"owner": "   "},
        {"liquidity_pool": ""},
        {"liquidity_pool": "alice"},
        {"settlement_currency": ""},
        {"collateral_currency": ""},
        {"quantity": 0},
        {"quantity": -3},
        {"quantity": 1.5},
        {"quantity": True},
        {"expiration": 10.5},
        {"expiration": "1000"},
        {"strike": Coin(Decimal("0"), "USDC")},
        {"strike": Coin(Decimal("-1"), "USDC")},
        {"strike": Coin(Decimal("Infinity"), "USDC")},
        {"strike": Decimal("8")},
        {"strike": Coin(Decimal("8"), "ATOM")},
    ])
    def test_invalid_terms_rejected(self, overrides):
        with pytest.raises(InvalidTerms):
            create_option_record(**option_terms(**overrides))

    def test_invalid_terms_is_value_error(self):
        with pytest.raises(ValueError):
            create_option_record(**option_terms(quantity=0))


class TestOptionRecord:
    """Tests for OptionRecord properties."""

    def test_immutable(self, record):
        with pytest.raises(Exception):
            record.quantity = 20

    def test_option_type_and_side(self):
        call = create_option_record(**option_terms())
        put = create_option_record(**option_terms(is_put=True, is_sell=True))
        assert (call.option_type, call.side) == ("call", "buy")
        assert (put.option_type, put.side) == ("put", "sell")

    def test_strike_notional(self, record):
        assert record.strike_notional == Decimal("80")

    def test_to_dict(self, record):
        d = record.to_dict()
        assert d["owner"] == "alice"
        assert d["strike"] == {"amount": "8", "denom": "USDC"}
        assert d["quantity"] == 10
        assert d["funds_received_at_open"] == []

    def test_repr(self, record):
        text = repr(record)
        assert "buy 10 call" in text
        assert "exp=1000" in text


class TestMoneyness:
    """Tests for the valuation helpers."""

    def test_call_in_the_money_strictly_above_strike(self, record):
        assert is_in_the_money(record, Decimal("8.01"))
        assert not is_in_the_money(record, Decimal("8"))
        assert not is_in_the_money(record, Decimal("7.99"))

    def test_put_in_the_money_strictly_below_strike(self):
        put = create_option_record(**option_terms(is_put=True))
        assert is_in_the_money(put, Decimal("7.99"))
        assert not is_in_the_money(put, Decimal("8"))
        assert not is_in_the_money(put, Decimal("8.01"))

    def test_intrinsic_value_whole_position(self, record):
        # (9 - 8) × 10
        assert get_option_intrinsic_value(record, Decimal("9")) == Decimal("10")
        assert get_option_intrinsic_value(record, Decimal("7")) == Decimal("0")

    def test_put_intrinsic_value(self):
        put = create_option_record(**option_terms(is_put=True))
        # (8 - 6.5) × 10
        assert get_option_intrinsic_value(put, Decimal("6.5")) == Decimal("15.0")

    def test_moneyness_labels(self, record):
        assert get_option_moneyness(record, Decimal("9")) == MONEYNESS_ITM
        assert get_option_moneyness(record, Decimal("8.05")) == MONEYNESS_ATM
        assert get_option_moneyness(record, Decimal("7")) == MONEYNESS_OTM

    def test_moneyness_custom_band(self, record):
        assert get_option_moneyness(record, Decimal("8.5"), atm_band=Decimal("0.1")) == MONEYNESS_ATM
