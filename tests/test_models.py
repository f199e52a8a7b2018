"""
Unit tests for data models.
"""

import dataclasses
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cl_position_manager.core.errors import InvalidRangeError
from cl_position_manager.models import (
    EventKind,
    FeeRecord,
    HoldingsBalance,
    LifecycleEvent,
    Position,
    PriceQuote,
    RangeConfiguration,
    Token,
)


class TestToken:
    """Test cases for Token model."""

    def test_valid_token(self):
        token = Token(address="0xabc", symbol="WBTC", decimals=8)
        token.validate()

        assert token.to_units(150_000_000) == Decimal('1.5')

    @pytest.mark.parametrize("kwargs", [
        {"address": "", "symbol": "X", "decimals": 6},
        {"address": "0xabc", "symbol": "", "decimals": 6},
        {"address": "0xabc", "symbol": "X", "decimals": 19},
    ])
    def test_invalid_token(self, kwargs):
        with pytest.raises(ValueError):
            Token(**kwargs).validate()


class TestPosition:
    """Test cases for Position model."""

    def test_valid_position(self):
        position = Position(identifier=1, tick_lower=-600, tick_upper=600, liquidity_amount=10)
        position.validate(60)

        assert position.is_in_range(0)
        assert position.is_in_range(-600)
        assert not position.is_in_range(600)

    def test_unordered_ticks(self):
        with pytest.raises(InvalidRangeError):
            Position(identifier=1, tick_lower=600, tick_upper=-600, liquidity_amount=0).validate(60)

    def test_misaligned_ticks(self):
        with pytest.raises(InvalidRangeError):
            Position(identifier=1, tick_lower=-610, tick_upper=600, liquidity_amount=0).validate(60)

    def test_negative_liquidity(self):
        with pytest.raises(ValueError):
            Position(identifier=1, tick_lower=-600, tick_upper=600, liquidity_amount=-1).validate(60)


class TestRangeConfiguration:
    """Test cases for RangeConfiguration model."""

    @pytest.mark.parametrize("percent", ["0", "100", "-1"])
    def test_bounds(self, percent):
        with pytest.raises(InvalidRangeError):
            RangeConfiguration(range_percent=Decimal(percent), tick_spacing=60).validate()

    def test_to_dict(self):
        config = RangeConfiguration(range_percent=Decimal('15'), tick_spacing=60)
        assert config.to_dict() == {"range_percent": "15", "tick_spacing": 60}


class TestValueObjects:
    """Test cases for quotes, holdings, fee records and events."""

    def test_price_quote_scaling(self):
        quote = PriceQuote(value=6_500_012_345_678, observed_at=datetime.now(timezone.utc), decimals=8)
        assert quote.price == Decimal('65000.12345678')

    def test_holdings_empty(self):
        assert HoldingsBalance(0, 0).is_empty
        assert not HoldingsBalance(0, 1).is_empty

    def test_fee_record_is_immutable(self):
        record = FeeRecord(amount_a=1, amount_b=2)

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.amount_a = 5

        assert record.to_dict()["usd_value"] is None

    def test_event_to_dict(self):
        event = LifecycleEvent(kind=EventKind.POSITION_CLOSED, data={"position_id": 3})
        data = event.to_dict()

        assert data["kind"] == "position_closed"
        assert data["data"] == {"position_id": 3}
