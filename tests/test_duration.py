"""Tests for DurationPolicy quotes."""

import pytest

from app.services.duration import (
    DurationPolicy,
    DurationQuote,
    DurationRequest,
    base_minutes_for_square_footage,
    parse_int,
    price_surcharge_minutes,
)


class BrokenEstimator:
    async def buffer_minutes(self, address, arrival_time=None, origin=None):
        raise RuntimeError("maps down")


class TestBaseMinutes:
    @pytest.mark.parametrize(
        "sqft, expected",
        [(1200, 60), (2999, 60), (3000, 90), (3999, 90), (4000, 120), (9000, 120), (None, 120)],
    )
    def test_square_footage_bands(self, sqft, expected):
        assert base_minutes_for_square_footage(sqft) == expected

    def test_parse_int_strips_commas(self):
        assert parse_int("1,250,000") == 1_250_000
        assert parse_int("2500 sq ft") == 2500
        assert parse_int("abc") is None
        assert parse_int(None) is None


class TestPriceSurcharge:
    def test_thresholds(self):
        assert price_surcharge_minutes(999_999) == 0
        assert price_surcharge_minutes(1_000_000) == 30
        assert price_surcharge_minutes(4_999_999) == 30
        assert price_surcharge_minutes(5_000_000) == 60
        assert price_surcharge_minutes(None) == 0


class TestQuote:
    @pytest.mark.asyncio
    async def test_without_address_has_no_travel(self, estimator, maps_client):
        quote = await DurationPolicy(estimator).quote(square_footage=2500)

        assert quote == DurationQuote(base_minutes=60)
        assert quote.total_minutes == 60
        assert maps_client.route_calls == []

    @pytest.mark.asyncio
    async def test_price_string_with_commas(self, estimator):
        quote = await DurationPolicy(estimator).quote(square_footage="3,500", property_price="1,200,000")

        assert quote.base_minutes == 90
        assert quote.price_surcharge_minutes == 30
        assert quote.total_minutes == 120

    @pytest.mark.asyncio
    async def test_invalid_price_adds_nothing(self, estimator):
        quote = await DurationPolicy(estimator).quote(square_footage=2000, property_price="call us")
        assert quote.price_surcharge_minutes == 0

    @pytest.mark.asyncio
    async def test_invalid_square_footage_defaults_to_two_hours(self, estimator):
        quote = await DurationPolicy(estimator).quote(square_footage="unknown")
        assert quote.base_minutes == 120

    @pytest.mark.asyncio
    async def test_address_adds_round_trip_buffer(self, estimator):
        # 20 minutes one-way rounds up to a 30-minute buffer
        quote = await DurationPolicy(estimator).quote(square_footage=2500, address="1 Ocean Dr, Jupiter FL")

        assert quote.travel_buffer_minutes == 30
        assert quote.appointment_minutes == 60
        assert quote.total_minutes == 120

    @pytest.mark.asyncio
    async def test_estimator_error_uses_default_buffer(self):
        quote = await DurationPolicy(BrokenEstimator()).quote(
            square_footage=5000, property_price=6_000_000, address="1 Ocean Dr"
        )

        assert quote.total_minutes == 120 + 60 + 2 * 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "service_type, expected",
        [("standard", 120), ("extended", 180), ("drone", 60), (None, 120)],
    )
    async def test_service_type_fallback(self, estimator, service_type, expected):
        quote = await DurationPolicy(estimator).quote(service_type=service_type)
        assert quote.base_minutes == expected

    @pytest.mark.asyncio
    async def test_service_type_still_adds_travel(self, estimator):
        quote = await DurationPolicy(estimator).quote(service_type="extended", address="1 Ocean Dr")
        assert quote.total_minutes == 180 + 60

    @pytest.mark.asyncio
    async def test_square_footage_wins_over_service_type(self, estimator):
        quote = await DurationPolicy(estimator).quote(square_footage=2000, service_type="extended")
        assert quote.base_minutes == 60

    @pytest.mark.asyncio
    async def test_monotonic_in_square_footage(self, estimator):
        policy = DurationPolicy(estimator)
        totals = [
            (await policy.quote(square_footage=sqft, address="1 Ocean Dr")).total_minutes
            for sqft in range(500, 8000, 250)
        ]
        assert totals == sorted(totals)

    @pytest.mark.asyncio
    async def test_quote_request(self, estimator):
        request = DurationRequest(square_footage=4200, property_price="5,500,000")
        quote = await DurationPolicy(estimator).quote_request(request)
        assert quote.total_minutes == 180
