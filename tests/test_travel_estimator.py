"""Tests for TravelEstimator and the travel caches."""

import json
from datetime import datetime, timezone

import pytest
from redis import RedisError

from app.config import GeocodeFallback
from app.services.travel import (
    GeocodeFallbacks,
    MemoryTravelCache,
    RedisTravelCache,
    TravelEstimator,
    round_up_to_buffer,
)

from conftest import OFFICE

ARRIVAL = datetime(2025, 6, 9, 14, 10, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise RedisError("down")
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        if self.fail:
            raise RedisError("down")
        self.store[key] = value
        self.ttls[key] = ttl


class TestRoundUp:
    @pytest.mark.parametrize("minutes, expected", [(0, 30), (1, 30), (30, 30), (31, 60), (60, 60), (61, 90)])
    def test_rounds_up_to_half_hours(self, minutes, expected):
        assert round_up_to_buffer(minutes) == expected


class TestEstimator:
    @pytest.mark.asyncio
    async def test_one_way_minutes_round_up_seconds(self, estimator, maps_client):
        maps_client.seconds = 19 * 60 + 1
        assert await estimator.estimate_one_way_minutes("1 Ocean Dr") == 20

    @pytest.mark.asyncio
    async def test_buffer_for_twenty_minutes(self, estimator):
        assert await estimator.buffer_minutes("1 Ocean Dr") == 30

    @pytest.mark.asyncio
    async def test_arrival_time_is_the_routing_basis(self, estimator, maps_client):
        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL)
        origin, _, departure = maps_client.route_calls[0]
        assert origin == OFFICE
        assert departure == ARRIVAL

    @pytest.mark.asyncio
    async def test_same_hour_shares_cache_entry(self, estimator, maps_client):
        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL)
        await estimator.estimate_one_way_minutes(" 1 ocean dr ", ARRIVAL.replace(minute=50))
        assert len(maps_client.route_calls) == 1

        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL.replace(hour=15))
        assert len(maps_client.route_calls) == 2

    @pytest.mark.asyncio
    async def test_geocode_cached_for_process_life(self, estimator, maps_client):
        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL)
        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL.replace(hour=16))
        assert maps_client.geocode_calls == ["1 Ocean Dr"]

    @pytest.mark.asyncio
    async def test_failure_returns_default_and_caches_it(self, estimator, maps_client):
        maps_client.fail = True
        assert await estimator.estimate_one_way_minutes("1 Ocean Dr") == 30

        maps_client.fail = False
        maps_client.seconds = 50 * 60
        assert await estimator.estimate_one_way_minutes("1 Ocean Dr") == 30
        assert maps_client.route_calls == []

    @pytest.mark.asyncio
    async def test_missing_api_key_falls_back(self):
        from app.services.travel import MapsClient

        estimator = TravelEstimator(MapsClient(api_key=""), MemoryTravelCache(), office=OFFICE)
        assert await estimator.buffer_minutes("1 Ocean Dr") == 30

    @pytest.mark.asyncio
    async def test_configured_geocode_fallback(self, maps_client):
        fallbacks = GeocodeFallbacks([GeocodeFallback(match="Stuart", latitude=27.19, longitude=-80.25)])
        estimator = TravelEstimator(maps_client, MemoryTravelCache(), office=OFFICE, fallbacks=fallbacks)
        maps_client.failing_addresses.add("12 SE Osceola St, Stuart FL")
        maps_client.seconds = 45 * 60

        assert await estimator.estimate_one_way_minutes("12 SE Osceola St, Stuart FL") == 45
        _, destination, _ = maps_client.route_calls[0]
        assert (destination.latitude, destination.longitude) == (27.19, -80.25)

    @pytest.mark.asyncio
    async def test_last_known_good_shared_between_estimators(self, maps_client):
        fallbacks = GeocodeFallbacks()
        first = TravelEstimator(maps_client, MemoryTravelCache(), office=OFFICE, fallbacks=fallbacks)
        await first.estimate_one_way_minutes("1 Ocean Dr")

        maps_client.failing_addresses.add("1 Ocean Dr")
        second = TravelEstimator(maps_client, MemoryTravelCache(), office=OFFICE, fallbacks=fallbacks)
        maps_client.seconds = 40 * 60
        assert await second.estimate_one_way_minutes("1 Ocean Dr") == 40

    @pytest.mark.asyncio
    async def test_origin_is_part_of_the_key(self, estimator, maps_client):
        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL)
        await estimator.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL, origin="9 Palm Way")
        assert len(maps_client.route_calls) == 2
        assert "9 Palm Way" in maps_client.geocode_calls

    @pytest.mark.asyncio
    async def test_travel_event_windows(self, estimator):
        to = await estimator.travel_event_window("1 Ocean Dr", ARRIVAL, "to")
        back = await estimator.travel_event_window("1 Ocean Dr", ARRIVAL, "from")

        assert to.minutes == 30
        assert to.end == ARRIVAL
        assert (to.end - to.start).total_seconds() == 30 * 60
        assert back.start == ARRIVAL
        assert (back.end - back.start).total_seconds() == 30 * 60


class TestMemoryTravelCache:
    @pytest.mark.asyncio
    async def test_entry_expires_thirty_minutes_after_write(self):
        clock = FakeClock()
        cache = MemoryTravelCache(ttl_seconds=30 * 60, clock=clock)
        await cache.set("k", 25)

        clock.now += 30 * 60 - 1
        assert await cache.get("k") == 25

        clock.now += 1
        assert await cache.get("k") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_miss(self):
        assert await MemoryTravelCache().get("nope") is None

    @pytest.mark.asyncio
    async def test_write_drops_expired_keys_never_read_again(self):
        clock = FakeClock()
        cache = MemoryTravelCache(ttl_seconds=30 * 60, clock=clock)
        for hour in range(10, 14):
            await cache.set(f"OFFICE|1 OCEAN DR|2025-06-09T{hour}:00", 25)

        clock.now += 30 * 60
        await cache.set("OFFICE|1 OCEAN DR|2025-06-09T15:00", 30)

        assert len(cache) == 1
        assert await cache.get("OFFICE|1 OCEAN DR|2025-06-09T15:00") == 30

    @pytest.mark.asyncio
    async def test_fresh_entries_survive_a_sweep(self):
        clock = FakeClock()
        cache = MemoryTravelCache(ttl_seconds=30 * 60, clock=clock)
        await cache.set("old", 25)
        clock.now += 20 * 60
        await cache.set("recent", 25)

        clock.now += 10 * 60
        await cache.set("new", 25)

        assert len(cache) == 2
        assert await cache.get("recent") == 25


class TestRedisTravelCache:
    @pytest.mark.asyncio
    async def test_round_trip_with_ttl(self):
        redis = FakeRedis()
        cache = RedisTravelCache(redis, ttl_seconds=1800, clock=FakeClock())
        await cache.set("OFFICE|1 OCEAN DR|ANY", 25)

        assert await cache.get("OFFICE|1 OCEAN DR|ANY") == 25
        assert redis.ttls["travel:OFFICE|1 OCEAN DR|ANY"] == 1800
        assert json.loads(redis.store["travel:OFFICE|1 OCEAN DR|ANY"])["minutes"] == 25

    @pytest.mark.asyncio
    async def test_stale_entry_is_a_miss(self):
        clock = FakeClock()
        cache = RedisTravelCache(FakeRedis(), ttl_seconds=1800, clock=clock)
        await cache.set("k", 25)
        clock.now += 1800
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_redis_errors_degrade_to_miss(self):
        cache = RedisTravelCache(FakeRedis(fail=True))
        await cache.set("k", 25)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_estimator_shares_entries_through_redis(self, maps_client):
        redis = FakeRedis()
        first = TravelEstimator(maps_client, RedisTravelCache(redis), office=OFFICE, timeout=1.0)
        second = TravelEstimator(maps_client, RedisTravelCache(redis), office=OFFICE, timeout=1.0)

        assert await first.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL) == 20
        assert await second.estimate_one_way_minutes("1 Ocean Dr", ARRIVAL) == 20
        assert len(maps_client.route_calls) == 1
