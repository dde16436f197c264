"""Cache wrapper behaviour with in-memory and failing clients."""

import json

import redis

from conftest import FakeRedis
from lastmile.services.cache import NEARBY_PATTERN, Cache, invalidate_offer, nearby_key, offer_key, user_profile_key


class BrokenRedis:
    def get(self, key: str) -> str | None:
        raise redis.ConnectionError("down")

    def setex(self, key: str, ttl: int, value: str) -> None:
        raise redis.ConnectionError("down")

    def delete(self, *keys: str) -> int:
        raise redis.ConnectionError("down")

    def scan_iter(self, match: str):
        raise redis.TimeoutError("slow")


def test_set_and_get_round_trip_with_kind_ttl() -> None:
    client = FakeRedis()
    cache = Cache(client, prefix="t:", ttls={"offer": 300})
    cache.set_json("offer", offer_key(7), {"id": 7})
    assert cache.get_json(offer_key(7)) == {"id": 7}
    assert client.ttls["t:offer:7"] == 300


def test_disabled_cache_is_a_no_op() -> None:
    cache = Cache(None)
    assert cache.enabled is False
    cache.set_json("offer", "offer:1", {"id": 1})
    assert cache.get_json("offer:1") is None
    cache.delete("offer:1")
    cache.delete_pattern(NEARBY_PATTERN)


def test_redis_failures_degrade_to_miss(caplog) -> None:
    cache = Cache(BrokenRedis(), prefix="t:")
    cache.set_json("offer", "offer:1", {"id": 1})
    assert cache.get_json("offer:1") is None
    cache.delete("offer:1")
    cache.delete_pattern(NEARBY_PATTERN)
    assert "[CACHE]" in caplog.text


def test_undecodable_entry_is_dropped() -> None:
    client = FakeRedis()
    client.store["t:offer:3"] = "{not json"
    cache = Cache(client, prefix="t:")
    assert cache.get_json("offer:3") is None
    assert "t:offer:3" not in client.store


def test_invalidate_offer_drops_offer_profiles_and_nearby_keys() -> None:
    client = FakeRedis()
    cache = Cache(client, prefix="t:", ttls={})
    for key in (offer_key(1), offer_key(2), user_profile_key(10), user_profile_key(20), user_profile_key(30)):
        client.store[f"t:{key}"] = json.dumps({})
    client.store["t:" + nearby_key(1.0, 2.0, 5, {"page": 1})] = "{}"

    invalidate_offer(cache, 1, business_id=10, rider_id=20)

    assert set(client.store) == {"t:offer:2", "t:user:profile:30"}


def test_nearby_key_is_stable_for_equal_filters() -> None:
    first = nearby_key(1.0, 2.0, 5, {"a": 1, "b": None})
    second = nearby_key(1.0, 2.0, 5, {"b": None, "a": 1})
    assert first == second
    assert first != nearby_key(1.0, 2.0, 5, {"a": 2, "b": None})
    assert first.startswith("offers:nearby:")
