from __future__ import annotations

from datetime import datetime, timezone
from typing import List

import pytest

from factories import make_user
from resume_store.cache import CacheAside, CacheService, MonthlyUsageCounter
from resume_store.cache.keys import curriculum_page_key, curriculum_pages_pattern, usage_key
from resume_store.cache.usage import start_of_next_month
from resume_store.entities import User
from resume_store.errors import CacheError, DeserializationError, SerializationError
from resume_store.pagination import CURRICULUM_SORT_FIELDS, normalize_page_request
from resume_store.telemetry import CACHE_DEGRADED


def test_set_then_get_returns_typed_value(fake_redis) -> None:
    cache = CacheService(fake_redis)
    user = make_user().model_copy(update={"id": "u-1"})

    cache.set("user:u-1", user, ttl=60)

    assert cache.get("user:u-1", User) == (True, user)
    assert fake_redis.ttls["user:u-1"] == 60


def test_miss_is_reported_without_error(fake_redis) -> None:
    assert CacheService(fake_redis).get("user:absent", User) == (False, None)


def test_non_positive_ttl_means_no_expiry(fake_redis) -> None:
    CacheService(fake_redis).set("flag", True, ttl=0)
    assert fake_redis.ttls["flag"] is None


def test_delete_pattern_removes_only_matching_keys_in_one_call(fake_redis) -> None:
    cache = CacheService(fake_redis)
    for key in ("curriculum:1", "curriculum:2", "user:1"):
        cache.set(key, {"key": key})

    removed = cache.delete_pattern("curriculum:*")

    assert removed == 2
    assert set(fake_redis.data) == {"user:1"}
    assert fake_redis.delete_calls == [("curriculum:1", "curriculum:2")]


def test_delete_pattern_without_matches(fake_redis) -> None:
    assert CacheService(fake_redis).delete_pattern("nothing:*") == 0
    assert fake_redis.delete_calls == []


def test_transport_failures_raise_cache_error(broken_redis) -> None:
    cache = CacheService(broken_redis)
    with pytest.raises(CacheError):
        cache.get("user:1", User)
    with pytest.raises(CacheError):
        cache.set("user:1", {"a": 1})
    with pytest.raises(CacheError):
        cache.delete_pattern("user:*")
    with pytest.raises(CacheError):
        cache.ping()


def test_undecodable_payload_raises_deserialization_error(fake_redis) -> None:
    fake_redis.data["user:1"] = b"{not json"
    with pytest.raises(DeserializationError) as excinfo:
        CacheService(fake_redis).get("user:1", User)
    assert excinfo.value.key == "user:1"


def test_unencodable_value_raises_serialization_error(fake_redis) -> None:
    with pytest.raises(SerializationError):
        CacheService(fake_redis).set("odd", {"handle": object()})
    assert "odd" not in fake_redis.data


def test_cache_aside_loads_once_then_serves_from_cache(fake_redis) -> None:
    aside = CacheAside(CacheService(fake_redis))
    calls: List[int] = []

    def loader() -> List[int]:
        calls.append(1)
        return [1, 2, 3]

    assert aside.fetch("numbers", List[int], loader, ttl=30) == [1, 2, 3]
    assert aside.fetch("numbers", List[int], loader, ttl=30) == [1, 2, 3]
    assert len(calls) == 1


def test_cache_aside_degrades_to_loader(broken_redis, events) -> None:
    aside = CacheAside(CacheService(broken_redis))

    assert aside.fetch("numbers", List[int], lambda: [7], ttl=30) == [7]
    aside.invalidate("numbers", patterns=["curriculums:u:*"])

    degraded = [event for event in events if event.name == CACHE_DEGRADED]
    assert [event.payload["operation"] for event in degraded] == ["get", "set", "delete", "delete_pattern"]


def test_disabled_cache_aside_always_loads() -> None:
    aside = CacheAside(None)
    assert aside.enabled is False
    assert aside.fetch("k", int, lambda: 5, ttl=30) == 5
    aside.invalidate("k", patterns=["*"])


def test_listing_page_keys_follow_normalized_request() -> None:
    request = normalize_page_request(0, 500, "bogus", "asc", allowed_sort_fields=CURRICULUM_SORT_FIELDS)

    key = curriculum_page_key("u-1", request)

    assert key == "curriculums:u-1:1:10:created_at:ASC"
    assert key.startswith(curriculum_pages_pattern("u-1")[:-1])


def test_usage_counter_expires_at_next_month(fake_redis) -> None:
    counter = MonthlyUsageCounter(fake_redis)
    now = datetime(2026, 3, 31, 23, 59, tzinfo=timezone.utc)

    assert counter.increment("u-1", "ai_requests", now) == 1
    assert counter.increment("u-1", "ai_requests", now) == 2

    key = usage_key("u-1", "ai_requests", now)
    assert key == "usage:u-1:2026-03:ai_requests"
    assert fake_redis.expire_at[key] == int(datetime(2026, 4, 1, tzinfo=timezone.utc).timestamp())
    assert counter.current("u-1", "ai_requests", now) == 2
    assert counter.current("u-1", "other", now) == 0


def test_next_month_rolls_over_the_year() -> None:
    assert start_of_next_month(datetime(2026, 12, 15, tzinfo=timezone.utc)) == datetime(
        2027, 1, 1, tzinfo=timezone.utc
    )


def test_usage_counter_failure_is_a_cache_error(broken_redis) -> None:
    with pytest.raises(CacheError):
        MonthlyUsageCounter(broken_redis).increment("u-1", "ai_requests")
