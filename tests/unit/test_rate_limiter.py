"""
Unit tests for the hybrid memory + Redis rate limiter.
"""

from unittest.mock import MagicMock

import pytest

from pestbook import rate_limiter
from pestbook.rate_limiter import check_rate_limit, reset_memory_cache


@pytest.fixture(autouse=True)
def clean_cache():
    reset_memory_cache()
    yield
    reset_memory_cache()


@pytest.fixture
def mock_redis():
    client = MagicMock()
    client.get.return_value = None
    client.ttl.return_value = -2
    return client


def test_allows_up_to_limit_then_denies(mock_redis):
    results = [check_rate_limit("booking_create:1.2.3.4", 3, 60, mock_redis) for _ in range(4)]
    assert [allowed for allowed, _, _ in results] == [True, True, True, False]
    assert results[-1][1] == 3


def test_keys_are_independent(mock_redis):
    check_rate_limit("availability:a", 1, 60, mock_redis)
    allowed, _, _ = check_rate_limit("availability:b", 1, 60, mock_redis)
    assert allowed


def test_seeds_count_from_redis(mock_redis):
    mock_redis.get.return_value = "5"
    mock_redis.ttl.return_value = 30
    allowed, count, ttl = check_rate_limit("booking_create:x", 5, 60, mock_redis)
    assert not allowed
    assert count == 5
    assert 0 < ttl <= 30


def test_redis_read_failure_falls_back_to_memory(mock_redis):
    mock_redis.get.side_effect = ConnectionError("down")
    allowed, count, _ = check_rate_limit("booking_create:y", 2, 60, mock_redis)
    assert allowed
    assert count == 1


def test_window_reset(mock_redis, monkeypatch):
    now = [1_000_000]
    monkeypatch.setattr(rate_limiter.time, "time", lambda: now[0])
    assert check_rate_limit("k", 1, 60, mock_redis)[0]
    assert not check_rate_limit("k", 1, 60, mock_redis)[0]
    now[0] += 61
    assert check_rate_limit("k", 1, 60, mock_redis)[0]


def test_syncs_counter_to_redis(mock_redis, monkeypatch):
    monkeypatch.setattr(rate_limiter.time, "time", lambda: 2_000_000)
    rate_limiter.memory_cache["sync"] = {
        "count": 0,
        "reset_time": 2_000_060,
        "last_redis_sync": 0,
    }
    check_rate_limit("sync", 10, 60, mock_redis)
    mock_redis.set.assert_called_once_with("sync", 1, ex=60)
