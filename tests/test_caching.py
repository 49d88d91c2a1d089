"""Tests for Redis caching implementation."""

import json
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import redis

from scheduling.core.redis_client import CacheManager
from scheduling.schemas.users import UserRole
from scheduling.services.user_service import UserService


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis client double."""
    return MagicMock()


def test_cache_manager_get_json(mock_redis):
    """Test CacheManager get_json method."""
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    assert cache_manager.get_json("user:1") is None
    mock_redis.get.assert_called_once_with("scheduling:user:1")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"role": "doctor", "is_active": true}'
    assert cache_manager.get_json("user:1") == {"role": "doctor", "is_active": True}


def test_cache_manager_drops_unreadable_entries(mock_redis):
    """Corrupt entries read as a miss and are deleted."""
    mock_redis.get.return_value = "{not json"
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("user:1") is None
    mock_redis.delete.assert_called_once_with("scheduling:user:1")


def test_cache_manager_set_json(mock_redis):
    """Test CacheManager set_json method."""
    cache_manager = CacheManager(redis_client=mock_redis, prefix="")
    test_data = {"role": "patient", "email": "pat@hospital.test"}

    # Test without TTL
    assert cache_manager.set_json("user:1", test_data) is True
    mock_redis.set.assert_called_once_with("user:1", json.dumps(test_data))

    # Test with TTL
    mock_redis.reset_mock()
    assert cache_manager.set_json("user:1", test_data, ttl=300) is True
    mock_redis.setex.assert_called_once_with("user:1", 300, json.dumps(test_data))


def test_cache_manager_delete(mock_redis):
    """Test CacheManager delete method."""
    cache_manager = CacheManager(redis_client=mock_redis, prefix="test")

    assert cache_manager.delete("user:1") is True
    mock_redis.delete.assert_called_once_with("test:user:1")


def test_cache_manager_swallows_redis_errors(mock_redis):
    """A broken cache behaves like an empty one."""
    failure = redis.ConnectionError("redis down")
    mock_redis.get.side_effect = failure
    mock_redis.set.side_effect = failure
    mock_redis.delete.side_effect = failure
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("user:1") is None
    assert cache_manager.set_json("user:1", {"a": 1}) is False
    assert cache_manager.delete("user:1") is False


@pytest.mark.asyncio
async def test_user_caching(db_session, doctor):
    """User lookups populate the cache and are served from it afterwards."""
    cache = MagicMock(spec=CacheManager)
    cache.get_json.return_value = None
    user_service = UserService(cache)

    user = await user_service.get_user_by_id(db_session, doctor.id)

    assert user.id == doctor.id
    assert user.role == UserRole.DOCTOR
    key = f"user:{doctor.id}"
    cache.get_json.assert_called_once_with(key)
    cache.set_json.assert_called_once()
    args, kwargs = cache.set_json.call_args
    assert args[0] == key
    assert args[1]["id"] == str(doctor.id)
    assert kwargs["ttl"] == UserService.USER_CACHE_TTL

    # Second lookup is answered by the cache
    cache.reset_mock()
    cache.get_json.return_value = args[1]

    cached = await user_service.get_user_by_id(db_session, doctor.id)

    assert cached.id == doctor.id
    assert cached.role == UserRole.DOCTOR
    cache.set_json.assert_not_called()


@pytest.mark.asyncio
async def test_user_lookup_without_cache(db_session, patient):
    """The service works without Redis."""
    user_service = UserService()

    user = await user_service.get_user_by_id(db_session, patient.id)

    assert user.email == patient.email
    assert user.is_active is True


@pytest.mark.asyncio
async def test_unknown_user_is_not_cached(db_session):
    """Misses are not written to the cache."""
    cache = MagicMock(spec=CacheManager)
    cache.get_json.return_value = None

    assert await UserService(cache).get_user_by_id(db_session, uuid4()) is None
    cache.set_json.assert_not_called()
