"""Progression event publishing tests (Redis mocked)."""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hscan.gamification.achievements import get_achievement
from hscan.gamification.events import (
    ACHIEVEMENT_UNLOCKED_CHANNEL,
    LEVEL_UP_CHANNEL,
    publish_achievement_unlocked,
    publish_level_up,
)

pytestmark = pytest.mark.asyncio


async def test_achievement_unlocked_payload():
    redis = AsyncMock()
    await publish_achievement_unlocked(redis, "u1", get_achievement("first_steps"))

    redis.publish.assert_awaited_once()
    channel, raw = redis.publish.await_args.args
    assert channel == ACHIEVEMENT_UNLOCKED_CHANNEL
    payload = json.loads(raw)
    assert payload["user_id"] == "u1"
    assert payload["achievement_id"] == "first_steps"
    assert payload["points"] == 50
    assert payload["rarity"] == "common"


async def test_level_up_payload():
    redis = AsyncMock()
    await publish_level_up(redis, "u1", 1, 2)

    channel, raw = redis.publish.await_args.args
    assert channel == LEVEL_UP_CHANNEL
    assert json.loads(raw) == {"user_id": "u1", "old_level": 1, "new_level": 2}


async def test_no_redis_is_a_no_op():
    await publish_level_up(None, "u1", 1, 2)


async def test_publish_failure_is_swallowed(caplog):
    redis = AsyncMock()
    redis.publish.side_effect = RedisConnectionError("down")

    await publish_level_up(redis, "u1", 1, 2)

    assert "Failed to publish" in caplog.text
