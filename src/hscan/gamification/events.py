"""Progression events broadcast over Redis pub/sub.

The app's unlock modal and level-up toast subscribe to these channels. Delivery
is best effort: a Redis failure is logged and never fails the user's action.
"""

from __future__ import annotations

import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from hscan.gamification.achievements import Achievement

logger = logging.getLogger(__name__)

ACHIEVEMENT_UNLOCKED_CHANNEL = "pubsub:achievement_unlocked"
LEVEL_UP_CHANNEL = "pubsub:level_up"


async def _publish(redis: Redis | None, channel: str, payload: dict) -> None:
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload))
    except (RedisError, OSError):
        logger.warning("Failed to publish %s event", channel, exc_info=True)


async def publish_achievement_unlocked(
    redis: Redis | None,
    user_id: str,
    achievement: Achievement,
) -> None:
    await _publish(redis, ACHIEVEMENT_UNLOCKED_CHANNEL, {
        "user_id": user_id,
        "achievement_id": achievement.id,
        "title": achievement.title,
        "icon": achievement.icon,
        "rarity": achievement.rarity,
        "points": achievement.points,
    })


async def publish_level_up(
    redis: Redis | None,
    user_id: str,
    old_level: int,
    new_level: int,
) -> None:
    await _publish(redis, LEVEL_UP_CHANNEL, {
        "user_id": user_id,
        "old_level": old_level,
        "new_level": new_level,
    })
