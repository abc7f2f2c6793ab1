"""Push notification boundary.

Messages are published as JSON to a Redis channel; a separate transport
service owns delivery to APNs/FCM. Publishing is best-effort: a failure is
logged and never propagates into the mutation that produced the message.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field

import redis.asyncio as aioredis

from nutrigame.db.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushMessage:
    device_token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


class PushDispatcher:
    """Publishes push messages to ``channel`` on the given Redis connection."""

    def __init__(self, redis: aioredis.Redis | None, channel: str = "push:outbound") -> None:
        self._redis = redis
        self.channel = channel

    @classmethod
    def from_url(cls, url: str, channel: str = "push:outbound") -> PushDispatcher:
        client = aioredis.from_url(
            url,
            decode_responses=True,
            max_connections=20,
        )
        return cls(client, channel)

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def ping(self) -> bool:
        if self._redis is None:
            raise RuntimeError("Push dispatcher has no Redis connection")
        return await self._redis.ping()

    async def send(self, message: PushMessage) -> bool:
        """Publish one message. Returns False when it could not be handed off."""
        if self._redis is None:
            logger.debug("Push dispatcher has no connection, dropping %s", message.data.get("type"))
            return False
        try:
            await self._redis.publish(self.channel, json.dumps(asdict(message)))
        except Exception:
            logger.warning("Failed to publish push notification", exc_info=True)
            return False
        return True

    async def send_all(self, messages: Iterable[PushMessage]) -> int:
        sent = 0
        for message in messages:
            if await self.send(message):
                sent += 1
        return sent


def _reachable(user: User) -> bool:
    return bool(user.notifications_enabled and user.device_token)


# ---------------------------------------------------------------------------
# Message builders (None when the user cannot be reached)
# ---------------------------------------------------------------------------


def level_up_push(user: User, new_level: int) -> PushMessage | None:
    if not _reachable(user):
        return None
    return PushMessage(
        device_token=user.device_token,
        title="Level Up!",
        body=f"Congratulations! You reached level {new_level}!",
        data={"type": "level_up", "level": str(new_level)},
    )


def daily_bonus_push(user: User, bonus_xp: int) -> PushMessage | None:
    if not _reachable(user):
        return None
    return PushMessage(
        device_token=user.device_token,
        title="Daily bonus!",
        body=f"You completed every mission and earned a +{bonus_xp} XP bonus!",
        data={"type": "daily_bonus", "xp": str(bonus_xp)},
    )


def weekly_winner_push(user: User, weekly_xp: int) -> PushMessage | None:
    if not _reachable(user):
        return None
    return PushMessage(
        device_token=user.device_token,
        title="Congratulations, Champion!",
        body=f"You won the weekly ranking with {weekly_xp} XP!",
        data={"type": "weekly_winner"},
    )
