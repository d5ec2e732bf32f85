"""
Security audit trail for the login plugin.

Events are pushed to a Redis list and trimmed to the most recent ones.
Without a Redis client the audit trail is disabled and events are dropped.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

AUDIT_KEY = "auth:audit"
MAX_EVENTS = 10000


class AuditLog:
    """Append-only audit trail of authentication events."""

    def __init__(self, redis_client: Optional[Any] = None):
        """
        Initialize audit log.

        Args:
            redis_client: Async Redis client, or None to disable the trail
        """
        self.redis = redis_client

    @classmethod
    def from_url(cls, url: str) -> "AuditLog":
        """Create an audit log writing to the Redis server at ``url``."""
        return cls(redis.from_url(url, decode_responses=True))

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    async def record(self, event_type: str, data: dict) -> None:
        """
        Log security event for audit.

        Args:
            event_type: Type of security event
            data: Event data. Must never contain passwords or tokens.
        """
        if not self.redis:
            return

        event = {
            "type": event_type,
            "data": data,
            "timestamp": datetime.now(UTC).isoformat(),
        }

        # Store in Redis list for audit trail
        await self.redis.lpush(AUDIT_KEY, json.dumps(event, default=str))

        # Keep last events only
        await self.redis.ltrim(AUDIT_KEY, 0, MAX_EVENTS - 1)
