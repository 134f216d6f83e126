"""Redis connection and utilities."""

import redis

from carrental.config import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW, REDIS_CONFIG


class RedisClient:
    def __init__(self):
        self.client = redis.Redis(**REDIS_CONFIG)

    def rate_limit_check(self, client_id: str, scope: str = "global") -> bool:
        """Check if client has exceeded rate limit. Returns True if allowed, False if rate limit exceeded."""
        key = f"rate_limit:{client_id}:{scope}"
        count = self.client.get(key)
        if count is None:
            # first request, set counter with expiry
            self.client.setex(key, RATE_LIMIT_WINDOW, 1)
            return True
        count = int(count)
        if count < RATE_LIMIT_REQUESTS:
            self.client.incr(key)
            return True
        return False

    def revoke_token(self, jti: str, ttl: int) -> bool:
        """Blacklist a token id until it would have expired anyway."""
        return self.client.setex(f"revoked_token:{jti}", max(ttl, 1), 1)

    def is_token_revoked(self, jti: str) -> bool:
        return self.client.exists(f"revoked_token:{jti}") > 0


# Singleton instance
redis_client = RedisClient()
