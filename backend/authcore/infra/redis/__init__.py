from authcore.infra.redis.redis_denylist_store import RedisTokenDenylistStore
from authcore.infra.redis.redis_event_publisher import RedisEventPublisher
from authcore.infra.redis.redis_one_time_token_store import RedisOneTimeTokenStore
from authcore.infra.redis.redis_rate_limiter import RedisRateLimiter
from authcore.infra.redis.redis_token_family_store import RedisTokenFamilyStore
from authcore.infra.redis.redis_token_version_store import RedisTokenVersionStore
from authcore.infra.redis.redis_user_cache import RedisUserCache

__all__ = [
    "RedisEventPublisher",
    "RedisOneTimeTokenStore",
    "RedisRateLimiter",
    "RedisTokenDenylistStore",
    "RedisTokenFamilyStore",
    "RedisTokenVersionStore",
    "RedisUserCache",
]
