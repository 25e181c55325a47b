# carts/services/lock_service.py
import redis

from carts.utils.logging import get_logger
from carts.utils.retry import redis_retry
from carts.utils.settings import REDIS_URL

logger = get_logger(__name__)

# compare-and-delete in one Lua call, so a lock that expired and was taken by
# another request is never released by the previous holder
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Short-lived per-user lock serializing cart creation:
    -acquire with SET NX EX
    -release only by the token holder
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def user_key(user_id) -> str:
        return f"cart:create:user:{user_id}"

    @redis_retry()
    def acquire_user_lock(self, user_id, token: str, ttl: int) -> bool:
        key = self.user_key(user_id)
        logger.debug(f"Acquire lock {key}")
        # SET cart:create:user:<id> <token> NX EX <ttl>
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_user_lock(self, user_id, token: str) -> bool:
        key = self.user_key(user_id)
        logger.debug(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
