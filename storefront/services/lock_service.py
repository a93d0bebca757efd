import uuid
from contextlib import contextmanager
from typing import Iterator

import redis
from tenacity import Retrying, retry_if_result, stop_after_delay, wait_fixed

from storefront.exceptions import CartBusyError
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS, CART_LOCK_WAIT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one Lua call: Redis runs scripts atomically, so nobody
# can slip in between GET and DEL and lose a lock that was re-acquired
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Per-cart mutual exclusion.

    - acquire: SET key token NX EX ttl
    - release: only by the holder of the token (Lua)
    - cart_lock(): waits a bounded time for the lock, raises CartBusyError
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(cart_id: str) -> str:
        return f"cart:{cart_id}:lock"

    @redis_retry()
    def acquire_cart_lock(self, cart_id: str, token: str, ttl: int) -> bool:
        # ex: the lock expires on its own if the holder dies mid-request
        return bool(self.redis.set(name=self._key(cart_id), value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_cart_lock(self, cart_id: str, token: str) -> bool:
        res = self.redis.eval(_RELEASE_LUA, 1, self._key(cart_id), token)
        return bool(res)

    @contextmanager
    def cart_lock(
        self,
        cart_id: str,
        ttl: int = CART_LOCK_TTL_SECONDS,
        wait: float = CART_LOCK_WAIT_SECONDS,
    ) -> Iterator[str]:
        token = uuid.uuid4().hex
        waiter = Retrying(
            stop=stop_after_delay(wait),
            wait=wait_fixed(0.05),
            retry=retry_if_result(lambda acquired: not acquired),
            retry_error_callback=lambda state: False,
        )
        if not waiter(self.acquire_cart_lock, cart_id, token, ttl):
            logger.warning(f"Cart {cart_id} lock not acquired within {wait}s")
            raise CartBusyError()

        logger.debug(f"Acquired lock for cart {cart_id}")
        try:
            yield token
        finally:
            self._release(cart_id, token)

    def _release(self, cart_id: str, token: str) -> None:
        # whatever ran under the lock may be committed already; the TTL frees the key
        try:
            released = self.release_cart_lock(cart_id, token)
        except redis.RedisError as e:
            logger.error(f"Could not release lock for cart {cart_id}, it expires in its TTL: {e}")
            return

        if not released:
            logger.warning(f"Lock for cart {cart_id} expired before release")
