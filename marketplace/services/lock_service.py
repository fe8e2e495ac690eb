import uuid
from contextlib import contextmanager

import redis
from marketplace.utils.retry import redis_retry
from marketplace.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS
from marketplace.domain.errors import ConflictError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL, wiec tu jest get + porownanie + del wszystko naraz


class LockService:
    """
    -blokada koszyka na czas read-modify-write (add, update, merge)
    -zwalnianie locka tylko przez wlasciciela (token)
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, ttl: int = CART_LOCK_TTL_SECONDS):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl

    @redis_retry()
    def acquire(self, key: str, owner: str, ttl: int | None = None) -> bool:
        logger.debug(f"Acquire lock {key} for {owner}")
        #SET cart:user:1:lock "<token>" NX EX 10
        return bool(
            self.redis.set(
                name=key,
                value=owner,
                nx=True,
                ex=ttl or self.ttl,
            )
        )

    @redis_retry()
    def release(self, key: str, owner: str) -> bool:
        logger.debug(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)

    @contextmanager
    def hold(self, key: str):
        owner = uuid.uuid4().hex
        if not self.acquire(key, owner):
            raise ConflictError("CART_BUSY")
        try:
            yield
        finally:
            try:
                self.release(key, owner)
            except redis.RedisError as e:
                # lock i tak wygasnie po TTL
                logger.warning(f"Failed to release lock {key}: {e}")
