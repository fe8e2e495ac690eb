# marketplace/utils/retry.py
import logging

import redis
import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _retry_on(exc_types, attempts: int, base: float, cap: float):
    # po wyczerpaniu prob leci oryginalny wyjatek, nie RetryError
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base, min=base, max=cap),
        retry=retry_if_exception_type(exc_types),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def http_retry(attempts: int = 3):
    """Zewnetrzne API (email). Timeouty i 5xx po raise_for_status."""
    return _retry_on(requests.RequestException, attempts, base=0.3, cap=3)


def redis_retry(attempts: int = 3):
    return _retry_on(redis.RedisError, attempts, base=0.2, cap=2)
