"""Single-flight guard for periodic jobs.

A run that finds the previous run of the same job still active is skipped,
never queued. The lock lives in the Django cache so it holds across Celery
worker processes when the cache is Redis-backed.
"""

import logging
import uuid
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


class SingleFlightGuard:
    """Non-blocking, expiring lock owned by one scheduled job."""

    key_prefix = "single_flight:"

    def __init__(self, name: str, timeout: int = None, cache_backend=None):
        self.name = name
        self.timeout = timeout or getattr(settings, "SCHEDULER_LOCK_TIMEOUT", 60)
        self._cache = cache_backend or cache
        self._token = None

    @property
    def key(self) -> str:
        return f"{self.key_prefix}{self.name}"

    def acquire(self) -> bool:
        token = uuid.uuid4().hex
        # cache.add only writes when the key is absent
        if self._cache.add(self.key, token, self.timeout):
            self._token = token
            return True
        return False

    def release(self):
        if self._token is None:
            return
        if self._cache.get(self.key) == self._token:
            self._cache.delete(self.key)
        self._token = None

    def is_held(self) -> bool:
        return self._cache.get(self.key) is not None

    @contextmanager
    def hold(self):
        """
        Yield True when this run owns the guard, False when it must be skipped.
        """
        acquired = self.acquire()
        if not acquired:
            logger.warning("Previous %s run still active, skipping this run", self.name)
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
