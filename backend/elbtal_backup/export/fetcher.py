"""
Per-object document retrieval with isolated failure handling.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..object_store.base import ObjectNotFoundError, ObjectStore

logger = logging.getLogger(__name__)

# Failures that another attempt cannot fix.
PERMANENT_ERRORS = (ObjectNotFoundError, PermissionError, ValueError)


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of one fetch. Exactly one of `content` / `error` is set.
    """

    bucket: str
    path: str
    content: Optional[bytes] = None
    error: Optional[str] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None


class ObjectFetcher:
    """
    Download single objects from an ObjectStore without ever raising for
    per-object problems.

    Parameters
    ----------
    store:
        Object store to read from.
    attempts:
        Total attempts per object (1 = no retry).
    backoff_s:
        Delay before the second attempt; doubled for each further one.
    sleep:
        Injected for tests.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        attempts: int = 1,
        backoff_s: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.attempts = max(1, int(attempts))
        self.backoff_s = max(0.0, float(backoff_s))
        self._sleep = sleep

    def fetch(self, bucket: str, path: str) -> FetchResult:
        delay = self.backoff_s
        attempt = 0
        while True:
            attempt += 1
            try:
                data = self.store.download(bucket, path)
                return FetchResult(bucket, path, content=bytes(data), attempts=attempt)
            except PERMANENT_ERRORS as exc:
                logger.warning("Download of %s/%s failed: %s", bucket, path, exc)
                return FetchResult(bucket, path, error=str(exc), attempts=attempt)
            except Exception as exc:
                if attempt >= self.attempts:
                    logger.warning(
                        "Download of %s/%s failed after %d attempt(s): %s",
                        bucket, path, attempt, exc,
                    )
                    return FetchResult(bucket, path, error=str(exc), attempts=attempt)
                logger.info(
                    "Retrying %s/%s in %.2fs after: %s", bucket, path, delay, exc
                )
                self._sleep(delay)
                delay *= 2


__all__ = [
    "FetchResult",
    "ObjectFetcher",
]
