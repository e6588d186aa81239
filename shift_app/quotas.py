import logging
import random
import time as _pytime
from typing import Any, Dict, Hashable, Optional, Tuple

from gspread.exceptions import APIError

from .config import RETRY_ATTEMPTS, RETRY_BASE_SLEEP

log = logging.getLogger(__name__)

_RETRY_STATUS = (429, 500, 502, 503, 504)


def _is_retryable(e: Exception) -> bool:
    sc = getattr(getattr(e, "response", None), "status_code", None)
    if isinstance(e, APIError) and sc in _RETRY_STATUS:
        return True
    s = str(e).lower()
    return "429" in s or "quota exceeded" in s


def with_backoff(fn, *args, retries: int = RETRY_ATTEMPTS, base: float = RETRY_BASE_SLEEP, **kwargs):
    """Exponential backoff + jitter for gspread calls (handles 429/5xx)."""
    for i in range(retries):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            if not _is_retryable(e) or i == retries - 1:
                raise
            delay = base * (2 ** i) + random.uniform(0, 0.4)
            log.debug("Sheets API busy (%s); retry %d in %.1fs", e, i + 1, delay)
            _pytime.sleep(delay)


class ReadCache:
    """Small TTL cache for worksheet reads. One per SheetContext."""

    def __init__(self, ttl_sec: float, clock=_pytime.monotonic):
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry and (self._clock() - entry[0]) <= self.ttl_sec:
            return entry[1]
        self._entries.pop(key, None)
        return None

    def put(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Hashable = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
