"""Per-shop cache for aggregate report views."""

import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class ReportCache:
    """Keeps computed reports for a while, keyed by ``(shop_id, report)``.

    Ledger and customer mutations invalidate the affected shop, or every
    shop when the change is visible across shops.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[Optional[int], Hashable], Tuple[float, Any]] = {}

    def get(self, shop_id: Optional[int], report: Hashable) -> Optional[Any]:
        entry = self._entries.get((shop_id, report))
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[(shop_id, report)]
            return None
        return value

    def set(self, shop_id: Optional[int], report: Hashable, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[(shop_id, report)] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, shop_id: Optional[int]) -> None:
        """Drop every report cached for one shop."""
        for key in [key for key in self._entries if key[0] == shop_id]:
            del self._entries[key]

    def clear(self) -> None:
        if self._entries:
            logger.debug("Clearing %d cached reports", len(self._entries))
        self._entries.clear()


_report_cache: Optional[ReportCache] = None


def get_report_cache() -> ReportCache:
    """Process-wide report cache.

    Entries live in this process only. Caching is switched off when more
    than one worker serves the app, as a mutation handled by one worker
    cannot invalidate the others.
    """
    global _report_cache
    if _report_cache is None:
        from components.core.config import get_settings
        settings = get_settings()
        ttl = settings.REPORT_CACHE_TTL_SECONDS
        if settings.WEB_CONCURRENCY > 1 and ttl > 0:
            logger.warning(
                "Report cache disabled: %d workers cannot share an in-process cache",
                settings.WEB_CONCURRENCY,
            )
            ttl = 0
        _report_cache = ReportCache(ttl)
    return _report_cache
