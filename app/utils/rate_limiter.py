import logging
import time
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding window rate limiter kept in process memory.

    Entries per key are (timestamp, count) buckets; with several workers each
    process keeps its own window.
    """

    def __init__(self, window_size: int = 60, max_requests: int = 60):
        """
        Initialize a rate limiter

        Args:
            window_size: Time window in seconds
            max_requests: Maximum number of requests allowed within the window
        """
        self.window_size = window_size
        self.max_requests = max_requests
        self._store: Dict[str, List[Tuple[float, int]]] = {}

    def is_rate_limited(self, key: str) -> Tuple[bool, int]:
        """
        Check if a request should be rate limited, counting it when allowed

        Returns:
            Tuple of (is_limited, retry_after)
            - is_limited: True if the request should be rate limited
            - retry_after: Seconds to wait before retrying (0 if not limited)
        """
        now = time.time()
        window_start = now - self.window_size

        buckets = [
            (timestamp, count)
            for timestamp, count in self._store.get(key, [])
            if timestamp > window_start
        ]
        self._store[key] = buckets

        total_requests = sum(count for _, count in buckets)
        if total_requests < self.max_requests:
            # one bucket per second keeps the list short under load
            if buckets and now - buckets[-1][0] < 1:
                timestamp, count = buckets[-1]
                buckets[-1] = (timestamp, count + 1)
            else:
                buckets.append((now, 1))
            return False, 0

        oldest_timestamp = buckets[0][0]
        retry_after = max(1, int(oldest_timestamp + self.window_size - now) + 1)
        return True, retry_after

    def reset(self) -> None:
        self._store.clear()
