from __future__ import annotations

import time
from typing import Dict, Tuple

# In-memory token bucket per client key (remote host).
# Default 100 requests per 15 minutes = capacity 100, refill 100/900 per second.
_buckets: Dict[str, Tuple[float, float]] = {}


def allow(
    client_key: str,
    capacity: float = 100.0,
    refill_per_sec: float = 100.0 / 900.0,
) -> bool:
    now = time.time()
    tokens, last_ts = _buckets.get(client_key, (capacity, now))
    tokens = min(capacity, tokens + (now - last_ts) * refill_per_sec)
    if tokens < 1.0:
        _buckets[client_key] = (tokens, now)
        return False
    _buckets[client_key] = (tokens - 1.0, now)
    return True


def bucket_params(max_requests: int, window_ms: int) -> Tuple[float, float]:
    """Translate a requests-per-window limit into (capacity, refill_per_sec)."""
    return float(max_requests), max_requests / (window_ms / 1000.0)


def reset() -> None:
    _buckets.clear()
