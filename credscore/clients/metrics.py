"""
Credscore — Metrics sink
Per-signal evaluation durations and whole-calculation durations.

observe_* are synchronous and never raise: they run inside evaluator
cleanup, including when an evaluator is cancelled at the deadline.
RedisMetrics buffers observations and writes them in one pipeline on flush().

Keys:
    cred:metrics:signal:{signal_name}     -> hash {count, total_ms}
    cred:metrics:calculation:{target_type} -> hash {count, total_ms}
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import structlog
from redis import asyncio as aioredis

from credscore.config import settings

logger = structlog.get_logger()


class MetricsSink:
    """No-op sink."""

    def observe_signal(self, name: str, duration_ms: float):
        pass

    def observe_calculation(self, target_type: str, duration_ms: float):
        pass

    async def flush(self):
        pass


class InMemoryMetrics(MetricsSink):
    def __init__(self):
        self.signals: Dict[str, List[float]] = defaultdict(list)
        self.calculations: Dict[str, List[float]] = defaultdict(list)

    def observe_signal(self, name: str, duration_ms: float):
        self.signals[name].append(duration_ms)

    def observe_calculation(self, target_type: str, duration_ms: float):
        self.calculations[target_type].append(duration_ms)


class RedisMetrics(MetricsSink):
    def __init__(self, redis_url: Optional[str] = None, client=None):
        self._url = redis_url or settings.REDIS_URL
        self._client = client
        self._pending: List[Tuple[str, float]] = []
        self._prefix = "cred:metrics"

    def _key(self, *parts) -> str:
        return ":".join([self._prefix] + list(parts))

    def observe_signal(self, name: str, duration_ms: float):
        self._pending.append((self._key("signal", name), duration_ms))

    def observe_calculation(self, target_type: str, duration_ms: float):
        self._pending.append((self._key("calculation", target_type), duration_ms))

    async def flush(self):
        if not self._pending:
            return
        pending, self._pending = self._pending, []

        if self._client is None:
            self._client = aioredis.from_url(self._url, decode_responses=True)

        try:
            pipe = self._client.pipeline()
            for key, duration_ms in pending:
                pipe.hincrby(key, "count", 1)
                pipe.hincrbyfloat(key, "total_ms", round(duration_ms, 2))
            await pipe.execute()
        except Exception as e:
            logger.warning("metrics_flush_failed", observations=len(pending), error=str(e))

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

