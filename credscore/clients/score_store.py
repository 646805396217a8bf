"""
Credscore — Score store
Latest computed score per score-target key, kept in Redis.

Key Schema:
    cred:score:{user_key}        → JSON StoredScore
    cred:score:locks:{user_key}  → compute-in-flight lock (SET NX EX)

The score-target key is the profile key when the target has a profile,
otherwise the target's own user key.

A stored score is dirty when it was computed with failed signals or has been
invalidated since (an input changed, e.g. its inviter's score). Dirty scores
are recomputed before being served and are not handed to other targets.

Reads raise on Redis failure: the invitation signal relies on them and a
failed read must surface as a failed evaluation, not as "no score".
Writes, invalidations and locks fail open with a warning.
"""
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import structlog
from redis import asyncio as aioredis

from credscore.config import settings
from credscore.score.results import ScoreResult, SignalResult

logger = structlog.get_logger()

KEY_PREFIX = "cred:score:"
LOCK_PREFIX = "cred:score:locks:"
LOCK_TTL = 30  # seconds, max time to hold a compute lock


@dataclass
class StoredScore:
    score: int
    calculated_at: float
    errors: List[str] = field(default_factory=list)
    signals: Dict[str, Any] = field(default_factory=dict)
    dirty: bool = False

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.calculated_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "calculated_at": self.calculated_at,
            "dirty": self.dirty,
            "errors": list(self.errors),
            "signals": self.signals,
        }

    @classmethod
    def from_result(cls, result: ScoreResult, calculated_at: Optional[float] = None) -> "StoredScore":
        return cls(
            score=result.score,
            calculated_at=calculated_at if calculated_at is not None else time.time(),
            errors=list(result.errors),
            signals={name: s.to_dict() for name, s in result.signals.items()},
            dirty=bool(result.errors),
        )

    def to_result(self) -> ScoreResult:
        return ScoreResult(
            score=self.score,
            signals={name: SignalResult(**s) for name, s in self.signals.items()},
            errors=list(self.errors),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredScore":
        errors = list(data.get("errors", []))
        return cls(
            score=int(data["score"]),
            calculated_at=float(data["calculated_at"]),
            errors=errors,
            signals=dict(data.get("signals", {})),
            dirty=bool(data.get("dirty", errors)),
        )


class ScoreStore:
    """
    Usage:
        store = ScoreStore()
        latest = await store.get_latest("profileId:42")
        if latest is None or latest.dirty or latest.age_seconds() > max_age:
            ...
            await store.save("profileId:42", result)
    """

    def __init__(self, redis_url: Optional[str] = None, ttl: Optional[int] = None, client=None):
        self._url = redis_url or settings.REDIS_URL
        self._ttl = ttl if ttl is not None else settings.SCORE_TTL_SECONDS
        self._client = client

    def _connect(self):
        """Lazy connect, only opens a pool when first used."""
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                max_connections=20,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=2,
                retry_on_timeout=True,
            )
            logger.info("score_store_connected", url=self._url.split("@")[-1])
        return self._client

    async def get_latest(self, key: str) -> Optional[StoredScore]:
        raw = await self._connect().get(f"{KEY_PREFIX}{key}")
        if not raw:
            return None
        return StoredScore.from_dict(json.loads(raw))

    async def get_latest_score(self, key: str, allow_dirty: bool = False) -> Optional[int]:
        """Bounded read of a previously computed score. Never computes. Dirty scores read as None by default."""
        latest = await self.get_latest(key)
        if latest is None or (latest.dirty and not allow_dirty):
            return None
        return latest.score

    async def save(self, key: str, result: ScoreResult) -> StoredScore:
        stored = StoredScore.from_result(result)
        try:
            await self._connect().set(f"{KEY_PREFIX}{key}", json.dumps(stored.to_dict(), default=str), ex=self._ttl)
            logger.debug("score_saved", key=key, score=stored.score, dirty=stored.dirty)
        except Exception as e:
            logger.warning("score_save_failed", key=key, error=str(e))
        return stored

    async def invalidate(self, keys: Iterable[str]) -> int:
        """Mark stored scores dirty, keeping their TTL. Returns how many were marked."""
        marked = 0
        for key in keys:
            try:
                latest = await self.get_latest(key)
                if latest is None or latest.dirty:
                    continue
                latest.dirty = True
                await self._connect().set(
                    f"{KEY_PREFIX}{key}", json.dumps(latest.to_dict(), default=str), keepttl=True,
                )
                marked += 1
            except Exception as e:
                logger.warning("score_invalidate_failed", key=key, error=str(e))
        logger.debug("scores_invalidated", marked=marked)
        return marked

    async def acquire_lock(self, key: str) -> bool:
        """Only one caller computes a given key at a time. Fails open when Redis is down."""
        try:
            acquired = await self._connect().set(f"{LOCK_PREFIX}{key}", "1", nx=True, ex=LOCK_TTL)
            return bool(acquired)
        except Exception as e:
            logger.warning("score_lock_unavailable", key=key, error=str(e))
            return True

    async def release_lock(self, key: str):
        try:
            await self._connect().delete(f"{LOCK_PREFIX}{key}")
        except Exception as e:
            logger.warning("score_lock_release_failed", key=key, error=str(e))

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("score_store_disconnected")
