"""
Credscore — Score refresh jobs

    invalidate_scores   mark scores dirty down the invite tree, then queue a refresh of them
    refresh_scores      recompute and store scores for a batch of user keys

Queued after a review, a stake or an invitation changed the inputs of
several identities at once. Runs inside the arq worker process.
"""
import asyncio
from typing import List

import structlog
from arq import create_pool
from arq.connections import RedisSettings

from credscore.config import settings
from credscore.errors import TargetParseError
from credscore.targets import Target, from_user_key

logger = structlog.get_logger()

REDIS_SETTINGS = RedisSettings.from_dsn(settings.REDIS_URL)

MAX_CONCURRENT_REFRESHES = 5


async def _enqueue(function: str, user_keys: List[str]):
    redis_pool = await create_pool(REDIS_SETTINGS)
    try:
        await redis_pool.enqueue_job(function, user_keys)
    finally:
        await redis_pool.aclose()


async def queue_refresh(user_keys: List[str]):
    """Queue a score refresh job."""
    await _enqueue("refresh_scores", user_keys)


async def queue_invalidation(user_keys: List[str]):
    """Queue an invalidation job; it queues the refresh itself."""
    await _enqueue("invalidate_scores", user_keys)


def _parse_keys(user_keys: List[str]) -> List[Target]:
    targets = []
    for user_key in user_keys:
        try:
            targets.append(from_user_key(user_key))
        except TargetParseError as e:
            logger.warning("score_invalidate_bad_key", user_key=user_key, error=str(e))
    return targets


async def invalidate_scores(ctx, user_keys: List[str]):
    """
    arq job: mark the targets and their invitees dirty, then refresh them.
    Invalid user keys are skipped.
    """
    from credscore.pipeline import get_service
    service = ctx.get("service") or get_service()

    keys = await service.invalidate(_parse_keys(user_keys))
    if keys:
        redis = ctx.get("redis")
        if redis is not None:
            await redis.enqueue_job("refresh_scores", keys)
        else:
            await queue_refresh(keys)
    return {"invalidated": keys}


async def refresh_scores(ctx, user_keys: List[str]):
    """
    arq job: refresh every user key, at most MAX_CONCURRENT_REFRESHES at a time.
    One key failing does not stop the others.
    """
    from credscore.pipeline import get_service
    service = ctx.get("service") or get_service()
    semaphore = asyncio.Semaphore(MAX_CONCURRENT_REFRESHES)

    logger.info("score_refresh_start", keys=len(user_keys))

    async def refresh_one(user_key: str) -> dict:
        async with semaphore:
            try:
                target = from_user_key(user_key)
            except TargetParseError as e:
                logger.warning("score_refresh_bad_key", user_key=user_key, error=str(e))
                return {"user_key": user_key, "status": "invalid"}
            try:
                stored = await service.refresh(target)
            except Exception as e:
                logger.error("score_refresh_failed", user_key=user_key, error=str(e))
                return {"user_key": user_key, "status": "error", "error": str(e)}
            return {"user_key": user_key, "status": "ok", "score": stored.score, "dirty": stored.dirty}

    results = await asyncio.gather(*(refresh_one(k) for k in user_keys))

    refreshed = sum(1 for r in results if r["status"] == "ok")
    logger.info("score_refresh_complete", keys=len(user_keys), refreshed=refreshed)
    return {"refreshed": refreshed, "results": results}
