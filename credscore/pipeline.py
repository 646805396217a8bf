"""
Credscore — Pipeline
Process-wide collaborators and the engine, built once and shared.

    from credscore.pipeline import compute_score
    result = await compute_score(from_user_key("address:0xabc..."))
"""
from typing import Mapping, Optional

import structlog

from credscore.clients import neo4j
from credscore.clients.chain_indexer import ChainIndexerClient
from credscore.clients.directory import Directory
from credscore.clients.metrics import RedisMetrics
from credscore.clients.score_store import ScoreStore
from credscore.clients.store import ActivityStore, SocialProfileCache
from credscore.config import settings
from credscore.engine.scoring import ScoreEngine
from credscore.score.defaults import load_score_config
from credscore.score.results import ScoreResult
from credscore.service import ScoreService
from credscore.signals.registry import build_default_registry
from credscore.targets import Target

logger = structlog.get_logger()

_directory: Optional[Directory] = None
_store: Optional[ActivityStore] = None
_indexer: Optional[ChainIndexerClient] = None
_score_store: Optional[ScoreStore] = None
_metrics: Optional[RedisMetrics] = None
_engine: Optional[ScoreEngine] = None
_service: Optional[ScoreService] = None


def get_directory() -> Directory:
    global _directory
    if _directory is None:
        _directory = Directory()
    return _directory


def get_activity_store() -> ActivityStore:
    global _store
    if _store is None:
        _store = ActivityStore(get_directory())
    return _store


def get_score_store() -> ScoreStore:
    global _score_store
    if _score_store is None:
        _score_store = ScoreStore()
    return _score_store


def get_engine() -> ScoreEngine:
    """Build the engine on first use. A bad score configuration raises ConfigurationError here."""
    global _engine, _indexer, _metrics
    if _engine is None:
        _indexer = ChainIndexerClient()
        _metrics = RedisMetrics()
        registry = build_default_registry(
            directory=get_directory(),
            store=get_activity_store(),
            social_cache=SocialProfileCache(),
            indexer=_indexer,
            score_store=get_score_store(),
        )
        config = load_score_config(settings.SCORE_CONFIG_PATH or None)
        _engine = ScoreEngine(config, registry, metrics=_metrics, deadline=settings.score_deadline)
        logger.info("score_engine_ready", signals=config.signal_names, deadline=settings.score_deadline)
    return _engine


def get_service() -> ScoreService:
    global _service
    if _service is None:
        _service = ScoreService(
            engine=get_engine(),
            score_store=get_score_store(),
            directory=get_directory(),
            store=get_activity_store(),
            social_cache=SocialProfileCache(),
        )
    return _service


async def compute_score(target: Target) -> ScoreResult:
    return await get_engine().compute_score(target)


async def simulate_score(target: Target, overrides: Mapping[str, float]) -> ScoreResult:
    return await get_engine().simulate_score(target, overrides)


async def shutdown():
    """Close every client opened by the pipeline."""
    global _engine, _indexer, _metrics, _score_store, _service, _directory, _store
    if _indexer is not None:
        await _indexer.close()
    if _metrics is not None:
        await _metrics.close()
    if _score_store is not None:
        await _score_store.close()
    await neo4j.close()
    _engine = _indexer = _metrics = _score_store = _service = _directory = _store = None
