"""
Credscore — Score service
Calling-layer helpers on top of the engine and the score store.

    latest-or-calculate   stored score if clean and fresh enough, else compute + store (one computation per key at a time)
    refresh               always compute + store
    invalidate            mark scores dirty, down the whole invite tree
    simulate              provisional inputs → overrides → simulated score vs current score
    factors               credibility factors + running-total breakdown for the current score
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import structlog

from credscore.clients.directory import Directory
from credscore.clients.score_store import ScoreStore, StoredScore
from credscore.clients.store import ActivityStore, ReviewCounts, SocialProfileCache
from credscore.config import settings
from credscore.engine.scoring import ScoreEngine
from credscore.errors import NotFoundError
from credscore.score.constants import SignalName
from credscore.score.convert import (
    BreakdownRow,
    CredibilityFactor,
    ScoreSimulation,
    credibility_factors,
    score_breakdown,
    score_impact,
)
from credscore.score.results import ScoreResult
from credscore.signals import network, social
from credscore.targets import ProfileTarget, Target, to_user_key

logger = structlog.get_logger()

LOCK_WAIT_SECONDS = 1.5


@dataclass
class SimulationOutcome:
    simulation: ScoreSimulation
    result: ScoreResult
    errors: List[str]


@dataclass
class FactorBreakdown:
    score: int
    factors: List[CredibilityFactor]
    breakdown: List[BreakdownRow]
    errors: List[str]


class ScoreService:
    def __init__(
        self,
        engine: ScoreEngine,
        score_store: ScoreStore,
        directory: Directory,
        store: ActivityStore,
        social_cache: SocialProfileCache,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        lock_wait: float = LOCK_WAIT_SECONDS,
    ):
        self.engine = engine
        self.score_store = score_store
        self.directory = directory
        self.store = store
        self.social_cache = social_cache
        self.max_age_seconds = (
            max_age_seconds if max_age_seconds is not None else settings.SCORE_MAX_AGE_HOURS * 3600
        )
        self.clock = clock
        self.lock_wait = lock_wait

    async def score_target_key(self, target: Target) -> str:
        """Scores are stored under the profile when there is one."""
        profile_id = await self.directory.get_profile_id(target)
        if profile_id is not None:
            return to_user_key(ProfileTarget(profile_id))
        return to_user_key(target)

    async def _read_latest(self, key: str) -> Optional[StoredScore]:
        try:
            return await self.score_store.get_latest(key)
        except Exception as e:
            logger.warning("score_store_read_failed", key=key, error=str(e))
            return None

    def _is_fresh(self, stored: Optional[StoredScore]) -> bool:
        if stored is None or stored.dirty:
            return False
        return stored.age_seconds(self.clock()) <= self.max_age_seconds

    async def _compute_and_store(self, target: Target, key: str) -> StoredScore:
        result = await self.engine.compute_score(target)
        return await self.score_store.save(key, result)

    async def get_latest_or_calculate(self, target: Target) -> StoredScore:
        key = await self.score_target_key(target)
        latest = await self._read_latest(key)
        if self._is_fresh(latest):
            return latest

        locked = await self.score_store.acquire_lock(key)
        if not locked:
            # someone else is computing this key; give them a moment
            await asyncio.sleep(self.lock_wait)
            latest = await self._read_latest(key)
            if self._is_fresh(latest):
                return latest

        try:
            return await self._compute_and_store(target, key)
        finally:
            if locked:
                await self.score_store.release_lock(key)

    async def refresh(self, target: Target) -> StoredScore:
        key = await self.score_target_key(target)
        return await self._compute_and_store(target, key)

    async def invalidate(self, targets: List[Target]) -> List[str]:
        """
        Mark the targets' scores dirty, together with the scores of every
        profile they invited, transitively: an invitee's score depends on its
        inviter's. Returns the score-target keys that were marked.
        """
        keys, profile_ids = [], []
        for target in targets:
            profile_id = await self.directory.get_profile_id(target)
            if profile_id is None:
                keys.append(to_user_key(target))
            else:
                profile_ids.append(profile_id)

        tree = await self.directory.invite_tree(profile_ids)
        keys.extend(to_user_key(ProfileTarget(pid)) for pid in tree)
        keys = list(dict.fromkeys(keys))

        marked = await self.score_store.invalidate(keys)
        logger.info("scores_invalidated", targets=len(targets), keys=len(keys), marked=marked)
        return keys

    async def _simulated_inputs(
        self,
        target: Target,
        positive_reviews: Optional[int],
        negative_reviews: Optional[int],
        neutral_reviews: Optional[int],
        stake_eth: Optional[float],
        backers: Optional[int],
        social_account_id: Optional[str],
    ) -> Dict[str, float]:
        jobs = {}

        if any(v is not None for v in (positive_reviews, negative_reviews, neutral_reviews)):
            provisional = ReviewCounts(
                positive=positive_reviews or 0,
                negative=negative_reviews or 0,
                neutral=neutral_reviews or 0,
            )
            jobs[SignalName.REVIEW_IMPACT.value] = network.review_impact(
                target, store=self.store, provisional=provisional,
            )
        if stake_eth:
            jobs[SignalName.STAKED_AMOUNT_IMPACT.value] = network.staked_amount_impact(
                target, store=self.store, provisional_eth=stake_eth,
            )
        if backers:
            jobs[SignalName.BACKER_COUNT_IMPACT.value] = network.backer_count_impact(
                target, store=self.store, provisional=backers,
            )
        if social_account_id:
            jobs[SignalName.SOCIAL_ACCOUNT_AGE.value] = self._social_account_age(social_account_id)

        values = await asyncio.gather(*jobs.values())
        return dict(zip(jobs.keys(), values))

    async def _social_account_age(self, account_id: str) -> float:
        days = await social.account_age_days(account_id, social_cache=self.social_cache)
        if days is None:
            raise NotFoundError(f"Social account not found: {account_id}")
        return days

    async def simulate(
        self,
        target: Target,
        positive_reviews: Optional[int] = None,
        negative_reviews: Optional[int] = None,
        neutral_reviews: Optional[int] = None,
        stake_eth: Optional[float] = None,
        backers: Optional[int] = None,
        social_account_id: Optional[str] = None,
    ) -> SimulationOutcome:
        """What would the target's score be after these provisional actions?"""
        current = await self.get_latest_or_calculate(target)
        overrides = await self._simulated_inputs(
            target, positive_reviews, negative_reviews, neutral_reviews, stake_eth, backers, social_account_id,
        )
        result = await self.engine.simulate_score(target, overrides)
        return SimulationOutcome(
            simulation=score_impact(current.score, result.score),
            result=result,
            errors=list(current.errors),
        )

    async def credibility_factors(self, target: Target) -> FactorBreakdown:
        current = await self.get_latest_or_calculate(target)
        factors = credibility_factors(current.to_result(), self.engine.config)
        return FactorBreakdown(
            score=current.score,
            factors=factors,
            breakdown=score_breakdown(factors, self.engine.config.base),
            errors=list(current.errors),
        )
