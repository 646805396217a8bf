"""
Credscore — Network signals
Reviews, stake, backers and invitation source.

The unbounded counts go through the sigmoid normalizer so that no single
metric can dominate. scale and pace are passed per call.
"""
from typing import Optional

import structlog

from credscore.clients.directory import Directory
from credscore.clients.score_store import ScoreStore
from credscore.clients.store import ActivityStore, ReviewCounts
from credscore.score.constants import (
    DEFAULT_PACE,
    DEFAULT_SCALE,
    DEFAULT_STARTING_SCORE,
    FAST_PACE,
    INVITATION_SCORE_FACTOR,
    NO_INVITER,
)
from credscore.score.normalize import sigmoid
from credscore.targets import Target, to_user_key

logger = structlog.get_logger()


def review_pace(neutral: int) -> float:
    """Each neutral review slows the pace by one unit; neutrals never count against positives."""
    return DEFAULT_PACE + neutral


async def review_impact(
    target: Target,
    *,
    store: ActivityStore,
    provisional: Optional[ReviewCounts] = None,
) -> float:
    counts = await store.review_counts(target)
    if provisional is not None:
        counts = counts + provisional
    return sigmoid(counts.positive - counts.negative, DEFAULT_SCALE, review_pace(counts.neutral))


async def staked_amount_impact(
    target: Target,
    *,
    store: ActivityStore,
    provisional_eth: float = 0.0,
) -> float:
    total = await store.staked_eth(target) + provisional_eth
    return sigmoid(total, DEFAULT_SCALE, FAST_PACE)


async def backer_count_impact(
    target: Target,
    *,
    store: ActivityStore,
    provisional: int = 0,
) -> float:
    count = await store.backer_count(target) + provisional
    return sigmoid(count, DEFAULT_SCALE, DEFAULT_PACE)


async def invitation_source_credibility(
    target: Target,
    *,
    directory: Directory,
    score_store: ScoreStore,
) -> float:
    """
    A share of the inviter's last known score.

    Exactly one score-store read, never a fresh calculation, so invite
    chains of any length or shape stop after one hop. An inviter with no
    stored score counts as the default starting score.
    """
    inviter = await directory.get_inviter(target)
    if inviter is None:
        return NO_INVITER

    inviter_score = await score_store.get_latest_score(to_user_key(inviter))
    if inviter_score is None:
        logger.debug("inviter_score_missing", inviter=to_user_key(inviter))
        inviter_score = DEFAULT_STARTING_SCORE

    return inviter_score * INVITATION_SCORE_FACTOR
