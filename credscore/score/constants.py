"""
Credscore — Score constants
"""
from enum import Enum
from typing import Dict, NamedTuple


class SignalName(str, Enum):
    """The closed set of signals the engine knows how to evaluate."""
    ADDRESS_AGE = "Address Age"
    SOCIAL_ACCOUNT_AGE = "Social Account Age"
    REVIEW_IMPACT = "Review Impact"
    STAKED_AMOUNT_IMPACT = "Staked Amount Impact"
    BACKER_COUNT_IMPACT = "Backer Count Impact"
    INVITATION_SOURCE_CREDIBILITY = "Invitation Source Credibility"


class ScoreLevel(str, Enum):
    UNTRUSTED = "untrusted"
    QUESTIONABLE = "questionable"
    NEUTRAL = "neutral"
    REPUTABLE = "reputable"
    EXEMPLARY = "exemplary"


class ScoreRange(NamedTuple):
    min: int
    max: int


DEFAULT_STARTING_SCORE = 1000
MAX_SCORE = 2800

SCORE_RANGES: Dict[ScoreLevel, ScoreRange] = {
    ScoreLevel.UNTRUSTED:    ScoreRange(0, 799),
    ScoreLevel.QUESTIONABLE: ScoreRange(800, 1199),
    ScoreLevel.NEUTRAL:      ScoreRange(1200, 1599),
    ScoreLevel.REPUTABLE:    ScoreRange(1600, 1999),
    ScoreLevel.EXEMPLARY:    ScoreRange(2000, MAX_SCORE),
}

# Normalizer defaults
DEFAULT_SCALE = 400
DEFAULT_PACE = 50
FAST_PACE = 25

# Sentinels for "no data"
INSUFFICIENT_DATA = 0.0
NO_SOCIAL_ACCOUNT_DAYS = 500.0
NO_INVITER = 0.0

# Share of the inviter's score passed on to the invitee
INVITATION_SCORE_FACTOR = 0.2

# Weighted contribution of a signal whose evaluation failed
MISSING_SIGNAL_CONTRIBUTION = 0.0
