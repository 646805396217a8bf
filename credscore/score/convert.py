"""
Credscore — Credibility Factor Converter
Presentation helpers over a ScoreResult. Never used to compute the score itself.

    factors     one CredibilityFactor per signal, largest possible swing first
    breakdown   base score, then each factor's weighted delta and running total
    level       score → untrusted | questionable | neutral | reputable | exemplary
    impact      old score vs new score, for what-if previews
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from credscore.score.calculation import ScoreConfig
from credscore.score.constants import SCORE_RANGES, ScoreLevel
from credscore.score.elements import ElementRange, SignalElement, calculate_element
from credscore.score.results import ScoreResult


@dataclass
class CredibilityFactor:
    name: str
    value: Optional[float]
    weighted: float
    range: ElementRange
    error: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "weighted": self.weighted,
            "range": {"min": self.range.min, "max": self.range.max},
            "error": self.error,
        }


@dataclass
class BreakdownRow:
    name: str
    delta: float
    total: float


def convert_element_to_credibility_factor(element: SignalElement, value: Optional[float]) -> CredibilityFactor:
    if value is None:
        return CredibilityFactor(name=element.name, value=None, weighted=0.0, range=element.range, error=True)
    return CredibilityFactor(
        name=element.name,
        value=value,
        weighted=calculate_element(element, {element.name: value}),
        range=element.range,
    )


def credibility_factors(result: ScoreResult, config: ScoreConfig) -> List[CredibilityFactor]:
    """Factors sorted by range swing, descending. Ties keep definition order."""
    factors = []
    for name, element in config.definitions.items():
        signal = result.signals.get(name)
        factor = convert_element_to_credibility_factor(element, signal.raw if signal else None)
        if signal is not None and not signal.failed:
            factor.weighted = signal.weighted
        factors.append(factor)
    return sorted(factors, key=lambda f: f.range.swing, reverse=True)


def score_breakdown(factors: List[CredibilityFactor], base: float) -> List[BreakdownRow]:
    rows = [BreakdownRow(name="Base score", delta=base, total=base)]
    total = base
    for factor in factors:
        total += factor.weighted
        rows.append(BreakdownRow(name=factor.name, delta=factor.weighted, total=total))
    return rows


def convert_score_to_level(score: float) -> ScoreLevel:
    """Scores outside every band clamp to the nearest level."""
    for level, band in SCORE_RANGES.items():
        if score <= band.max:
            return level
    return ScoreLevel.EXEMPLARY


class ScoreImpact(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


@dataclass
class ScoreSimulation:
    value: int
    impact: ScoreImpact
    relative_value: int
    adjusted_score: int

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "impact": self.impact.value,
            "relative_value": self.relative_value,
            "adjusted_score": self.adjusted_score,
        }


def score_impact(old_score: int, new_score: int) -> ScoreSimulation:
    change = new_score - old_score
    if change > 0:
        impact = ScoreImpact.POSITIVE
    elif change < 0:
        impact = ScoreImpact.NEGATIVE
    else:
        impact = ScoreImpact.NEUTRAL
    return ScoreSimulation(value=change, impact=impact, relative_value=abs(change), adjusted_score=new_score)
