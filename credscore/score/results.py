"""
Credscore — Score results
Created fresh per request; the engine never persists them.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SignalResult:
    name: str
    raw: Optional[float]        # None when the evaluation failed
    weighted: float
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoreResult:
    """
    score   base + sum of weighted contributions, rounded
    signals one SignalResult per configured signal, in definition order
    errors  names whose evaluation raised or timed out during this call

    A non-empty errors list marks the score as partial: each failed signal
    contributed exactly 0 points.
    """
    score: int
    signals: Dict[str, SignalResult] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)

    @property
    def raw_values(self) -> Dict[str, float]:
        return {name: s.raw for name, s in self.signals.items() if s.raw is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "signals": {name: s.to_dict() for name, s in self.signals.items()},
            "errors": list(self.errors),
        }
