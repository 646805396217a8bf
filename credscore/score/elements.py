"""
Credscore — Score elements

The calculation tree is plain data:
    LookupNumber    raw signal value clamped to a {min, max} range
    LookupInterval  raw signal value bucketed into half-open intervals, each worth a fixed score
    Constant        a literal number
    ScoreCalculation an operation (+ - * / ^) over child elements

Lookups are leaves keyed by signal name; calculations are the only inner nodes.
"""
from __future__ import annotations

import functools
import math
import operator
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Union

from credscore.score.constants import MISSING_SIGNAL_CONTRIBUTION


@dataclass(frozen=True)
class ElementRange:
    min: float
    max: float

    @property
    def swing(self) -> float:
        return self.max - self.min


@dataclass
class IntervalRange:
    score: float
    start: Optional[float] = None   # inclusive
    end: Optional[float] = None     # exclusive

    def contains(self, value: float) -> bool:
        return (self.start is None or value >= self.start) and (self.end is None or value < self.end)


@dataclass
class LookupNumber:
    name: str
    range: ElementRange
    type: str = field(default="LookupNumber", init=False)


@dataclass
class LookupInterval:
    name: str
    ranges: List[IntervalRange]
    out_of_range_score: float = 0.0
    type: str = field(default="LookupInterval", init=False)

    @property
    def range(self) -> ElementRange:
        scores = [r.score for r in self.ranges] or [self.out_of_range_score]
        return ElementRange(min=min(scores), max=max(scores))


@dataclass
class Constant:
    name: str
    value: float
    type: str = field(default="Constant", init=False)


@dataclass
class ScoreCalculation:
    operation: str
    elements: List["ScoreElement"] = field(default_factory=list)
    type: str = field(default="Calculation", init=False)

    @property
    def name(self) -> str:
        return self.operation


ScoreElement = Union[LookupNumber, LookupInterval, Constant, ScoreCalculation]
SignalElement = Union[LookupNumber, LookupInterval]


def _divide(a: float, b: float) -> float:
    return a / b if b else 0.0


OPERATIONS: Dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _divide,
    "^": operator.pow,
}


def is_valid_operation(token: str) -> bool:
    return token in OPERATIONS


def is_signal_element(element: ScoreElement) -> bool:
    return isinstance(element, (LookupNumber, LookupInterval))


def calculate_element(element: ScoreElement, inputs: Mapping[str, float]) -> float:
    """
    Weighted contribution of an element given raw signal values.

    A lookup whose signal has no raw value (its evaluation failed) contributes
    exactly MISSING_SIGNAL_CONTRIBUTION; the range clamp does not apply to it.
    """
    if isinstance(element, LookupNumber):
        if element.name not in inputs:
            return MISSING_SIGNAL_CONTRIBUTION
        return min(max(inputs[element.name], element.range.min), element.range.max)

    if isinstance(element, LookupInterval):
        if element.name not in inputs:
            return MISSING_SIGNAL_CONTRIBUTION
        value = inputs[element.name]
        for interval in element.ranges:
            if interval.contains(value):
                return interval.score
        return element.out_of_range_score

    if isinstance(element, Constant):
        return element.value

    if isinstance(element, ScoreCalculation):
        return apply_calculation(element, inputs)

    raise TypeError(f"Unknown element type: {getattr(element, 'type', type(element).__name__)}")


def apply_calculation(calculation: ScoreCalculation, inputs: Mapping[str, float]) -> float:
    """Left fold of the operation over the children. Division by zero yields 0."""
    scores = [calculate_element(e, inputs) for e in calculation.elements]
    if not scores:
        return 0.0
    result = functools.reduce(OPERATIONS[calculation.operation], scores)
    if isinstance(result, complex) or not math.isfinite(result):
        return 0.0
    return float(result)
