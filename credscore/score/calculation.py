"""
Credscore — Calculation Tree
Evaluates a configured element tree against raw signal values.

    score = round(base + root(raw_values))

The tree is data supplied by configuration; nothing here performs I/O.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from credscore.errors import ConfigurationError
from credscore.score.constants import DEFAULT_STARTING_SCORE
from credscore.score.elements import (
    ScoreCalculation,
    ScoreElement,
    SignalElement,
    calculate_element,
    is_signal_element,
)


@dataclass
class ScoreConfig:
    """A parsed score configuration: the root expression plus every signal definition it references."""
    root: ScoreElement
    definitions: Dict[str, SignalElement] = field(default_factory=dict)
    base: int = DEFAULT_STARTING_SCORE

    @property
    def signal_names(self) -> List[str]:
        """Signal names in definition order."""
        return list(self.definitions.keys())

    def definition(self, name: str) -> SignalElement:
        try:
            return self.definitions[name]
        except KeyError:
            raise ConfigurationError(f"No element definition for '{name}'") from None

    def weighted(self, name: str, raw_values: Mapping[str, float]) -> float:
        return calculate_element(self.definition(name), raw_values)

    def referenced_names(self) -> List[str]:
        return [e.name for e in walk(self.root) if is_signal_element(e)]


def walk(element: ScoreElement):
    """Depth-first iteration over a tree, parents first."""
    yield element
    if isinstance(element, ScoreCalculation):
        for child in element.elements:
            yield from walk(child)


def calculate_score(
    root: ScoreElement,
    raw_values: Mapping[str, float],
    base: int = DEFAULT_STARTING_SCORE,
) -> int:
    return round(base + calculate_element(root, raw_values))
