"""
Credscore — Score math
Pure, I/O-free: normalizer, calculation tree, configuration parsing and presentation helpers.
"""
from credscore.score.calculation import ScoreConfig, calculate_score
from credscore.score.constants import DEFAULT_STARTING_SCORE, ScoreLevel, SignalName
from credscore.score.convert import (
    CredibilityFactor,
    ScoreImpact,
    ScoreSimulation,
    convert_element_to_credibility_factor,
    convert_score_to_level,
    credibility_factors,
    score_breakdown,
    score_impact,
)
from credscore.score.defaults import DEFAULT_SCORE_CONFIG, load_score_config
from credscore.score.elements import calculate_element
from credscore.score.normalize import sigmoid
from credscore.score.parser import parse_score_config
from credscore.score.results import ScoreResult, SignalResult

__all__ = [
    "DEFAULT_SCORE_CONFIG",
    "DEFAULT_STARTING_SCORE",
    "CredibilityFactor",
    "ScoreConfig",
    "ScoreImpact",
    "ScoreLevel",
    "ScoreResult",
    "ScoreSimulation",
    "SignalName",
    "SignalResult",
    "calculate_element",
    "calculate_score",
    "convert_element_to_credibility_factor",
    "convert_score_to_level",
    "credibility_factors",
    "load_score_config",
    "parse_score_config",
    "score_breakdown",
    "score_impact",
    "sigmoid",
]
