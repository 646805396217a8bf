"""
Tests for score configuration parsing.
"""
import json

import pytest

from credscore.errors import ConfigurationError
from credscore.score.calculation import calculate_score
from credscore.score.constants import SignalName
from credscore.score.defaults import DEFAULT_SCORE_CONFIG, load_score_config
from credscore.score.elements import (
    Constant,
    ElementRange,
    IntervalRange,
    LookupInterval,
    LookupNumber,
    ScoreCalculation,
    apply_calculation,
    calculate_element,
)
from credscore.score.parser import parse_element_definitions, parse_expression, parse_score_config, tokenize

ELEMENTS = {
    "Address Age": {"Interval": ["< 5: 0.1", "< 90: 0.5", "/> 90: 1"]},
    "Review Impact": {"Range": [-400, 400]},
}


def evaluate(expression, inputs=None):
    definitions = parse_element_definitions(ELEMENTS)
    return calculate_element(parse_expression(expression, definitions), inputs or {})


class TestTokenize:

    def test_tokens(self):
        assert tokenize("(1000 * [Address Age]) + 0.5") == ["(", "1000", "*", "[Address Age]", ")", "+", "0.5"]

    def test_rejects_garbage(self):
        with pytest.raises(ConfigurationError):
            tokenize("1 + $")


class TestExpression:

    def test_precedence(self):
        assert evaluate("1 + 2 * 3") == 7
        assert evaluate("(1 + 2) * 3") == 9
        assert evaluate("2 * 3 ^ 2") == 18

    def test_power_is_right_associative(self):
        assert evaluate("2 ^ 3 ^ 2") == 512

    def test_left_associative_subtraction_and_division(self):
        assert evaluate("10 - 3 - 2") == 5
        assert evaluate("100 / 10 / 5") == 2

    def test_unary_minus(self):
        assert evaluate("-2 + 5") == 3
        assert evaluate("-[Review Impact]", {"Review Impact": 10}) == -10

    def test_same_operator_chain_is_one_node(self):
        root = parse_expression("1 + 2 + 3", {})
        assert isinstance(root, ScoreCalculation)
        assert root.operation == "+"
        assert [e.value for e in root.elements] == [1, 2, 3]

    def test_lookups_resolve_to_definitions(self):
        definitions = parse_element_definitions(ELEMENTS)
        root = parse_expression("[Address Age] * 1000 + [Review Impact]", definitions)
        assert apply_calculation(root, {"Address Age": 100, "Review Impact": 15}) == 1015

    @pytest.mark.parametrize("expression", ["", "1 +", "(1 + 2", "1 + 2)", "* 3", "[Nope] + 1", "1 2"])
    def test_invalid(self, expression):
        with pytest.raises(ConfigurationError):
            parse_expression(expression, parse_element_definitions(ELEMENTS))


class TestElementDefinitions:

    def test_interval_overlaps_resolved(self):
        element = parse_element_definitions(ELEMENTS)["Address Age"]
        assert isinstance(element, LookupInterval)
        assert element.ranges == [
            IntervalRange(score=0.1, start=None, end=5),
            IntervalRange(score=0.5, start=5, end=90),
            IntervalRange(score=1, start=90, end=None),
        ]

    def test_multiple_at_or_above_rules(self):
        element = parse_element_definitions({"X": {"Interval": ["/> 10: 1", "/> 100: 2"]}})["X"]
        assert element.ranges == [IntervalRange(score=1, start=10, end=100), IntervalRange(score=2, start=100)]

    def test_rule_without_colon(self):
        element = parse_element_definitions({"X": {"Interval": ["< 10 5"]}})["X"]
        assert element.ranges == [IntervalRange(score=5, end=10)]

    def test_range(self):
        element = parse_element_definitions(ELEMENTS)["Review Impact"]
        assert element == LookupNumber(name="Review Impact", range=ElementRange(-400, 400))

    @pytest.mark.parametrize("elements", [
        {"X": {"Number": "1"}},
        {"X": {"Range": [1]}},
        {"X": {"Range": [400, -400]}},
        {"X": {"Range": ["a", "b"]}},
        {"X": {"Interval": ["> 5: 1"]}},
        {"X": {"Interval": ["< five: 1"]}},
        {"X": {"Interval": []}},
        {"X": {"Range": [0, 1], "Interval": ["< 1: 1"]}},
    ])
    def test_invalid(self, elements):
        with pytest.raises(ConfigurationError):
            parse_element_definitions(elements)


class TestScoreConfig:

    def test_expression_parts_are_summed(self):
        config = parse_score_config({"expression": ["[Address Age]", "[Review Impact]"], "elements": ELEMENTS})
        assert config.base == 1000
        assert config.signal_names == ["Address Age", "Review Impact"]
        assert calculate_score(config.root, {"Address Age": 100, "Review Impact": 14.6}, config.base) == 1016

    def test_custom_base(self):
        config = parse_score_config({"base": 500, "expression": ["[Review Impact]"], "elements": ELEMENTS})
        assert config.base == 500

    def test_missing_expression(self):
        with pytest.raises(ConfigurationError):
            parse_score_config({"elements": ELEMENTS})

    def test_undefined_reference(self):
        with pytest.raises(ConfigurationError):
            parse_score_config({"expression": ["[Backer Count Impact]"], "elements": ELEMENTS})


class TestDefaults:

    def test_default_config_covers_every_signal(self):
        config = load_score_config()
        assert config.signal_names == [s.value for s in SignalName]
        assert config.referenced_names() == [s.value for s in SignalName]
        assert config.base == 1000

    def test_default_config_neutral_target(self):
        config = load_score_config()
        inputs = {s.value: 0.0 for s in SignalName}
        assert calculate_score(config.root, inputs, config.base) == 1000

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "score.json"
        path.write_text(json.dumps(DEFAULT_SCORE_CONFIG))
        assert load_score_config(path).signal_names == load_score_config().signal_names

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_score_config(tmp_path / "missing.json")

    def test_bad_json(self, tmp_path):
        path = tmp_path / "score.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_score_config(path)
