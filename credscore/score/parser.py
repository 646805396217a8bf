"""
Credscore — Score configuration parser
Turns a JSON score configuration into a calculation tree.

    (1000 * [Address Age] * [Social Account Age]) + [Invitation Source Credibility] * 0.5

becomes:

    +
    |  *
    |  |  1000
    |  |  [Address Age]
    |  |  [Social Account Age]
    |  *
    |  |  [Invitation Source Credibility]
    |  |  0.5

Grammar (usual precedence, ^ binds tightest and is right-associative):

    expr   := term (("+" | "-") term)*
    term   := power (("*" | "/") power)*
    power  := unary ("^" power)?
    unary  := "-" unary | atom
    atom   := NUMBER | "[" name "]" | "(" expr ")"

Element definitions:
    {"Range": [min, max]}                         LookupNumber, raw value clamped
    {"Interval": ["< 90: 0", "/> 90: 50"]}        LookupInterval
        "< N: S"   score S for values below N
        "/> N: S"  score S for values at or above N
    Overlapping rules are narrowed so each covers the gap up to its neighbour.

Everything malformed raises ConfigurationError.
"""
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from credscore.errors import ConfigurationError
from credscore.score.calculation import ScoreConfig
from credscore.score.constants import DEFAULT_STARTING_SCORE
from credscore.score.elements import (
    Constant,
    ElementRange,
    IntervalRange,
    LookupInterval,
    LookupNumber,
    ScoreCalculation,
    ScoreElement,
    SignalElement,
)

_TOKEN_RE = re.compile(r"\s*(?:(\d+(?:\.\d+)?|\.\d+)|(\[[^\]]*\])|([-+*/^()]))")
_INTERVAL_RE = re.compile(r"^\s*(<|/>)\s*(-?\d+(?:\.\d+)?)\s*:?\s*(-?\d+(?:\.\d+)?)\s*$")


# ---------------------------------------------------------------------------
# Expression
# ---------------------------------------------------------------------------

def tokenize(expression: str) -> List[str]:
    tokens = []
    pos = 0
    expression = expression.rstrip()
    while pos < len(expression):
        match = _TOKEN_RE.match(expression, pos)
        if not match:
            raise ConfigurationError(f"Unexpected character at {pos} in expression: {expression[pos:pos + 20]!r}")
        tokens.append(match.group(match.lastindex))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: List[str], definitions: Mapping[str, SignalElement]):
        self.tokens = tokens
        self.pos = 0
        self.definitions = definitions

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise ConfigurationError("Unexpected end of expression")
        self.pos += 1
        return token

    def parse(self) -> ScoreElement:
        if not self.tokens:
            raise ConfigurationError("Empty score expression")
        element = self.expr()
        if self.peek() is not None:
            raise ConfigurationError(f"Unexpected token: {self.peek()!r}")
        return element

    def _binary(self, operators: Tuple[str, ...], operand) -> ScoreElement:
        left = operand()
        chain: Optional[ScoreCalculation] = None
        while self.peek() in operators:
            op = self.take()
            right = operand()
            # a run of the same operator folds into one node
            if chain is not None and chain.operation == op:
                chain.elements.append(right)
            else:
                chain = ScoreCalculation(operation=op, elements=[left, right])
                left = chain
        return left

    def expr(self) -> ScoreElement:
        return self._binary(("+", "-"), self.term)

    def term(self) -> ScoreElement:
        return self._binary(("*", "/"), self.power)

    def power(self) -> ScoreElement:
        base = self.unary()
        if self.peek() == "^":
            self.take()
            return ScoreCalculation(operation="^", elements=[base, self.power()])
        return base

    def unary(self) -> ScoreElement:
        if self.peek() == "-":
            self.take()
            operand = self.unary()
            if isinstance(operand, Constant):
                return Constant(name=f"-{operand.name}", value=-operand.value)
            return ScoreCalculation(operation="-", elements=[Constant(name="0", value=0.0), operand])
        return self.atom()

    def atom(self) -> ScoreElement:
        token = self.take()
        if token == "(":
            inner = self.expr()
            if self.take() != ")":
                raise ConfigurationError("Unbalanced parentheses in expression")
            return inner
        if token.startswith("["):
            name = token[1:-1].strip()
            if name not in self.definitions:
                raise ConfigurationError(f"Element not defined: [{name}]")
            return self.definitions[name]
        if token in ("+", "-", "*", "/", "^", ")"):
            raise ConfigurationError(f"Unexpected operator: {token!r}")
        return Constant(name=token, value=float(token))


def parse_expression(expression: str, definitions: Mapping[str, SignalElement]) -> ScoreElement:
    return _Parser(tokenize(expression), definitions).parse()


# ---------------------------------------------------------------------------
# Element definitions
# ---------------------------------------------------------------------------

def _parse_range(name: str, config: Any) -> LookupNumber:
    if (
        isinstance(config, (list, tuple))
        and len(config) == 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in config)
        and config[0] <= config[1]
    ):
        return LookupNumber(name=name, range=ElementRange(min=float(config[0]), max=float(config[1])))
    raise ConfigurationError(f"Invalid Range configuration for element: {name}")


def _resolve_overlaps(ranges: List[IntervalRange]) -> None:
    below = sorted((r for r in ranges if r.start is None and r.end is not None), key=lambda r: r.end)
    for lower, upper in zip(below, below[1:]):
        if upper.end > lower.end:
            upper.start = lower.end

    above = sorted((r for r in ranges if r.end is None and r.start is not None), key=lambda r: r.start)
    for lower, upper in zip(above, above[1:]):
        if upper.start > lower.start:
            lower.end = upper.start


def _parse_interval(name: str, config: Any) -> LookupInterval:
    if not isinstance(config, list) or not config or not all(isinstance(r, str) for r in config):
        raise ConfigurationError(f"Invalid Interval configuration for element: {name}")

    ranges = []
    for rule in config:
        match = _INTERVAL_RE.match(rule)
        if not match:
            raise ConfigurationError(f"Invalid interval rule for element {name}: {rule!r}")
        op, bound, score = match.group(1), float(match.group(2)), float(match.group(3))
        if op == "<":
            ranges.append(IntervalRange(score=score, end=bound))
        else:
            ranges.append(IntervalRange(score=score, start=bound))

    _resolve_overlaps(ranges)
    return LookupInterval(name=name, ranges=ranges, out_of_range_score=0.0)


_ELEMENT_PARSERS = {
    "Range": _parse_range,
    "Interval": _parse_interval,
}


def parse_element_definitions(elements: Mapping[str, Any]) -> Dict[str, SignalElement]:
    if not isinstance(elements, Mapping):
        raise ConfigurationError("'elements' must be an object")

    definitions: Dict[str, SignalElement] = {}
    for name, definition in elements.items():
        if not isinstance(definition, Mapping) or len(definition) != 1:
            raise ConfigurationError(f"Element {name} must have exactly one type")
        element_type, config = next(iter(definition.items()))
        parser = _ELEMENT_PARSERS.get(element_type)
        if parser is None:
            raise ConfigurationError(f"Unsupported element type: {element_type}")
        definitions[name] = parser(name, config)
    return definitions


def parse_score_config(raw: Mapping[str, Any]) -> ScoreConfig:
    """Parse {"base", "expression", "elements"} into a ScoreConfig."""
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Score configuration must be an object")

    expression = raw.get("expression")
    if isinstance(expression, str):
        expression = [expression]
    if not isinstance(expression, list) or not expression or not all(isinstance(p, str) for p in expression):
        raise ConfigurationError("'expression' must be a non-empty list of strings")

    base = raw.get("base", DEFAULT_STARTING_SCORE)
    if not isinstance(base, (int, float)) or isinstance(base, bool):
        raise ConfigurationError("'base' must be a number")

    definitions = parse_element_definitions(raw.get("elements", {}))
    root = parse_expression(" + ".join(expression), definitions)
    return ScoreConfig(root=root, definitions=definitions, base=int(base))
