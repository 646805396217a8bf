"""
Credscore — Sigmoid normalizer

Bounds an unbounded raw metric so that no single signal can swamp the score,
however extreme the metric gets (thousands of reviews, huge stakes).

    sigmoid(x) = x / (1 + |x| + pace) * scale

    - sigmoid(0) == 0
    - strictly increasing in x
    - |sigmoid(x)| < scale for every finite x (approached, never reached)
    - a larger pace flattens the curve

See https://en.wikipedia.org/wiki/Sigmoid_function for the family this belongs to.
scale and pace are per-call parameters; some evaluators derive pace from auxiliary counts.
"""
from credscore.score.constants import DEFAULT_PACE, DEFAULT_SCALE


def sigmoid(x: float, scale: float = DEFAULT_SCALE, pace: float = DEFAULT_PACE) -> float:
    return (x / (1 + abs(x) + pace)) * scale
