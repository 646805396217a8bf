"""
Credscore — Signal orchestrator
Fans out one task per signal for a target, then joins all of them.

    validate names ──▶ spawn tasks ──▶ wait(deadline) ──▶ collect
         │                                   │
    ConfigurationError               pending at deadline = failed
    (before any task)

- Every evaluator runs concurrently; no early return on first failure or success.
- A raised exception or a deadline miss both put the name in `errors` and
  leave no raw value for it. The failure mode never changes which names fail.
- Each evaluation's duration is recorded whatever the outcome.
- Overridden signals (simulation) are taken verbatim: no task, no telemetry.
"""
import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from credscore.clients.metrics import MetricsSink
from credscore.errors import EvaluationError, SignalTimeoutError
from credscore.signals.registry import SignalEvaluator, SignalRegistry
from credscore.targets import Target, to_user_key

logger = structlog.get_logger()

CANCEL_GRACE_SECONDS = 1.0


@dataclass
class SignalValues:
    element_values: Dict[str, float] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    failures: Dict[str, EvaluationError] = field(default_factory=dict)


def check_value(name: str, value) -> float:
    """A signal value must be a finite int or float. Anything else raises EvaluationError."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EvaluationError(name, message=f"expected a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise EvaluationError(name, message=f"non-finite value {value}")
    return float(value)


async def _timed_evaluate(
    name: str,
    evaluator: SignalEvaluator,
    target: Target,
    metrics: MetricsSink,
) -> float:
    """Run one evaluator with timing. Any exception comes back as EvaluationError."""
    t0 = time.perf_counter()
    try:
        value = await evaluator(target)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise EvaluationError(name, cause=e) from e
    finally:
        metrics.observe_signal(name, round((time.perf_counter() - t0) * 1000, 2))
    return check_value(name, value)


async def populate_signal_values(
    target: Target,
    names: Sequence[str],
    registry: SignalRegistry,
    metrics: MetricsSink,
    deadline: Optional[float] = None,
    overrides: Optional[Mapping[str, float]] = None,
) -> SignalValues:
    """
    Evaluate every named signal for a target.
    Raises ConfigurationError (before any evaluator runs) if a name has no evaluator.
    """
    overrides = overrides or {}
    evaluators = dict(zip(names, registry.validate(names)))

    result = SignalValues()
    for name in names:
        if name in overrides:
            result.element_values[name] = float(overrides[name])

    tasks: Dict[str, asyncio.Task] = {
        name: asyncio.ensure_future(_timed_evaluate(name, evaluators[name], target, metrics))
        for name in names
        if name not in overrides
    }
    if not tasks:
        return result

    user_key = to_user_key(target)
    try:
        _, pending = await asyncio.wait(tasks.values(), timeout=deadline)
        for task in pending:
            task.cancel()
        if pending:
            # give cancelled evaluators a moment to run their cleanup
            await asyncio.wait(pending, timeout=CANCEL_GRACE_SECONDS)

        for name, task in tasks.items():
            if task in pending:
                error = SignalTimeoutError(name, deadline)
                logger.warning("signal_deadline_exceeded", signal=name, target=user_key, deadline=deadline)
            elif task.cancelled():
                error = EvaluationError(name, message="evaluation was cancelled")
                logger.warning("signal_evaluation_failed", signal=name, target=user_key, error=str(error))
            elif task.exception() is not None:
                error = task.exception()
                logger.warning("signal_evaluation_failed", signal=name, target=user_key, error=str(error))
            else:
                result.element_values[name] = task.result()
                continue
            result.failures[name] = error
    finally:
        for task in tasks.values():
            if not task.done():
                task.cancel()

    result.errors = [name for name in names if name in result.failures]
    return result


async def simulate_signal_values(
    target: Target,
    names: Sequence[str],
    registry: SignalRegistry,
    metrics: MetricsSink,
    overrides: Mapping[str, float],
    deadline: Optional[float] = None,
) -> SignalValues:
    """Same contract as populate_signal_values; overridden names are never evaluated."""
    return await populate_signal_values(target, names, registry, metrics, deadline=deadline, overrides=overrides)
