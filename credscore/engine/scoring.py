"""
Credscore — Score Engine
Signals in, one credibility score out.

    Target ──▶ Orchestrator {evaluator × N in parallel} ──▶ values / errors ──▶ Calculation Tree ──▶ score

Two entry points:
    compute_score(target)             every signal evaluated live
    simulate_score(target, overrides) overridden signals taken verbatim, the rest live

Only ConfigurationError leaves either call. Evaluation failures come back as
data in ScoreResult.errors and contribute 0 points.
"""
import time
from typing import Mapping, Optional

import structlog

from credscore.clients.metrics import MetricsSink
from credscore.engine.orchestrator import SignalValues, check_value, populate_signal_values, simulate_signal_values
from credscore.errors import EvaluationError
from credscore.score.calculation import ScoreConfig, calculate_score
from credscore.score.elements import calculate_element
from credscore.score.results import ScoreResult, SignalResult
from credscore.signals.registry import SignalRegistry
from credscore.targets import Target, target_type, to_user_key

logger = structlog.get_logger()


class ScoreEngine:
    def __init__(
        self,
        config: ScoreConfig,
        registry: SignalRegistry,
        metrics: Optional[MetricsSink] = None,
        deadline: Optional[float] = None,
    ):
        # fail fast: every configured signal must have an evaluator
        registry.validate(config.signal_names)
        self.config = config
        self.registry = registry
        self.metrics = metrics or MetricsSink()
        self.deadline = deadline

    def _assemble(self, values: SignalValues) -> ScoreResult:
        signals = {}
        for name in self.config.signal_names:
            failed = name in values.failures
            raw = None if failed else values.element_values.get(name)
            weighted = calculate_element(self.config.definition(name), values.element_values)
            signals[name] = SignalResult(name=name, raw=raw, weighted=weighted, failed=failed)

        score = calculate_score(self.config.root, values.element_values, self.config.base)
        return ScoreResult(score=score, signals=signals, errors=list(values.errors))

    async def compute_score(self, target: Target) -> ScoreResult:
        t0 = time.perf_counter()
        values = await populate_signal_values(
            target, self.config.signal_names, self.registry, self.metrics, deadline=self.deadline,
        )
        result = self._assemble(values)
        elapsed = round((time.perf_counter() - t0) * 1000, 2)

        self.metrics.observe_calculation(target_type(target), elapsed)
        await self.metrics.flush()

        logger.info(
            "score_computed",
            target=to_user_key(target),
            score=result.score,
            errors=result.errors,
            elapsed_ms=elapsed,
        )
        return result

    async def simulate_score(self, target: Target, overrides: Mapping[str, float]) -> ScoreResult:
        configured = set(self.config.signal_names)
        ignored = [name for name in overrides if name not in configured]
        if ignored:
            logger.info("simulation_overrides_ignored", target=to_user_key(target), names=ignored)

        applied, rejected = {}, []
        for name, value in overrides.items():
            if name not in configured:
                continue
            try:
                applied[name] = check_value(name, value)
            except EvaluationError:
                rejected.append(name)
        if rejected:
            # evaluated live instead
            logger.warning("simulation_overrides_rejected", target=to_user_key(target), names=rejected)

        values = await simulate_signal_values(
            target, self.config.signal_names, self.registry, self.metrics, applied, deadline=self.deadline,
        )
        result = self._assemble(values)
        await self.metrics.flush()

        logger.info(
            "score_simulated",
            target=to_user_key(target),
            score=result.score,
            overridden=sorted(applied),
            errors=result.errors,
        )
        return result
