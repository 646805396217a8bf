"""
Tests for signal fan-out / fan-in.
"""
import asyncio
from collections import Counter

import pytest

from credscore.clients.metrics import InMemoryMetrics
from credscore.errors import ConfigurationError, EvaluationError, SignalTimeoutError
from credscore.engine.orchestrator import populate_signal_values, simulate_signal_values
from credscore.score.constants import SignalName
from credscore.signals.registry import SignalRegistry
from credscore.targets import ProfileTarget

TARGET = ProfileTarget(1)
AGE = SignalName.ADDRESS_AGE.value
REVIEWS = SignalName.REVIEW_IMPACT.value
STAKE = SignalName.STAKED_AMOUNT_IMPACT.value
NAMES = [AGE, REVIEWS, STAKE]


def constant(value, calls=None, name=None):
    async def evaluate(target):
        if calls is not None:
            calls[name] += 1
        return value
    return evaluate


def failing(exc):
    async def evaluate(target):
        raise exc
    return evaluate


def hanging():
    async def evaluate(target):
        await asyncio.sleep(60)
        return 1.0
    return evaluate


def build_registry(**overrides):
    calls = Counter()
    registry = SignalRegistry()
    registry.register(AGE, overrides.get("age") or constant(400.0, calls, AGE))
    registry.register(REVIEWS, overrides.get("reviews") or constant(15.09, calls, REVIEWS))
    registry.register(STAKE, overrides.get("stake") or constant(20.0, calls, STAKE))
    return registry, calls


class TestPopulate:

    @pytest.mark.asyncio
    async def test_all_signals_evaluated(self):
        registry, calls = build_registry()
        metrics = InMemoryMetrics()
        values = await populate_signal_values(TARGET, NAMES, registry, metrics)

        assert values.element_values == {AGE: 400.0, REVIEWS: 15.09, STAKE: 20.0}
        assert values.errors == []
        assert calls == Counter({AGE: 1, REVIEWS: 1, STAKE: 1})
        assert sorted(metrics.signals) == sorted(NAMES)

    @pytest.mark.asyncio
    async def test_single_failure_is_isolated(self):
        healthy, _ = build_registry()
        broken, _ = build_registry(reviews=failing(RuntimeError("store unreachable")))
        metrics = InMemoryMetrics()

        ok = await populate_signal_values(TARGET, NAMES, healthy, InMemoryMetrics())
        values = await populate_signal_values(TARGET, NAMES, broken, metrics)

        assert values.errors == [REVIEWS]
        assert REVIEWS not in values.element_values
        assert values.element_values == {k: v for k, v in ok.element_values.items() if k != REVIEWS}
        assert isinstance(values.failures[REVIEWS], EvaluationError)
        assert isinstance(values.failures[REVIEWS].cause, RuntimeError)
        # failed evaluations are still timed
        assert len(metrics.signals[REVIEWS]) == 1

    @pytest.mark.asyncio
    async def test_timeout_and_exception_exclude_the_same_signal(self):
        raising, _ = build_registry(stake=failing(TimeoutError("indexer timed out")))
        slow, _ = build_registry(stake=hanging())

        raised = await populate_signal_values(TARGET, NAMES, raising, InMemoryMetrics(), deadline=0.2)
        timed_out = await populate_signal_values(TARGET, NAMES, slow, InMemoryMetrics(), deadline=0.2)

        assert raised.errors == timed_out.errors == [STAKE]
        assert raised.element_values == timed_out.element_values
        assert isinstance(timed_out.failures[STAKE], SignalTimeoutError)
        assert not isinstance(raised.failures[STAKE], SignalTimeoutError)

    @pytest.mark.asyncio
    async def test_errors_in_definition_order(self):
        registry, _ = build_registry(age=failing(ValueError("a")), stake=failing(ValueError("b")))
        values = await populate_signal_values(TARGET, NAMES, registry, InMemoryMetrics())
        assert values.errors == [AGE, STAKE]

    @pytest.mark.asyncio
    async def test_every_signal_failing(self):
        registry, _ = build_registry(
            age=failing(ValueError()), reviews=failing(ValueError()), stake=failing(ValueError()),
        )
        values = await populate_signal_values(TARGET, NAMES, registry, InMemoryMetrics())
        assert values.errors == NAMES
        assert values.element_values == {}

    @pytest.mark.parametrize("bad", [None, "12", True, float("nan"), float("inf")])
    @pytest.mark.asyncio
    async def test_non_numeric_result_is_a_failure(self, bad):
        registry, _ = build_registry(age=constant(bad))
        values = await populate_signal_values(TARGET, NAMES, registry, InMemoryMetrics())
        assert values.errors == [AGE]

    @pytest.mark.asyncio
    async def test_integer_results_become_floats(self):
        registry, _ = build_registry(age=constant(12))
        values = await populate_signal_values(TARGET, NAMES, registry, InMemoryMetrics())
        assert values.element_values[AGE] == 12.0
        assert isinstance(values.element_values[AGE], float)

    @pytest.mark.asyncio
    async def test_evaluators_run_concurrently(self):
        a_started, b_started = asyncio.Event(), asyncio.Event()

        async def age(target):
            a_started.set()
            await b_started.wait()
            return 1.0

        async def reviews(target):
            b_started.set()
            await a_started.wait()
            return 2.0

        registry, _ = build_registry(age=age, reviews=reviews)
        values = await populate_signal_values(TARGET, NAMES, registry, InMemoryMetrics(), deadline=2.0)
        assert values.errors == []

    @pytest.mark.asyncio
    async def test_unregistered_signal_fails_before_any_evaluation(self):
        registry, calls = build_registry()
        names = NAMES + [SignalName.BACKER_COUNT_IMPACT.value]
        with pytest.raises(ConfigurationError):
            await populate_signal_values(TARGET, names, registry, InMemoryMetrics())
        assert sum(calls.values()) == 0

    @pytest.mark.asyncio
    async def test_unknown_signal_name(self):
        registry, calls = build_registry()
        with pytest.raises(ConfigurationError):
            await populate_signal_values(TARGET, ["Favourite Colour"], registry, InMemoryMetrics())
        assert sum(calls.values()) == 0


class TestSimulate:

    @pytest.mark.asyncio
    async def test_overrides_skip_evaluation(self):
        registry, calls = build_registry()
        metrics = InMemoryMetrics()
        values = await simulate_signal_values(TARGET, NAMES, registry, metrics, {REVIEWS: 99.0})

        assert values.element_values == {AGE: 400.0, REVIEWS: 99.0, STAKE: 20.0}
        assert calls[REVIEWS] == 0
        assert REVIEWS not in metrics.signals

    @pytest.mark.asyncio
    async def test_full_override_does_no_lookups(self):
        registry, calls = build_registry(age=failing(RuntimeError("should not run")))
        metrics = InMemoryMetrics()
        overrides = {AGE: 10.0, REVIEWS: 20.0, STAKE: 30.0}

        values = await simulate_signal_values(TARGET, NAMES, registry, metrics, overrides)

        assert values.element_values == overrides
        assert values.errors == []
        assert sum(calls.values()) == 0
        assert not metrics.signals

    @pytest.mark.asyncio
    async def test_overrides_cannot_fail_but_others_still_can(self):
        registry, _ = build_registry(age=failing(RuntimeError()), reviews=failing(RuntimeError()))
        values = await simulate_signal_values(TARGET, NAMES, registry, InMemoryMetrics(), {REVIEWS: 5.0})
        assert values.errors == [AGE]
        assert values.element_values == {REVIEWS: 5.0, STAKE: 20.0}
