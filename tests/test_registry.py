"""
Tests for the signal registry.
"""
import pytest

from conftest import FakeActivityStore, FakeIndexer, FakeScoreStore, FakeSocialCache, FakeDirectory
from credscore.errors import ConfigurationError
from credscore.score.constants import SignalName
from credscore.signals.registry import SignalRegistry, build_default_registry


async def _one(target):
    return 1.0


class TestSignalRegistry:

    def test_register_and_get(self):
        registry = SignalRegistry().register(SignalName.REVIEW_IMPACT, _one)
        assert registry.get("Review Impact") is _one
        assert registry.get(SignalName.REVIEW_IMPACT) is _one
        assert "Review Impact" in registry
        assert registry.names == ["Review Impact"]

    def test_unknown_name_cannot_be_registered(self):
        with pytest.raises(ConfigurationError):
            SignalRegistry().register("Favourite Colour", _one)

    def test_missing_evaluator(self):
        registry = SignalRegistry().register(SignalName.REVIEW_IMPACT, _one)
        with pytest.raises(ConfigurationError):
            registry.get(SignalName.ADDRESS_AGE)
        assert SignalName.ADDRESS_AGE.value not in registry
        assert "Favourite Colour" not in registry

    def test_validate(self):
        registry = SignalRegistry().register(SignalName.REVIEW_IMPACT, _one)
        assert registry.validate(["Review Impact"]) == [_one]
        with pytest.raises(ConfigurationError):
            registry.validate(["Review Impact", "Address Age"])


class TestDefaultRegistry:

    def test_every_signal_registered(self):
        registry = build_default_registry(
            directory=FakeDirectory(),
            store=FakeActivityStore(),
            social_cache=FakeSocialCache(),
            indexer=FakeIndexer(),
            score_store=FakeScoreStore(),
        )
        assert sorted(registry.names) == sorted(s.value for s in SignalName)
