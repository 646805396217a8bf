"""
Credscore — Signal registry
Signal name → evaluator. Adding or removing a signal never touches the orchestrator.

Names are the closed SignalName set; validate() is called when an engine is
built so a configuration naming a signal without an evaluator fails fast,
before any I/O.
"""
from functools import partial
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

from credscore.clients.chain_indexer import ChainIndexerClient
from credscore.clients.directory import Directory
from credscore.clients.score_store import ScoreStore
from credscore.clients.store import ActivityStore, SocialProfileCache
from credscore.errors import ConfigurationError
from credscore.score.constants import SignalName
from credscore.signals import chain, network, social
from credscore.signals._clock import Clock
from credscore.targets import Target

SignalEvaluator = Callable[[Target], Awaitable[float]]


def _signal_name(name: Union[SignalName, str]) -> SignalName:
    try:
        return SignalName(name)
    except ValueError:
        raise ConfigurationError(f"Unknown signal: {name!r}") from None


class SignalRegistry:
    def __init__(self):
        self._evaluators: Dict[SignalName, SignalEvaluator] = {}

    def register(self, name: Union[SignalName, str], evaluator: SignalEvaluator) -> "SignalRegistry":
        self._evaluators[_signal_name(name)] = evaluator
        return self

    def get(self, name: Union[SignalName, str]) -> SignalEvaluator:
        signal = _signal_name(name)
        if signal not in self._evaluators:
            raise ConfigurationError(f"No evaluator registered for signal: {signal.value}")
        return self._evaluators[signal]

    def validate(self, names: Iterable[str]) -> List[SignalEvaluator]:
        """Evaluators for every name, or ConfigurationError on the first missing one."""
        return [self.get(name) for name in names]

    @property
    def names(self) -> List[str]:
        return [s.value for s in self._evaluators]

    def __contains__(self, name: str) -> bool:
        try:
            return _signal_name(name) in self._evaluators
        except ConfigurationError:
            return False


def build_default_registry(
    directory: Directory,
    store: ActivityStore,
    social_cache: SocialProfileCache,
    indexer: ChainIndexerClient,
    score_store: ScoreStore,
    now: Optional[Clock] = None,
) -> SignalRegistry:
    registry = SignalRegistry()
    registry.register(
        SignalName.ADDRESS_AGE,
        partial(chain.address_age, directory=directory, indexer=indexer, now=now),
    )
    registry.register(
        SignalName.SOCIAL_ACCOUNT_AGE,
        partial(social.social_account_age, directory=directory, social_cache=social_cache, now=now),
    )
    registry.register(SignalName.REVIEW_IMPACT, partial(network.review_impact, store=store))
    registry.register(SignalName.STAKED_AMOUNT_IMPACT, partial(network.staked_amount_impact, store=store))
    registry.register(SignalName.BACKER_COUNT_IMPACT, partial(network.backer_count_impact, store=store))
    registry.register(
        SignalName.INVITATION_SOURCE_CREDIBILITY,
        partial(network.invitation_source_credibility, directory=directory, score_store=score_store),
    )
    return registry
