"""
In-memory stand-ins for every external collaborator.
Each fake counts its calls so tests can assert on I/O.
"""
import time
from collections import Counter, deque
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from credscore.clients.directory import LinkedAccount
from credscore.clients.metrics import InMemoryMetrics
from credscore.clients.score_store import StoredScore
from credscore.clients.store import ReviewCounts
from credscore.score.results import ScoreResult
from credscore.targets import (
    AddressTarget,
    ProfileTarget,
    ServiceAccountTarget,
    ServiceUsernameTarget,
    Target,
    to_user_key,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
ADDRESS = "0x" + "ab" * 20
OTHER_ADDRESS = "0x" + "cd" * 20


def fixed_now() -> datetime:
    return NOW


class FakeDirectory:
    def __init__(self):
        self.profiles: Dict[int, Optional[str]] = {}        # profile_id -> primary address
        self.addresses: Dict[str, int] = {}                 # address -> profile_id
        self.accounts: Dict[int, List[LinkedAccount]] = {}  # profile_id -> linked accounts
        self.usernames: Dict[str, str] = {}                 # username -> account id
        self.inviters: Dict[int, int] = {}                  # profile_id -> inviter profile_id
        self.calls = Counter()

    def add_profile(self, profile_id: int, address: Optional[str] = None, accounts=None, invited_by=None):
        self.profiles[profile_id] = address
        if address:
            self.addresses[address.lower()] = profile_id
        self.accounts[profile_id] = list(accounts or [])
        for account in self.accounts[profile_id]:
            if account.username:
                self.usernames[account.username] = account.account_id
        if invited_by is not None:
            self.inviters[profile_id] = invited_by

    async def get_profile_id(self, target: Target) -> Optional[int]:
        self.calls["get_profile_id"] += 1
        if isinstance(target, ProfileTarget):
            return target.profile_id if target.profile_id in self.profiles else None
        if isinstance(target, AddressTarget):
            return self.addresses.get(target.address.lower())
        if isinstance(target, ServiceAccountTarget):
            for pid, accounts in self.accounts.items():
                if any(a.account_id == target.account for a in accounts):
                    return pid
        if isinstance(target, ServiceUsernameTarget):
            for pid, accounts in self.accounts.items():
                if any(a.username == target.username for a in accounts):
                    return pid
        return None

    async def get_primary_address(self, target: Target) -> Optional[str]:
        self.calls["get_primary_address"] += 1
        if isinstance(target, AddressTarget):
            return target.address
        pid = await self.get_profile_id(target)
        return self.profiles.get(pid) if pid is not None else None

    async def get_linked_accounts(self, target: Target, service: str) -> List[LinkedAccount]:
        self.calls["get_linked_accounts"] += 1
        if isinstance(target, ServiceAccountTarget):
            return [LinkedAccount(service, target.account)] if target.service == service else []
        if isinstance(target, ServiceUsernameTarget):
            if target.service != service or target.username not in self.usernames:
                return []
            return [LinkedAccount(service, self.usernames[target.username], target.username)]
        pid = await self.get_profile_id(target)
        if pid is None:
            return []
        return [a for a in self.accounts.get(pid, []) if a.service == service]

    async def get_inviter(self, target: Target) -> Optional[Target]:
        self.calls["get_inviter"] += 1
        pid = await self.get_profile_id(target)
        if pid is None or pid not in self.inviters:
            return None
        return ProfileTarget(self.inviters[pid])

    async def invite_tree(self, profile_ids: List[int]) -> List[int]:
        self.calls["invite_tree"] += 1
        seen = [pid for pid in dict.fromkeys(profile_ids) if pid in self.profiles]
        queue = deque(seen)
        while queue:
            inviter = queue.popleft()
            for pid, invited_by in self.inviters.items():
                if invited_by == inviter and pid not in seen:
                    seen.append(pid)
                    queue.append(pid)
        return seen

    async def subject_keys(self, target: Target) -> List[str]:
        return [to_user_key(target)]


class FakeActivityStore:
    def __init__(self, reviews: Optional[ReviewCounts] = None, staked: float = 0.0, backers: int = 0):
        self.reviews = reviews or ReviewCounts()
        self.staked = staked
        self.backers = backers
        self.calls = Counter()

    async def review_counts(self, target: Target) -> ReviewCounts:
        self.calls["review_counts"] += 1
        return ReviewCounts(self.reviews.positive, self.reviews.negative, self.reviews.neutral)

    async def staked_eth(self, target: Target) -> float:
        self.calls["staked_eth"] += 1
        return self.staked

    async def backer_count(self, target: Target) -> int:
        self.calls["backer_count"] += 1
        return self.backers


class FakeSocialCache:
    def __init__(self, joined: Optional[Dict[str, datetime]] = None):
        self.joined = joined or {}
        self.calls = Counter()

    async def join_dates(self, service: str, account_ids) -> Dict[str, datetime]:
        self.calls["join_dates"] += 1
        return {a: self.joined[a] for a in account_ids if a in self.joined}


class FakeIndexer:
    def __init__(self, first_seen: Optional[Dict[str, datetime]] = None):
        self.first_seen = first_seen or {}
        self.calls = Counter()

    async def get_first_transaction_timestamp(self, address: str) -> Optional[datetime]:
        self.calls["first_tx"] += 1
        return self.first_seen.get(address)


class FakeScoreStore:
    def __init__(self):
        self.scores: Dict[str, StoredScore] = {}
        self.locks = set()
        self.reads = 0
        self.saves = 0

    def put(self, key: str, score: int, age_seconds: float = 0.0, errors=None, dirty=None):
        errors = list(errors or [])
        self.scores[key] = StoredScore(
            score=score,
            calculated_at=time.time() - age_seconds,
            errors=errors,
            dirty=bool(errors) if dirty is None else dirty,
        )

    async def get_latest(self, key: str) -> Optional[StoredScore]:
        self.reads += 1
        return self.scores.get(key)

    async def get_latest_score(self, key: str, allow_dirty: bool = False) -> Optional[int]:
        latest = await self.get_latest(key)
        if latest is None or (latest.dirty and not allow_dirty):
            return None
        return latest.score

    async def save(self, key: str, result: ScoreResult) -> StoredScore:
        self.saves += 1
        stored = StoredScore.from_result(result)
        self.scores[key] = stored
        return stored

    async def invalidate(self, keys) -> int:
        marked = 0
        for key in keys:
            latest = self.scores.get(key)
            if latest is not None and not latest.dirty:
                latest.dirty = True
                marked += 1
        return marked

    async def acquire_lock(self, key: str) -> bool:
        if key in self.locks:
            return False
        self.locks.add(key)
        return True

    async def release_lock(self, key: str):
        self.locks.discard(key)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for ScoreStore."""

    def __init__(self, fail: bool = False):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, nx=False, ex=None, keepttl=False):
        self._check()
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        elif not keepttl:
            self.expiry.pop(key, None)
        return True

    async def delete(self, key):
        self._check()
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self):
        pass


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def activity_store():
    return FakeActivityStore()


@pytest.fixture
def social_cache():
    return FakeSocialCache()


@pytest.fixture
def indexer():
    return FakeIndexer()


@pytest.fixture
def score_store():
    return FakeScoreStore()


@pytest.fixture
def metrics():
    return InMemoryMetrics()


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)
