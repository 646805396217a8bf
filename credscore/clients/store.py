"""
Credscore — Activity store + social profile cache

Aggregates over activity recorded in the graph:
    (:Review {subject: <user key>, score: positive|negative|neutral, archived})
    (:Vouch {subject_profile_id, author_profile_id, staked_eth, archived})
    (:SocialProfile {service, account_id, joined_at})
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import structlog

from credscore.clients.directory import Directory, QueryFn
from credscore.clients.neo4j import run_query
from credscore.errors import MalformedDataError
from credscore.targets import Target

logger = structlog.get_logger()


@dataclass
class ReviewCounts:
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    def __add__(self, other: "ReviewCounts") -> "ReviewCounts":
        return ReviewCounts(
            positive=self.positive + other.positive,
            negative=self.negative + other.negative,
            neutral=self.neutral + other.neutral,
        )


class ActivityStore:
    def __init__(self, directory: Directory, query: QueryFn = run_query):
        self._directory = directory
        self._query = query

    async def review_counts(self, target: Target) -> ReviewCounts:
        keys = await self._directory.subject_keys(target)
        rows = await self._query(
            "MATCH (r:Review) WHERE r.subject IN $keys AND coalesce(r.archived, false) = false "
            "RETURN r.score AS score, count(r) AS count",
            keys=keys,
        )
        counts = ReviewCounts()
        for row in rows:
            score = row.get("score")
            if score not in ("positive", "negative", "neutral"):
                raise MalformedDataError(f"Unknown review score: {score!r}")
            setattr(counts, score, getattr(counts, score) + int(row["count"]))
        return counts

    async def staked_eth(self, target: Target) -> float:
        profile_id = await self._directory.get_profile_id(target)
        if profile_id is None:
            return 0.0
        rows = await self._query(
            "MATCH (v:Vouch {subject_profile_id: $profile_id}) WHERE coalesce(v.archived, false) = false "
            "RETURN coalesce(sum(v.staked_eth), 0) AS total",
            profile_id=profile_id,
        )
        return float(rows[0]["total"]) if rows else 0.0

    async def backer_count(self, target: Target) -> int:
        profile_id = await self._directory.get_profile_id(target)
        if profile_id is None:
            return 0
        rows = await self._query(
            "MATCH (v:Vouch {subject_profile_id: $profile_id}) WHERE coalesce(v.archived, false) = false "
            "RETURN count(DISTINCT v.author_profile_id) AS backers",
            profile_id=profile_id,
        )
        return int(rows[0]["backers"]) if rows else 0


def _to_datetime(value: Any) -> Optional[datetime]:
    """joined_at may be stored as a neo4j DateTime, an ISO string or epoch seconds."""
    if value is None:
        return None
    if hasattr(value, "to_native"):
        value = value.to_native()
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedDataError(f"Bad join date: {value!r}") from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise MalformedDataError(f"Bad join date: {value!r}")


class SocialProfileCache:
    """Cached social profile records, refreshed elsewhere."""

    def __init__(self, query: QueryFn = run_query):
        self._query = query

    async def join_dates(self, service: str, account_ids: Iterable[str]) -> Dict[str, datetime]:
        ids = list(account_ids)
        if not ids:
            return {}
        rows = await self._query(
            "MATCH (s:SocialProfile {service: $service}) WHERE s.account_id IN $ids "
            "RETURN s.account_id AS account_id, s.joined_at AS joined_at",
            service=service, ids=ids,
        )
        dates = {}
        for row in rows:
            joined = _to_datetime(row.get("joined_at"))
            if joined is not None:
                dates[str(row["account_id"])] = joined
        return dates
