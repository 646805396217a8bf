"""
Credscore — Identity directory
Maps targets to concrete profiles, addresses and linked social accounts.

Graph shape:
    (:Profile {profile_id, primary_address})
    (:Profile)-[:HAS_ADDRESS]->(:Address {address})
    (:Profile)-[:HAS_ACCOUNT]->(:SocialProfile {service, account_id, username, joined_at})
    (:Profile)-[:INVITED]->(:Profile)
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from credscore.clients.neo4j import run_query
from credscore.targets import (
    AddressTarget,
    ProfileTarget,
    ServiceAccountTarget,
    ServiceUsernameTarget,
    Target,
    to_user_key,
)

logger = structlog.get_logger()

QueryFn = Callable[..., Awaitable[List[Dict[str, Any]]]]


@dataclass
class Profile:
    profile_id: int
    primary_address: Optional[str] = None


@dataclass
class LinkedAccount:
    service: str
    account_id: str
    username: Optional[str] = None


class Directory:
    def __init__(self, query: QueryFn = run_query):
        self._query = query

    async def get_profile(self, target: Target) -> Optional[Profile]:
        if isinstance(target, ProfileTarget):
            rows = await self._query(
                "MATCH (p:Profile {profile_id: $profile_id}) "
                "RETURN p.profile_id AS profile_id, p.primary_address AS primary_address",
                profile_id=target.profile_id,
            )
        elif isinstance(target, AddressTarget):
            rows = await self._query(
                "MATCH (p:Profile)-[:HAS_ADDRESS]->(a:Address) WHERE toLower(a.address) = toLower($address) "
                "RETURN p.profile_id AS profile_id, p.primary_address AS primary_address LIMIT 1",
                address=target.address,
            )
        elif isinstance(target, ServiceAccountTarget):
            rows = await self._query(
                "MATCH (p:Profile)-[:HAS_ACCOUNT]->(s:SocialProfile {service: $service, account_id: $account}) "
                "RETURN p.profile_id AS profile_id, p.primary_address AS primary_address LIMIT 1",
                service=target.service, account=target.account,
            )
        elif isinstance(target, ServiceUsernameTarget):
            rows = await self._query(
                "MATCH (p:Profile)-[:HAS_ACCOUNT]->(s:SocialProfile {service: $service}) "
                "WHERE toLower(s.username) = toLower($username) "
                "RETURN p.profile_id AS profile_id, p.primary_address AS primary_address LIMIT 1",
                service=target.service, username=target.username,
            )
        else:
            return None

        if not rows:
            return None
        return Profile(profile_id=int(rows[0]["profile_id"]), primary_address=rows[0].get("primary_address"))

    async def get_profile_id(self, target: Target) -> Optional[int]:
        profile = await self.get_profile(target)
        return profile.profile_id if profile else None

    async def get_primary_address(self, target: Target) -> Optional[str]:
        """The target's own address, else its profile's primary address."""
        if isinstance(target, AddressTarget):
            return target.address
        profile = await self.get_profile(target)
        return profile.primary_address if profile else None

    async def resolve_service_account(self, service: str, username: str) -> Optional[str]:
        rows = await self._query(
            "MATCH (s:SocialProfile {service: $service}) WHERE toLower(s.username) = toLower($username) "
            "RETURN s.account_id AS account_id LIMIT 1",
            service=service, username=username,
        )
        return str(rows[0]["account_id"]) if rows else None

    async def get_linked_accounts(self, target: Target, service: str) -> List[LinkedAccount]:
        """
        Linked accounts of one service for the target.
        A service target is its own (single) linked account.
        """
        if isinstance(target, ServiceAccountTarget):
            if target.service != service:
                return []
            return [LinkedAccount(service=service, account_id=target.account)]

        if isinstance(target, ServiceUsernameTarget):
            if target.service != service:
                return []
            account_id = await self.resolve_service_account(service, target.username)
            if account_id is None:
                return []
            return [LinkedAccount(service=service, account_id=account_id, username=target.username)]

        profile_id = await self.get_profile_id(target)
        if profile_id is None:
            return []
        rows = await self._query(
            "MATCH (:Profile {profile_id: $profile_id})-[:HAS_ACCOUNT]->(s:SocialProfile {service: $service}) "
            "RETURN s.account_id AS account_id, s.username AS username",
            profile_id=profile_id, service=service,
        )
        return [
            LinkedAccount(service=service, account_id=str(r["account_id"]), username=r.get("username"))
            for r in rows
        ]

    async def get_inviter(self, target: Target) -> Optional[Target]:
        """The profile that invited the target into the network, if any."""
        profile_id = await self.get_profile_id(target)
        if profile_id is None:
            return None
        rows = await self._query(
            "MATCH (inviter:Profile)-[:INVITED]->(:Profile {profile_id: $profile_id}) "
            "RETURN inviter.profile_id AS profile_id LIMIT 1",
            profile_id=profile_id,
        )
        if not rows:
            return None
        return ProfileTarget(profile_id=int(rows[0]["profile_id"]))

    async def invite_tree(self, profile_ids: List[int]) -> List[int]:
        """The given profiles plus everyone they invited, transitively."""
        if not profile_ids:
            return []
        rows = await self._query(
            "MATCH (root:Profile) WHERE root.profile_id IN $profile_ids "
            "MATCH (root)-[:INVITED*0..]->(p:Profile) WHERE coalesce(p.archived, false) = false "
            "RETURN DISTINCT p.profile_id AS profile_id",
            profile_ids=list(profile_ids),
        )
        return [int(r["profile_id"]) for r in rows]

    async def subject_keys(self, target: Target) -> List[str]:
        """
        Every user key activity about this identity may be recorded under:
        the target itself, its profile and all of the profile's addresses.
        """
        keys = [to_user_key(target)]
        profile_id = await self.get_profile_id(target)
        if profile_id is not None:
            keys.append(to_user_key(ProfileTarget(profile_id)))
            rows = await self._query(
                "MATCH (:Profile {profile_id: $profile_id})-[:HAS_ADDRESS]->(a:Address) RETURN a.address AS address",
                profile_id=profile_id,
            )
            keys.extend(to_user_key(AddressTarget(r["address"])) for r in rows)
        # preserve order, drop duplicates
        return list(dict.fromkeys(keys))
