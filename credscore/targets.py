"""
Credscore — Targets
Opaque identity references. Resolution to concrete addresses and profiles
belongs to the directory collaborator.

User keys (stable string form, used as store keys and in URLs):
    address:0xabc...
    profileId:42
    service:x.com:1234567
    service:x.com:username:someone
"""
import re
from dataclasses import dataclass
from typing import Union

from credscore.errors import TargetParseError

X_SERVICE = "x.com"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class AddressTarget:
    address: str


@dataclass(frozen=True)
class ProfileTarget:
    profile_id: int


@dataclass(frozen=True)
class ServiceAccountTarget:
    service: str
    account: str


@dataclass(frozen=True)
class ServiceUsernameTarget:
    service: str
    username: str


Target = Union[AddressTarget, ProfileTarget, ServiceAccountTarget, ServiceUsernameTarget]


def is_valid_address(address: str) -> bool:
    return bool(address) and bool(_ADDRESS_RE.match(address))


def to_user_key(target: Target) -> str:
    if isinstance(target, AddressTarget):
        return f"address:{target.address}"
    if isinstance(target, ProfileTarget):
        return f"profileId:{target.profile_id}"
    if isinstance(target, ServiceAccountTarget):
        return f"service:{target.service}:{target.account}"
    if isinstance(target, ServiceUsernameTarget):
        return f"service:{target.service}:username:{target.username}"
    raise TargetParseError(f"Unsupported target: {target!r}")


def from_user_key(key: str) -> Target:
    """Parse a user key. Raises TargetParseError on anything malformed."""
    if not key or ":" not in key:
        raise TargetParseError(f"Invalid user key: {key!r}")

    kind, _, rest = key.partition(":")

    if kind == "address":
        if not is_valid_address(rest):
            raise TargetParseError(f"Invalid address in user key: {key!r}")
        return AddressTarget(address=rest)

    if kind == "profileId":
        if not rest.isdigit():
            raise TargetParseError(f"Invalid profile id in user key: {key!r}")
        return ProfileTarget(profile_id=int(rest))

    if kind == "service":
        parts = rest.split(":")
        if len(parts) == 2 and all(parts):
            return ServiceAccountTarget(service=parts[0], account=parts[1])
        if len(parts) == 3 and parts[1] == "username" and parts[0] and parts[2]:
            return ServiceUsernameTarget(service=parts[0], username=parts[2])
        raise TargetParseError(f"Invalid service user key: {key!r}")

    raise TargetParseError(f"Unknown user key type: {kind!r}")


def target_type(target: Target) -> str:
    """Coarse label for telemetry."""
    if isinstance(target, ProfileTarget):
        return "profile"
    if isinstance(target, (ServiceAccountTarget, ServiceUsernameTarget)):
        return "service"
    return "address"
