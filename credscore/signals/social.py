"""
Credscore — Social account signals
"""
from typing import Optional

from credscore.clients.directory import Directory
from credscore.clients.store import SocialProfileCache
from credscore.score.constants import NO_SOCIAL_ACCOUNT_DAYS
from credscore.signals._clock import Clock, days_since
from credscore.targets import X_SERVICE, Target


async def social_account_age(
    target: Target,
    *,
    directory: Directory,
    social_cache: SocialProfileCache,
    service: str = X_SERVICE,
    now: Optional[Clock] = None,
) -> float:
    """
    Days since the oldest linked account of `service` was created.

    No linked account, or no cached join date for any of them, returns a
    neutral 500 days rather than penalising missing data.
    """
    accounts = await directory.get_linked_accounts(target, service)
    if not accounts:
        return NO_SOCIAL_ACCOUNT_DAYS

    joined = await social_cache.join_dates(service, [a.account_id for a in accounts])
    if not joined:
        return NO_SOCIAL_ACCOUNT_DAYS

    return days_since(min(joined.values()), now)


async def account_age_days(
    account_id: str,
    *,
    social_cache: SocialProfileCache,
    service: str = X_SERVICE,
    now: Optional[Clock] = None,
) -> Optional[float]:
    """Age of a single cached account, or None when it is not in the cache."""
    joined = await social_cache.join_dates(service, [account_id])
    if account_id not in joined:
        return None
    return days_since(joined[account_id], now)
