"""
Credscore — On-chain signals
"""
from typing import Optional

import structlog

from credscore.clients.chain_indexer import ChainIndexerClient
from credscore.clients.directory import Directory
from credscore.score.constants import INSUFFICIENT_DATA
from credscore.signals._clock import Clock, days_since
from credscore.targets import Target, is_valid_address

logger = structlog.get_logger()


async def address_age(
    target: Target,
    *,
    directory: Directory,
    indexer: ChainIndexerClient,
    now: Optional[Clock] = None,
) -> float:
    """
    Days since the target's primary address first transacted on any indexed chain.
    No resolvable address or no on-chain history → 0.
    """
    address = await directory.get_primary_address(target)
    if not address or not is_valid_address(address):
        logger.debug("address_age_no_address", target=str(target))
        return INSUFFICIENT_DATA

    first_seen = await indexer.get_first_transaction_timestamp(address)
    if first_seen is None:
        return INSUFFICIENT_DATA

    return days_since(first_seen, now)
