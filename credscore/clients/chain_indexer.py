"""
Credscore — Chain indexer client
First-seen transaction timestamp for an address, across every configured chain.

    GET {MORALIS_BASE_URL}/wallets/{address}/chains?chains=eth&chains=base...
    → {"active_chains": [{"chain": "eth", "first_transaction": {"block_timestamp": "..."}}]}

No record is a valid answer (None). Transport errors, unexpected statuses
and malformed payloads raise ChainIndexerError.
"""
from datetime import datetime, timezone
from typing import List, Optional

import httpx
import structlog

from credscore.config import settings
from credscore.errors import ChainIndexerError

logger = structlog.get_logger()

_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


class ChainIndexerClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        chains: Optional[List[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key if api_key is not None else settings.MORALIS_API_KEY
        self._base_url = (base_url or settings.MORALIS_BASE_URL).rstrip("/")
        self._chains = chains or settings.CHAIN_INDEXER_CHAINS
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": "credscore/1.0"},
                timeout=_TIMEOUT,
            )
        return self._client

    async def get_first_transaction_timestamp(self, address: str) -> Optional[datetime]:
        try:
            resp = await self._get_client().get(
                f"{self._base_url}/wallets/{address}/chains",
                params=[("chains", c) for c in self._chains],
                headers={"X-API-Key": self._api_key, "Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise ChainIndexerError(f"Chain indexer unreachable: {e}") from e

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise ChainIndexerError(f"Chain indexer returned HTTP {resp.status_code}")

        try:
            chains = resp.json().get("active_chains") or []
            stamps = [
                c["first_transaction"]["block_timestamp"]
                for c in chains
                if c.get("first_transaction") and c["first_transaction"].get("block_timestamp")
            ]
            parsed = [datetime.fromisoformat(s.replace("Z", "+00:00")) for s in stamps]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ChainIndexerError(f"Malformed chain indexer response: {e}") from e

        if not parsed:
            logger.debug("chain_indexer_no_activity", address=address)
            return None
        return min(p if p.tzinfo else p.replace(tzinfo=timezone.utc) for p in parsed)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
