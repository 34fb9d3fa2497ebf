"""
Flight search through the client cache tiers.
"""

from typing import Any, Dict, List, Optional

from shared.cache_keys import make_cache_key
from shared.errors import RateLimitError, ValidationError
from shared.logging import get_logger

from .api_client import TransportApiClient
from .cache.swr import SWRCoordinator, SWRResult
from .ratelimit import TokenBucket

logger = get_logger("client.flights")


class FlightSearch:
    """Searches flights with stale-while-revalidate caching.

    Every network fetch, foreground or background, spends one token from the
    bucket; an empty bucket fails the fetch with ``RateLimitError``.
    """

    def __init__(self, api: TransportApiClient, swr: SWRCoordinator, bucket: TokenBucket):
        self.api = api
        self.swr = swr
        self.bucket = bucket

    async def search(self, source: str, destination: str, date: str,
                     user_id: Optional[str] = None) -> SWRResult:
        """Return flights for the route, possibly stale.

        Raises:
            ValidationError: source, destination or date is blank
        """
        source = (source or "").strip().upper()
        destination = (destination or "").strip().upper()
        date = (date or "").strip()
        if not source or not destination or not date:
            raise ValidationError("Please provide valid source, destination, and date")

        key = make_cache_key("flights", source, destination, date)

        async def fetch() -> List[Dict[str, Any]]:
            if not self.bucket.try_remove_token():
                raise RateLimitError(
                    "Client flight search budget exhausted",
                    details={"retry_after_ms": self.bucket.retry_after_ms()},
                )
            body = await self.api.search(source, destination, "flights", date=date, user_id=user_id)
            results = body.get("results")
            if results is None:
                logger.warning("No results in response", keys=list(body))
                return []
            return results

        result = await self.swr.resolve(key, fetch)
        logger.info(
            "Flight search resolved",
            key=key,
            stale=result.stale,
            count=len(result.data) if isinstance(result.data, list) else 0,
        )
        return result
