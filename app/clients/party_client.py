import asyncio
import logging
from typing import Dict, Sequence
from uuid import UUID

from app.clients.base import ServiceHttpClient
from app.config import settings
from app.schemas.external import Party


logger = logging.getLogger(__name__)


class PartyServiceClient(ServiceHttpClient):
    """Reads counterparties (customers and suppliers) from the party service."""

    def __init__(self, base_url: str = None, **kwargs):
        super().__init__(base_url or settings.PARTY_SERVICE_URL, **kwargs)

    async def get_party(self, business_id: UUID, party_id: UUID, token: str) -> Party:
        data = await self.get_json(
            f"/parties/{party_id}",
            token,
            business_id,
            resource=f"Party {party_id}",
        )
        return Party.model_validate(data)

    async def get_parties_by_ids(
        self, business_id: UUID, party_ids: Sequence[UUID], token: str
    ) -> Dict[UUID, Party]:
        """
        Fetch parties concurrently.

        A failed lookup is logged and left out of the result; it never
        aborts the rest of the batch.
        """
        unique_ids = list(dict.fromkeys(party_ids))
        results = await asyncio.gather(
            *(self.get_party(business_id, party_id, token) for party_id in unique_ids),
            return_exceptions=True,
        )

        parties: Dict[UUID, Party] = {}
        for party_id, result in zip(unique_ids, results):
            if isinstance(result, BaseException):
                logger.warning(f"Failed to fetch party {party_id}: {result}")
                continue
            parties[party_id] = result
        return parties
