from uuid import UUID

from app.clients.base import ServiceHttpClient
from app.config import settings
from app.schemas.external import BusinessProfile


class BusinessServiceClient(ServiceHttpClient):
    """Reads the business profile (GSTIN, state, turnover, regime)."""

    def __init__(self, base_url: str = None, **kwargs):
        super().__init__(base_url or settings.BUSINESS_SERVICE_URL, **kwargs)

    async def get_business(self, business_id: UUID, token: str) -> BusinessProfile:
        data = await self.get_json(
            f"/businesses/{business_id}",
            token,
            business_id,
            resource=f"Business {business_id}",
        )
        return BusinessProfile.model_validate(data)
