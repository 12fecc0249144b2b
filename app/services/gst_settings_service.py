"""
GST Settings Service

Per-business GST configuration: regime, filing frequency, GSP provider and
credentials, and the e-invoice / e-way bill switches.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from app.core.exceptions import GSTValidationError
from app.models.gst_settings import GstSettings
from app.repositories.gst_settings_repository import GstSettingsRepository
from app.schemas.external import BusinessProfile
from app.schemas.gsp import GSPCredentials
from app.schemas.gst_settings import GstSettingsResponse, GstSettingsUpsert
from app.services.gsp.base import GSPProvider
from app.services.gsp.credential_store import CredentialStore
from app.services.gsp.registry import GSPProviderRegistry
from app.services.gst.constants import EINVOICE_TURNOVER_THRESHOLD, FilingFrequency, GSTType


logger = logging.getLogger(__name__)


class GstSettingsService:
    """Reads and upserts GstSettings. Stored credentials never leave this service."""

    def __init__(
        self,
        repository: GstSettingsRepository,
        credential_store: CredentialStore,
        registry: GSPProviderRegistry,
    ):
        self.repository = repository
        self.credential_store = credential_store
        self.registry = registry

    async def find(self, business_id: UUID) -> Optional[GstSettings]:
        return await self.repository.find_by_business(business_id)

    async def get(self, business_id: UUID) -> GstSettingsResponse:
        """Stored settings, or the defaults when the business never configured GST."""
        row = await self.find(business_id)
        if row is None:
            return GstSettingsResponse(
                business_id=business_id,
                gst_type=GSTType.REGULAR,
                filing_frequency=FilingFrequency.MONTHLY,
                gsp_provider=self.registry.default_provider,
                has_credentials=False,
                einvoice_enabled=False,
                ewaybill_enabled=True,
            )
        return self._to_response(row)

    async def upsert(self, business_id: UUID, data: GstSettingsUpsert) -> GstSettingsResponse:
        """
        Create or update the business's settings.

        Only the fields present in ``data`` change. Credentials are encrypted
        before they are stored. E-invoicing is switched on automatically once
        annual turnover reaches 5 crore.
        """
        fields = data.model_dump(exclude_unset=True, exclude={"gsp_credentials"})

        if fields.get("gsp_provider"):
            fields["gsp_provider"] = self.registry.resolve_name(fields["gsp_provider"])

        if data.gsp_credentials is not None:
            fields["gsp_credentials"] = self.credential_store.seal(data.gsp_credentials)

        turnover = fields.get("annual_turnover")
        if turnover is not None and turnover >= EINVOICE_TURNOVER_THRESHOLD:
            if not fields.get("einvoice_enabled"):
                logger.info(
                    f"Auto-enabling E-Invoice for business {business_id} (turnover: {turnover})"
                )
            fields["einvoice_enabled"] = True

        # Columns are non-nullable; an explicit null means "leave as is"
        for key in ("gst_type", "filing_frequency", "einvoice_enabled", "ewaybill_enabled"):
            if key in fields and fields[key] is None:
                del fields[key]

        row = await self.find(business_id)
        if row is None:
            row = await self.repository.create(business_id, **fields)
        else:
            row = await self.repository.update(row, **fields)

        logger.info(f"GST settings updated for business {business_id}")
        return self._to_response(row)

    async def is_einvoice_enabled(
        self, business_id: UUID, business: Optional[BusinessProfile] = None
    ) -> bool:
        """Enabled explicitly, or by turnover from the settings or the business profile."""
        row = await self.find(business_id)
        if row is not None and row.einvoice_enabled:
            return True

        turnover: Optional[Decimal] = row.annual_turnover if row is not None else None
        if turnover is None and business is not None:
            turnover = business.annual_turnover
        return turnover is not None and Decimal(str(turnover)) >= EINVOICE_TURNOVER_THRESHOLD

    async def is_ewaybill_enabled(self, business_id: UUID) -> bool:
        row = await self.find(business_id)
        return row.ewaybill_enabled if row is not None else True

    async def resolve_provider(self, business_id: UUID) -> GSPProvider:
        """
        Provider configured for the business, initialised with its credentials.

        Undecryptable credentials count as none configured.

        Raises:
            GSTValidationError: unknown provider, or the provider needs
                credentials and none are configured
        """
        row = await self.find(business_id)
        name = row.gsp_provider if row is not None else None
        credentials = self.credential_store.load(row.gsp_credentials) if row is not None else None

        provider = self.registry.create(
            name,
            credentials or GSPCredentials(),
            credentials.api_url if credentials else None,
        )
        if credentials is None and provider.requires_credentials:
            raise GSTValidationError(
                "GSP credentials not configured. Please configure GSP provider in GST settings.",
                error_code="GSP_NOT_CONFIGURED",
                details={"provider": provider.name},
            )
        return provider

    def _to_response(self, row: GstSettings) -> GstSettingsResponse:
        return GstSettingsResponse(
            id=row.id,
            business_id=row.business_id,
            gst_type=row.gst_type,
            annual_turnover=row.annual_turnover,
            filing_frequency=row.filing_frequency,
            composition_rate=row.composition_rate,
            gsp_provider=row.gsp_provider or self.registry.default_provider,
            has_credentials=bool(row.gsp_credentials),
            einvoice_enabled=row.einvoice_enabled,
            ewaybill_enabled=row.ewaybill_enabled,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
