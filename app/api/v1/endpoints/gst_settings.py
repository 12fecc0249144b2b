"""API endpoints for per-business GST settings."""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import AuthToken, get_settings_service
from app.schemas.gst_settings import GstSettingsResponse, GstSettingsUpsert
from app.services.gst_settings_service import GstSettingsService


router = APIRouter()

SettingsSvc = Annotated[GstSettingsService, Depends(get_settings_service)]


@router.get(
    "/{business_id}/settings",
    response_model=GstSettingsResponse,
    summary="Get GST settings",
    description="Stored settings, or the defaults for a business that never configured GST.",
)
async def get_gst_settings(business_id: UUID, token: AuthToken, service: SettingsSvc):
    return await service.get(business_id)


@router.put(
    "/{business_id}/settings",
    response_model=GstSettingsResponse,
    summary="Update GST settings",
    description="""
    Create or update GST settings. Fields left out are unchanged.

    GSP credentials are stored encrypted and never returned; the response
    only says whether credentials are configured.
    """,
)
async def upsert_gst_settings(
    business_id: UUID,
    request: GstSettingsUpsert,
    token: AuthToken,
    service: SettingsSvc,
):
    return await service.upsert(business_id, request)
