from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Format checks (registered before the business-scoped routes)
    validation,
    # GST returns
    gst_returns,
    # GSTR-2A/2B reconciliation
    reconciliation,
    # E-Invoice & E-Way Bill
    einvoice,
    ewaybill,
    # Settings
    gst_settings,
)


api_router = APIRouter(prefix="/api/v1")

api_router.include_router(validation.router, prefix="/gst", tags=["Validation"])
api_router.include_router(gst_returns.router, prefix="/gst", tags=["GST Returns"])
api_router.include_router(reconciliation.router, prefix="/gst", tags=["GSTR-2A/2B Reconciliation"])
api_router.include_router(einvoice.router, prefix="/gst", tags=["E-Invoice"])
api_router.include_router(ewaybill.router, prefix="/gst", tags=["E-Way Bill"])
api_router.include_router(gst_settings.router, prefix="/gst", tags=["GST Settings"])
