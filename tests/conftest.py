import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, build_engine
from app.repositories import GstSettingsRepository, ReportRepository
from app.schemas.external import BusinessProfile
from app.services.gst.report_cache import ReportCache

from tests.factories import (
    BUSINESS_GSTIN,
    FakeBusinessStore,
    FakeInvoiceStore,
    FakePartyStore,
    fixed_clock,
)


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def business() -> BusinessProfile:
    return BusinessProfile(
        id=uuid.uuid4(),
        name="Aquapure Industries",
        gstin=BUSINESS_GSTIN,
        state_code="29",
        address={"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "pincode": "560001"},
    )


@pytest.fixture
def invoice_store() -> FakeInvoiceStore:
    return FakeInvoiceStore()


@pytest.fixture
def party_store() -> FakePartyStore:
    return FakePartyStore()


@pytest.fixture
def business_store(business) -> FakeBusinessStore:
    return FakeBusinessStore([business])


@pytest.fixture
def report_cache(db) -> ReportCache:
    return ReportCache(ReportRepository(db), ttl_seconds=3600, clock=fixed_clock)


@pytest.fixture
def settings_repository(db) -> GstSettingsRepository:
    return GstSettingsRepository(db)
