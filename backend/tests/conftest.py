"""Shared test infrastructure for the EstateGuard test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_user: factory for User rows (with default agency settings)
- listing_payload / make_property: raw listing dicts and owned Property rows
- make_lead: factory for Lead rows
- build_client: HTTPX AsyncClient wired to a minimal FastAPI app
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from estateguard.infra.database import Base
import estateguard.domain.models  # noqa: F401

from estateguard.domain.models import AppConfig, Lead, Property, User
from estateguard.domain.schemas import AgentSettings, PropertyRecord
from estateguard.services.pipeline_board import DEFAULT_STAGES


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory for an agency account plus its app_config row.

    Usage:
        user = await make_user(high_security_mode=False)
    """
    async def _factory(email: str | None = None, name: str = "Harbor Realty", **settings) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"agent-{uuid.uuid4().hex[:8]}@example.com",
            password_hash="not-a-real-hash",
            name=name,
        )
        db_session.add(user)
        defaults = AgentSettings(business_name=name, pipeline_stages=list(DEFAULT_STAGES))
        config = AppConfig(id=user.id, **defaults.model_copy(update=settings).model_dump())
        db_session.add(config)
        await db_session.commit()
        return user

    return _factory


def property_payload(
    property_id: str | None = None,
    price: float = 850_000,
    tier: str = "Standard",
    **overrides,
) -> dict:
    """A complete listing with gated appraisal data and agent notes."""
    payload = {
        "property_id": property_id or f"EG-{uuid.uuid4().hex[:8].upper()}",
        "category": "Residential",
        "transaction_type": "Sale",
        "status": "Active",
        "tier": tier,
        "visibility_protocol": {
            "public_fields": ["address", "price", "bedrooms", "bathrooms", "sq_ft"],
            "gated_fields": ["private_appraisal", "seller_motivation", "showing_instructions"],
        },
        "listing_details": {
            "address": "18 Harbor View Lane",
            "price": price,
            "key_stats": {"bedrooms": 4, "bathrooms": 3, "sq_ft": 2800, "lot_size": "0.3 Acres"},
            "hero_narrative": "Bright four-bedroom home two blocks from the marina.",
        },
        "deep_data": {
            "private_appraisal": {"value": 812_000, "date": "2026-02-01", "notes": "Comparable sales steady."},
        },
        "agent_notes": {
            "motivation": "Seller is relocating for work.",
            "showing_instructions": "Lockbox code 4417.",
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def listing_payload():
    """The ``property_payload`` builder, for tests that need raw dicts."""
    return property_payload


@pytest.fixture
def make_property(db_session):
    """Factory for an owned listing. Returns the PropertyRecord."""
    async def _factory(user: User, **kwargs) -> PropertyRecord:
        record = PropertyRecord.model_validate({**property_payload(**kwargs), "user_id": user.id})
        data = record.model_dump(mode="json")
        db_session.add(
            Property(
                property_id=record.property_id,
                user_id=user.id,
                address=record.listing_details.address,
                price=record.listing_details.price,
                status=record.status.value,
                tier=record.tier.value,
                category=record.category.value,
                data=data,
                deep_data=data["deep_data"],
            )
        )
        await db_session.commit()
        return record

    return _factory


@pytest.fixture
def make_lead(db_session):
    """Factory for Lead rows. ``age_minutes`` pushes created_at into the past."""
    async def _factory(
        user: User,
        status: str = "New",
        name: str = "Dana Whitfield",
        age_minutes: int = 0,
        **kwargs,
    ) -> Lead:
        lead = Lead(
            id=str(uuid.uuid4()),
            user_id=user.id,
            name=name,
            phone=kwargs.pop("phone", "555-201-7788"),
            status=status,
            property_id=kwargs.pop("property_id", "General"),
            property_address=kwargs.pop("property_address", "N/A"),
            notes=kwargs.pop("notes", []),
            notes_log=kwargs.pop("notes_log", []),
            conversation_history=kwargs.pop("conversation_history", []),
            created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
            **kwargs,
        )
        db_session.add(lead)
        await db_session.commit()
        return lead

    return _factory


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def build_client(db_session):
    """Build an HTTPX AsyncClient for a fresh FastAPI app with the given routers.

    Uses a minimal app to avoid the lifespan's database bootstrapping.
    """
    from fastapi import FastAPI
    from estateguard.infra.database import get_db

    def _factory(*routers) -> AsyncClient:
        test_app = FastAPI()
        for router in routers:
            test_app.include_router(router)

        async def _override_get_db():
            yield db_session

        test_app.dependency_overrides[get_db] = _override_get_db
        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
        )

    return _factory
