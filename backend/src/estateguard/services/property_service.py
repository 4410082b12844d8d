"""Owner-scoped listing storage.

The full ``PropertyRecord`` lives in ``Property.data``; scalar columns are
copied out on every write so list views can filter without parsing JSON.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.domain.enums import PropertyTier
from estateguard.domain.models import Lead, Property
from estateguard.domain.schemas import DashboardStats, PropertyRecord
from estateguard.services.starter_portfolio import STARTER_PORTFOLIO
from estateguard.services.store_errors import classify_store_error, commit_or_raise

logger = logging.getLogger(__name__)


class PropertyNotFoundError(LookupError):
    """No listing with that id is visible to the caller."""

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property {property_id} not found")


class PropertyConflictError(Exception):
    """The id is already taken by a listing owned by another account."""

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property id {property_id} is already in use")


def row_to_record(prop: Property) -> PropertyRecord:
    data = dict(prop.data or {})
    data["property_id"] = prop.property_id
    data["user_id"] = prop.user_id
    return PropertyRecord.model_validate(data)


def _apply_record(prop: Property, record: PropertyRecord) -> None:
    data = record.model_dump(mode="json")
    prop.data = data
    prop.address = record.listing_details.address
    prop.price = record.listing_details.price
    prop.status = record.status.value
    prop.tier = record.tier.value
    prop.category = record.category.value
    prop.amenities = data.get("amenities") or {}
    prop.ai_training = data.get("ai_training") or {}
    prop.deep_data = data.get("deep_data") or {}
    prop.seo = data.get("seo") or {}


async def _select_one(db: AsyncSession, stmt, operation: str):
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        raise classify_store_error(operation, exc) from exc
    return result.scalar_one_or_none()


async def get_public_property(db: AsyncSession, property_id: str) -> Property | None:
    """Unscoped lookup used by shared links and the public concierge."""
    return await _select_one(
        db, select(Property).where(Property.property_id == property_id), "load property"
    )


async def get_property(db: AsyncSession, user_id: str, property_id: str) -> Property | None:
    return await _select_one(
        db,
        select(Property).where(
            Property.property_id == property_id, Property.user_id == user_id
        ),
        "load property",
    )


async def list_properties(db: AsyncSession, user_id: str) -> list[PropertyRecord]:
    try:
        result = await db.execute(
            select(Property)
            .where(Property.user_id == user_id)
            .order_by(Property.created_at.desc())
        )
    except SQLAlchemyError as exc:
        raise classify_store_error("list properties", exc) from exc
    return [row_to_record(p) for p in result.scalars().all()]


async def upsert_property(
    db: AsyncSession, user_id: str, record: PropertyRecord
) -> PropertyRecord:
    """Insert or replace a listing owned by ``user_id``."""
    record = record.model_copy(update={"user_id": user_id})
    existing = await get_public_property(db, record.property_id)
    if existing is not None and existing.user_id != user_id:
        raise PropertyConflictError(record.property_id)

    prop = existing or Property(property_id=record.property_id, user_id=user_id)
    _apply_record(prop, record)
    if existing is None:
        db.add(prop)
    await commit_or_raise(db, "save property")
    logger.info("Saved property %s for account %s", record.property_id, user_id)
    return row_to_record(prop)


async def delete_property(db: AsyncSession, user_id: str, property_id: str) -> None:
    """Delete a listing. Leads that reference it are left alone."""
    prop = await get_property(db, user_id, property_id)
    if prop is None:
        raise PropertyNotFoundError(property_id)
    await db.delete(prop)
    await commit_or_raise(db, "delete property")


async def inject_starter_portfolio(db: AsyncSession, user_id: str) -> list[PropertyRecord]:
    """Load the sample listings into an account, skipping ones already there.

    Sample ids are suffixed with the account id prefix so two accounts can
    both hold the samples.
    """
    added = []
    for sample in STARTER_PORTFOLIO:
        record = PropertyRecord.model_validate(
            {**sample, "property_id": f"{sample['property_id']}-{user_id[:8]}"}
        )
        if await get_property(db, user_id, record.property_id) is not None:
            continue
        prop = Property(property_id=record.property_id, user_id=user_id)
        _apply_record(prop, record.model_copy(update={"user_id": user_id}))
        db.add(prop)
        added.append(record.property_id)
    if added:
        await commit_or_raise(db, "inject starter portfolio")
        logger.info("Injected %d starter listings for account %s", len(added), user_id)
    return [row_to_record(p) for p in [await get_property(db, user_id, pid) for pid in added]]


async def dashboard_stats(db: AsyncSession, user_id: str, stages: list[str]) -> DashboardStats:
    try:
        property_count = await db.scalar(
            select(func.count()).select_from(Property).where(Property.user_id == user_id)
        )
        estate_guard_count = await db.scalar(
            select(func.count())
            .select_from(Property)
            .where(
                Property.user_id == user_id,
                Property.tier == PropertyTier.ESTATE_GUARD.value,
            )
        )
        rows = await db.execute(
            select(Lead.status, func.count())
            .where(Lead.user_id == user_id)
            .group_by(Lead.status)
        )
    except SQLAlchemyError as exc:
        raise classify_store_error("load dashboard stats", exc) from exc

    by_status = {status: count for status, count in rows.all()}
    leads_by_stage = {stage: by_status.pop(stage, 0) for stage in stages}
    leads_by_stage.update(by_status)
    return DashboardStats(
        property_count=property_count or 0,
        lead_count=sum(leads_by_stage.values()),
        estate_guard_count=estate_guard_count or 0,
        leads_by_stage=leads_by_stage,
    )
