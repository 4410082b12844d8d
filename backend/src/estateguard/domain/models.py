"""SQLAlchemy ORM models for EstateGuard.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ)
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.sql import func

from estateguard.infra.database import Base


# ---------------------------------------------------------------------------
# Auth / User
# ---------------------------------------------------------------------------


class User(Base):
    """Agency account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    last_login_at = Column(DateTime, nullable=True)


class PasswordResetToken(Base):
    """Single-use password reset token (stored hashed)."""

    __tablename__ = "password_reset_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Agency configuration
# ---------------------------------------------------------------------------


class AppConfig(Base):
    """Per-account agency settings. Keyed by the owning user's id."""

    __tablename__ = "app_config"

    id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    business_name = Column(String(255))
    logo_url = Column(String(500))
    primary_color = Column(String(20))
    api_key = Column(String(255))  # per-account Gemini key override
    high_security_mode = Column(Boolean, default=True)
    subscription_tier = Column(String(50))
    monthly_price = Column(Float, default=0)
    business_address = Column(String(500))
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    specialties = Column(JSON, default=list)
    agent_count = Column(Integer, default=1)
    concierge_intro = Column(Text)
    language = Column(String(10), default="en")
    theme = Column(String(20), default="dark")

    # Business knowledge base, injected verbatim into the concierge prompt
    terms_and_conditions = Column(Text)
    privacy_policy = Column(Text)
    nda = Column(Text)
    location_hours = Column(Text)
    service_areas = Column(Text)
    commission_rates = Column(Text)
    marketing_strategy = Column(Text)
    team_members = Column(Text)
    awards = Column(Text)
    legal_disclaimer = Column(Text)

    pipeline_stages = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class Property(Base):
    """Listing owned by one agency account.

    The canonical record lives in ``data``; the scalar columns are
    denormalized copies for filtering and list views.
    """

    __tablename__ = "properties"

    property_id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    address = Column(String(500), default="")
    price = Column(Float, default=0)
    status = Column(String(20), default="Active")
    tier = Column(String(20), default="Standard")
    category = Column(String(20), default="Residential")
    data = Column(JSON, nullable=False, default=dict)
    amenities = Column(JSON, default=dict)
    ai_training = Column(JSON, default=dict)
    deep_data = Column(JSON, default=dict)
    seo = Column(JSON, default=dict)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Leads / pipeline
# ---------------------------------------------------------------------------


class Lead(Base):
    """Prospective client captured by the concierge or entered manually.

    ``property_id`` is a weak reference: a lead outlives its listing.
    """

    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    email = Column(String(255), default="")
    financing_status = Column(String(20), default="Unverified")
    property_id = Column(String(64), default="General", index=True)
    property_address = Column(String(500), default="N/A")
    status = Column(String(100), nullable=False, index=True)
    notes = Column(JSON, default=list)
    agent_notes = Column(Text, default="")
    notes_log = Column(JSON, default=list)
    conversation_history = Column(JSON, default=list)
    priority_score = Column(Integer, default=0)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class StageRename(Base):
    """Progress record for renaming a pipeline stage across many leads.

    Each lead is migrated by its own commit; ``migrated_lead_ids`` is the
    cursor a resumed rename uses to skip finished work.
    """

    __tablename__ = "stage_renames"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    old_name = Column(String(100), nullable=False)
    new_name = Column(String(100), nullable=False)
    lead_ids = Column(JSON, nullable=False, default=list)
    migrated_lead_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="pending")
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# AI audit
# ---------------------------------------------------------------------------


class AgentLog(Base):
    """One Gemini call made by an agent."""

    __tablename__ = "agent_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    agent_name = Column(String(50), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    model_name = Column(String(100))
    input_summary = Column(Text)
    output_summary = Column(Text)
    tokens_used = Column(Integer, default=0)
    latency_ms = Column(Integer, default=0)
    related_property_id = Column(String(64), nullable=True)
    related_lead_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=func.now())
