"""Pydantic v2 schemas for API request/response validation."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from estateguard.domain.enums import (
    ContactChannel,
    ContactWindow,
    FinancingStatus,
    GateState,
    PropertyCategory,
    PropertyStatus,
    PropertyTier,
    TransactionType,
)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Schema for creating a new agency account."""

    email: str
    password: str = Field(min_length=8)
    name: str


class UserLogin(BaseModel):
    """Schema for user login."""

    email: str
    password: str


class UserResponse(BaseModel):
    """Schema for user API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    is_active: bool


class TokenResponse(BaseModel):
    """Schema for JWT token responses."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(min_length=8)


# ---------------------------------------------------------------------------
# Property record
# ---------------------------------------------------------------------------


class VisibilityProtocol(BaseModel):
    """Which fields the concierge may disclose before and after qualification."""

    public_fields: list[str] = Field(default_factory=list)
    gated_fields: list[str] = Field(default_factory=list)


class KeyStats(BaseModel):
    bedrooms: float | None = None
    bathrooms: float | None = None
    sq_ft: float = 0
    lot_size: str = ""
    zoning: str | None = None
    topography: str | None = None
    utilities_available: list[str] | None = None
    access_type: str | None = None
    cap_rate: float | None = None
    occupancy_pct: float | None = None
    annual_revenue: float | None = None


class ListingDetails(BaseModel):
    address: str = ""
    price: float = Field(default=0, ge=0)
    image_url: str | None = None
    video_tour_url: str | None = None
    key_stats: KeyStats = Field(default_factory=KeyStats)
    hero_narrative: str = ""


class PrivateAppraisal(BaseModel):
    value: float = 0
    date: str = ""
    notes: str = ""


class HoaDetails(BaseModel):
    fee_monthly: float = 0
    rent_policy: str = ""
    security: str = ""


class LeaseTerms(BaseModel):
    duration: str = ""
    deposit: float = 0
    utilities: str = ""


class MechanicalSpecs(BaseModel):
    hvac: str = ""
    smart_home: str = ""


class DeepData(BaseModel):
    private_appraisal: PrivateAppraisal | None = None
    hoa_details: HoaDetails | None = None
    lease_terms: LeaseTerms | None = None
    mechanical_specs: MechanicalSpecs | None = None


class AgentNotes(BaseModel):
    """Internal notes. Never sent to prospects."""

    motivation: str = ""
    showing_instructions: str = ""


class AITraining(BaseModel):
    proximityWaterfront: str | None = None
    commuteTime: str | None = None
    schools: str | None = None
    hospitals: str | None = None
    supermarkets: str | None = None
    neighborhood_vibe: str | None = None
    investment_potential: str | None = None
    agent_insider_tips: str | None = None


class Amenities(BaseModel):
    pool: bool = False
    garage: bool = False
    wifi: bool = False
    laundry: bool = False
    pets_allowed: bool = False
    gym: bool = False
    security: bool = False


class SEO(BaseModel):
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)


class PropertyRecord(BaseModel):
    """Canonical listing shape shared by ingestion, storage and the concierge."""

    property_id: str
    user_id: str | None = None
    category: PropertyCategory = PropertyCategory.RESIDENTIAL
    transaction_type: TransactionType = TransactionType.SALE
    status: PropertyStatus = PropertyStatus.ACTIVE
    tier: PropertyTier = PropertyTier.STANDARD
    visibility_protocol: VisibilityProtocol = Field(default_factory=VisibilityProtocol)
    listing_details: ListingDetails = Field(default_factory=ListingDetails)
    deep_data: DeepData = Field(default_factory=DeepData)
    agent_notes: AgentNotes = Field(default_factory=AgentNotes)
    ai_training: AITraining | None = None
    amenities: Amenities | None = None
    seo: SEO | None = None


class ExtractedListing(BaseModel):
    """Structured-output schema handed to Gemini for listing extraction."""

    property_id: str = ""
    status: str = ""
    tier: str = ""
    category: str = ""
    transaction_type: str = ""
    visibility_protocol: VisibilityProtocol = Field(default_factory=VisibilityProtocol)
    listing_details: ListingDetails = Field(default_factory=ListingDetails)


class IngestRequest(BaseModel):
    """URL or pasted text to turn into a listing."""

    input: str = Field(min_length=1)
    image_url: str | None = None


class IngestResponse(BaseModel):
    property: PropertyRecord
    degraded: bool = False
    persisted: bool = True


class ShareLinks(BaseModel):
    property_url: str
    whatsapp_url: str
    email_url: str
    summary: str


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


class NoteLogEntry(BaseModel):
    text: str
    timestamp: str


class ConversationEntry(BaseModel):
    role: str
    content: str
    timestamp: str


class LeadCapture(BaseModel):
    """Partial lead as produced by the concierge or the manual add form."""

    name: str | None = None
    phone: str | None = None
    email: str | None = None
    financing_status: FinancingStatus | None = None
    property_id: str | None = None
    property_address: str | None = None
    notes: list[str] = Field(default_factory=list)
    agent_notes: str | None = None
    conversation_history: list[ConversationEntry] = Field(default_factory=list)
    priority_score: int = Field(default=0, ge=0, le=10)
    due_date: date | None = None


class LeadUpdate(BaseModel):
    """Fields an agent may edit on a lead card."""

    due_date: date | None = None
    notes: list[str] | None = None
    agent_notes: str | None = None
    priority_score: int | None = Field(default=None, ge=0, le=10)
    financing_status: FinancingStatus | None = None
    email: str | None = None


class LeadNoteCreate(BaseModel):
    text: str = Field(min_length=1)


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None = None
    name: str
    phone: str
    email: str | None = None
    financing_status: str
    property_id: str
    property_address: str
    status: str
    notes: list[str] = Field(default_factory=list)
    agent_notes: str | None = None
    notes_log: list[NoteLogEntry] = Field(default_factory=list)
    conversation_history: list[ConversationEntry] = Field(default_factory=list)
    priority_score: int = 0
    due_date: date | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class StageCreate(BaseModel):
    name: str = Field(min_length=1)


class StageRenameRequest(BaseModel):
    new_name: str = Field(min_length=1)


class LeadMoveRequest(BaseModel):
    stage: str = Field(min_length=1)
    position: int | None = Field(default=None, ge=0)


class BoardColumn(BaseModel):
    stage: str
    lead_ids: list[str]


class BoardResponse(BaseModel):
    stages: list[str]
    columns: list[BoardColumn]
    archived_lead_ids: list[str] = Field(default_factory=list)
    out_of_sync_lead_ids: list[str] = Field(default_factory=list)


class StageRenameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    old_name: str
    new_name: str
    status: str
    lead_ids: list[str]
    migrated_lead_ids: list[str]
    last_error: str | None = None


# ---------------------------------------------------------------------------
# Agency settings
# ---------------------------------------------------------------------------


class AgentSettings(BaseModel):
    """Per-account agency configuration. Saved wholesale."""

    business_name: str = "EstateGuard AI"
    logo_url: str | None = None
    primary_color: str = "#d4af37"
    api_key: str = ""
    high_security_mode: bool = True
    subscription_tier: str = "Enterprise"
    monthly_price: float = 0
    business_address: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    specialties: list[str] = Field(default_factory=list)
    agent_count: int = 1
    concierge_intro: str = "Ask our happy assistant about any of our properties 24/7"
    language: str = "en"
    theme: str = "dark"
    terms_and_conditions: str | None = None
    privacy_policy: str | None = None
    nda: str | None = None
    location_hours: str | None = None
    service_areas: str | None = None
    commission_rates: str | None = None
    marketing_strategy: str | None = None
    team_members: str | None = None
    awards: str | None = None
    legal_disclaimer: str | None = None
    pipeline_stages: list[str] | None = None


# ---------------------------------------------------------------------------
# Concierge chat
# ---------------------------------------------------------------------------


class ChatSessionCreate(BaseModel):
    property_id: str


class ChatMessageRequest(BaseModel):
    text: str = Field(min_length=1)


class ContactFormRequest(BaseModel):
    name: str
    phone: str
    channel: ContactChannel = ContactChannel.WHATSAPP
    window: ContactWindow = ContactWindow.ASAP


class ChatTurnOut(BaseModel):
    role: str
    text: str


class ChatSessionOut(BaseModel):
    session_id: str
    property_id: str
    state: GateState
    specific_question_count: int
    qualified: bool
    business_name: str
    concierge_intro: str
    turns: list[ChatTurnOut]


class ChatReplyOut(BaseModel):
    reply: str
    state: GateState
    specific_question_count: int
    show_contact_form: bool
    failed: bool = False
    captured_lead_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dashboard / health
# ---------------------------------------------------------------------------


class DashboardStats(BaseModel):
    property_count: int
    lead_count: int
    estate_guard_count: int
    leads_by_stage: dict[str, int]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
