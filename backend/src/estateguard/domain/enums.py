"""Domain enumerations for EstateGuard.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class PropertyCategory(str, Enum):
    """Broad asset class of a listing."""

    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    LAND = "Land"
    RENTAL = "Rental"


class TransactionType(str, Enum):
    """How the listing is offered."""

    SALE = "Sale"
    RENT = "Rent"
    LEASE = "Lease"


class PropertyStatus(str, Enum):
    """Market status of a listing."""

    ACTIVE = "Active"
    PENDING = "Pending"
    SOLD = "Sold"
    RENTED = "Rented"


class PropertyTier(str, Enum):
    """Disclosure tier. Estate Guard listings get stricter chat gating."""

    STANDARD = "Standard"
    ESTATE_GUARD = "Estate Guard"


class FinancingStatus(str, Enum):
    """How a prospect intends to pay."""

    CASH = "Cash"
    LENDER = "Lender"
    UNVERIFIED = "Unverified"


class ChatRole(str, Enum):
    """Author of a concierge chat turn."""

    USER = "user"
    MODEL = "model"


class GateState(str, Enum):
    """Lead-qualification gate of a concierge chat session."""

    OPEN = "open"
    GATED = "gated"


class ContactChannel(str, Enum):
    """Preferred follow-up channel chosen on the contact form."""

    WHATSAPP = "WhatsApp"
    VOICE_CALL = "Voice Call"
    SMS_TEXT = "SMS Text"


class ContactWindow(str, Enum):
    """Preferred follow-up time window chosen on the contact form."""

    ASAP = "ASAP"
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"


class IngestionSource(str, Enum):
    """Kind of raw input handed to the ingestion normalizer."""

    URL = "url"
    TEXT = "text"
    VOICE = "voice"


class LLMErrorKind(str, Enum):
    """User-facing classification of a language-model failure."""

    QUOTA = "quota"
    MODEL_NOT_FOUND = "model_not_found"
    AUTH = "auth"
    GENERIC = "generic"


class StageRenameStatus(str, Enum):
    """Progress of a multi-lead stage rename."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
