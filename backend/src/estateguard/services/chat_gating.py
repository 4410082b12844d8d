"""Lead-qualification gating rules for the chat concierge.

Pure functions only; ``concierge_service`` owns the session state.

Gate rule, evaluated before a user message is sent:

    (specific_count >= STRIKE_LIMIT and specific)
    or (high_security_mode and tier == "Estate Guard" and specific)

So on a Standard listing the third specific question gates, and on an
Estate Guard listing under high-security mode the first one does.
"""

import copy
import re
from typing import Optional

from estateguard.domain.enums import PropertyTier

# Plain substring match on the lower-cased message
SPECIFIC_KEYWORDS: tuple[str, ...] = (
    "price",
    "address",
    "bedrooms",
    "bathrooms",
    "sqft",
    "square feet",
    "private",
    "motivation",
    "showing",
    "inside",
    "hoa",
    "specs",
    "pool",
    "garage",
    "details",
    "info",
    "appraisal",
)

STRIKE_LIMIT = 2

PHONE_PATTERN = re.compile(r"(\+\d{1,2}\s?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}")

# Gated field names that live under a different key in the record
_FIELD_ALIASES = {
    "seller_motivation": "motivation",
}


def is_specific_question(message: str) -> bool:
    text = message.lower()
    return any(keyword in text for keyword in SPECIFIC_KEYWORDS)


def extract_phone(message: str) -> Optional[str]:
    match = PHONE_PATTERN.search(message)
    return match.group(0) if match else None


def should_gate(
    specific_count: int,
    specific: bool,
    high_security_mode: bool,
    tier: str,
) -> bool:
    if not specific:
        return False
    if specific_count >= STRIKE_LIMIT:
        return True
    return high_security_mode and tier == PropertyTier.ESTATE_GUARD.value


def _strip_key(node, key: str) -> None:
    if isinstance(node, dict):
        node.pop(key, None)
        for value in node.values():
            _strip_key(value, key)
    elif isinstance(node, list):
        for item in node:
            _strip_key(item, key)


def redact_for_prospect(record: dict, qualified: bool) -> dict:
    """Return the listing as the concierge may see it.

    ``agent_notes`` is always removed. Until the prospect is qualified,
    every field named in ``visibility_protocol.gated_fields`` is removed
    wherever it appears in the record.
    """
    redacted = copy.deepcopy(record)
    redacted.pop("agent_notes", None)
    redacted.pop("user_id", None)
    if qualified:
        return redacted

    gated = (redacted.get("visibility_protocol") or {}).get("gated_fields") or []
    for field in gated:
        _strip_key(redacted, field)
        if field in _FIELD_ALIASES:
            _strip_key(redacted, _FIELD_ALIASES[field])
    return redacted
