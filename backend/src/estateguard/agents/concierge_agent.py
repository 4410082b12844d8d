"""Concierge Agent: answers prospect questions about a single listing."""

import json
import logging
from typing import Optional

from estateguard.agents.base import AgentResult, BaseAgent
from estateguard.agents.prompts.concierge import (
    CONCIERGE_SYSTEM_PROMPT,
    KNOWLEDGE_BASE_TEMPLATE,
    PROPERTY_CONTEXT_TEMPLATE,
)
from estateguard.domain.schemas import AgentSettings

logger = logging.getLogger(__name__)

# (settings field, label shown to the model)
KNOWLEDGE_FIELDS: list[tuple[str, str]] = [
    ("location_hours", "Office location and hours"),
    ("service_areas", "Service areas"),
    ("commission_rates", "Commission rates"),
    ("terms_and_conditions", "Terms and conditions"),
    ("privacy_policy", "Privacy policy"),
    ("nda", "Non-disclosure terms"),
    ("legal_disclaimer", "Legal disclaimer"),
]


def build_system_instruction(settings: AgentSettings, property_context: dict) -> str:
    """Hydrate the concierge prompt from agency settings and listing data.

    ``property_context`` must already be redacted for the prospect.
    """
    replacements = {
        "BUSINESS_NAME": settings.business_name or "our agency",
        "ADDRESS": settings.business_address or "our office",
        "SPECIALTIES": ", ".join(settings.specialties) or "residential and commercial property",
        "AWARDS": settings.awards or "not listed",
        "MARKETING_STRATEGY": settings.marketing_strategy or "not listed",
        "TEAM_MEMBERS": settings.team_members or "not listed",
    }
    instruction = CONCIERGE_SYSTEM_PROMPT
    for placeholder, value in replacements.items():
        instruction = instruction.replace(placeholder, value)

    knowledge = [
        f"{label}: {getattr(settings, field)}"
        for field, label in KNOWLEDGE_FIELDS
        if getattr(settings, field)
    ]
    if knowledge:
        instruction += KNOWLEDGE_BASE_TEMPLATE.format(knowledge="\n".join(knowledge))

    instruction += PROPERTY_CONTEXT_TEMPLATE.format(
        property_json=json.dumps(property_context, indent=2, default=str)
    )
    return instruction


class ConciergeAgent(BaseAgent):
    """Multi-turn listing concierge backed by Gemini Flash."""

    def __init__(self, api_key: Optional[str] = None):
        super().__init__(
            agent_name="concierge",
            model_name="gemini-2.0-flash",
            temperature=0.6,
            api_key=api_key,
        )

    async def reply(
        self,
        turns: list[dict],
        settings: AgentSettings,
        property_context: dict,
    ) -> AgentResult:
        """Send the transcript and return the concierge's next message.

        Args:
            turns: ``[{"role": "user"|"model", "text": str}, ...]`` ending
                with the new user turn.
            settings: Owning agency's settings.
            property_context: Redacted listing data.
        """
        messages = [{"role": t["role"], "parts": [t["text"]]} for t in turns]
        return await self.chat(
            messages=messages,
            system_instruction=build_system_instruction(settings, property_context),
        )
