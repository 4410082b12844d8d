"""Ingestion Agent: raw listing material -> structured JSON via Gemini.

Extraction walks a fixed chain of (model, API version) variants. Each
attempt is independent; the first one that yields parseable JSON wins.
"""

import logging
from typing import Optional

from estateguard.agents.base import AgentResult, BaseAgent
from estateguard.agents.prompts.ingestion import (
    EXTRACTION_TEMPLATE,
    INGESTION_SYSTEM_PROMPT,
    TRANSCRIPTION_PROMPT,
)
from estateguard.domain.schemas import ExtractedListing

logger = logging.getLogger(__name__)

# (model, api_version), tried in order
MODEL_FALLBACK_CHAIN: list[tuple[str, str]] = [
    ("gemini-2.0-flash", "v1"),
    ("gemini-2.0-flash", "v1beta"),
    ("gemini-1.5-flash", "v1beta"),
]


class IngestionAgent(BaseAgent):
    """Extracts property records and transcribes voice notes."""

    def __init__(self, api_key: Optional[str] = None):
        super().__init__(
            agent_name="ingestion",
            model_name=MODEL_FALLBACK_CHAIN[0][0],
            temperature=0.1,
            api_key=api_key,
        )

    async def extract(
        self,
        content: str,
        source_kind: str = "text",
        context_note: str = "",
    ) -> AgentResult:
        """Run listing extraction across the fallback chain.

        Returns:
            The first successful ``AgentResult`` (``data`` is the parsed
            dict), or a failure whose ``error`` joins every attempt's error.
        """
        prompt = EXTRACTION_TEMPLATE.format(
            context_note=context_note,
            source_kind=source_kind,
            content=content,
        )
        schema = ExtractedListing.model_json_schema()

        errors: list[str] = []
        total_latency = 0
        for model_name, api_version in MODEL_FALLBACK_CHAIN:
            result = await self.generate_json(
                prompt=prompt,
                system_instruction=INGESTION_SYSTEM_PROMPT,
                response_schema=schema,
                model_name=model_name,
                api_version=api_version,
            )
            total_latency += result.latency_ms
            if result.ok and isinstance(result.data, dict):
                return result
            error = result.error or "Model returned a non-object payload"
            logger.warning(
                "[%s] Extraction attempt %s@%s failed: %s",
                self.agent_name,
                model_name,
                api_version,
                error,
            )
            errors.append(f"{model_name}@{api_version}: {error}")

        return AgentResult.failure(" | ".join(errors), latency_ms=total_latency)

    async def transcribe_note(self, audio: bytes, mime_type: str) -> AgentResult:
        """Transcribe an agent's recorded description of a property."""
        result = await self.transcribe(audio, mime_type, TRANSCRIPTION_PROMPT)
        if result.ok:
            result.data = (result.data or "").strip()
        return result
