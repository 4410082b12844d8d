"""Base agent class for all EstateGuard AI agents.

Every Gemini-backed agent (listing extraction, transcription, the chat
concierge) inherits from BaseAgent, which provides:

- Gemini client access via the infra.gemini_client wrapper
- A standard AgentResult return type (Result pattern)
- Automatic latency measurement and token tracking
- Database activity logging via AgentLog records
- Multi-turn chat and inline-audio transcription
"""

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from google.genai import types

logger = logging.getLogger(__name__)

# Hard limit per Gemini call; prevents indefinite hangs
GENERATION_TIMEOUT_SECONDS = 120


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class AgentResult:
    """Standard result type for all agent operations.

    Follows the Result pattern: every agent call returns an AgentResult
    instead of raising exceptions. Callers check ``result.ok`` to
    determine success or failure.

    Attributes:
        ok: True if the operation succeeded.
        data: The response payload (text, parsed JSON, etc.).
        error: Human-readable error description when ``ok`` is False.
        tokens_used: Total tokens consumed (prompt + completion).
        latency_ms: Wall-clock time for the operation in milliseconds.
    """

    ok: bool
    data: Any = None
    error: Optional[str] = None
    tokens_used: int = 0
    latency_ms: int = 0

    @classmethod
    def success(
        cls,
        data: Any,
        tokens_used: int = 0,
        latency_ms: int = 0,
    ) -> "AgentResult":
        """Create a successful result."""
        return cls(
            ok=True,
            data=data,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(cls, error: str, latency_ms: int = 0) -> "AgentResult":
        """Create a failure result."""
        return cls(ok=False, error=error, latency_ms=latency_ms)


def _token_count(response) -> int:
    usage = getattr(response, "usage_metadata", None)
    if not usage:
        return 0
    total = getattr(usage, "total_token_count", None)
    if total:
        return total
    prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
    completion_tokens = getattr(usage, "candidates_token_count", 0) or 0
    return prompt_tokens + completion_tokens


# ---------------------------------------------------------------------------
# Base agent
# ---------------------------------------------------------------------------

class BaseAgent:
    """Base class for all EstateGuard Gemini agents.

    Example::

        class SummaryAgent(BaseAgent):
            def __init__(self):
                super().__init__(agent_name="summary_agent")

            async def summarize(self, narrative: str) -> AgentResult:
                return await self.generate(
                    prompt=f"Summarize this listing: {narrative}",
                    system_instruction="You write listing teasers.",
                )
    """

    def __init__(
        self,
        agent_name: str,
        model_name: str = "gemini-2.0-flash",
        temperature: float = 0.7,
        api_key: Optional[str] = None,
    ):
        """Initialise the agent.

        Args:
            agent_name: A short, unique name for this agent (used in logs).
            model_name: The default Gemini model identifier.
            temperature: Generation temperature (0.0-1.0).
            api_key: Per-account Gemini key; None uses the server key.
        """
        self.agent_name = agent_name
        self.model_name = model_name
        self.temperature = temperature
        self.api_key = api_key

    # ------------------------------------------------------------------
    # Core call
    # ------------------------------------------------------------------

    async def _generate_content(
        self,
        contents,
        config: types.GenerateContentConfig,
        action: str,
        input_summary: str,
        model_name: Optional[str] = None,
        api_version: str = "v1",
    ) -> AgentResult:
        """Run one ``generate_content`` call and wrap it in an AgentResult."""
        from estateguard.infra.gemini_client import get_client

        model = model_name or self.model_name
        start_time = time.time()
        try:
            client = get_client(api_key=self.api_key, api_version=api_version)
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=model,
                    contents=contents,
                    config=config,
                ),
                timeout=GENERATION_TIMEOUT_SECONDS,
            )
            latency_ms = int((time.time() - start_time) * 1000)
            tokens_used = _token_count(response)
            response_text = response.text

            logger.info(
                "[%s] %s succeeded: model=%s/%s, tokens=%d, latency=%dms",
                self.agent_name,
                action,
                api_version,
                model,
                tokens_used,
                latency_ms,
            )

            await self._safe_log_activity(
                action=action,
                model_name=model,
                input_summary=input_summary[:500],
                output_summary=(response_text or "")[:500],
                tokens_used=tokens_used,
                latency_ms=latency_ms,
            )

            return AgentResult.success(
                data=response_text,
                tokens_used=tokens_used,
                latency_ms=latency_ms,
            )

        except asyncio.TimeoutError:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "[%s] %s timed out after %dms (model=%s/%s)",
                self.agent_name,
                action,
                latency_ms,
                api_version,
                model,
            )
            return AgentResult.failure(
                f"Gemini call timed out after {GENERATION_TIMEOUT_SECONDS}s",
                latency_ms=latency_ms,
            )
        except Exception as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "[%s] %s failed after %dms (model=%s/%s): %s",
                self.agent_name,
                action,
                latency_ms,
                api_version,
                model,
                exc,
            )
            return AgentResult.failure(str(exc), latency_ms=latency_ms)

    # ------------------------------------------------------------------
    # Single-turn generation
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        json_mode: bool = False,
        response_schema: dict | None = None,
        model_name: Optional[str] = None,
        api_version: str = "v1",
    ) -> AgentResult:
        """Generate a single-turn response from Gemini.

        Args:
            prompt: The user prompt to send.
            system_instruction: Optional system instruction that shapes
                the model's behaviour.
            json_mode: If True the model is instructed to return valid JSON.
            response_schema: Optional JSON Schema for structured output.
            model_name: Override the agent's default model for this call.
            api_version: Gemini API surface to call.

        Returns:
            An ``AgentResult`` with the response text in ``data``.
        """
        from estateguard.infra.gemini_client import build_config

        config = build_config(
            temperature=self.temperature,
            json_mode=json_mode,
            response_schema=response_schema,
            system_instruction=system_instruction,
        )
        return await self._generate_content(
            contents=prompt,
            config=config,
            action="generate",
            input_summary=prompt,
            model_name=model_name,
            api_version=api_version,
        )

    # ------------------------------------------------------------------
    # JSON generation convenience
    # ------------------------------------------------------------------

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        response_schema: dict | None = None,
        model_name: Optional[str] = None,
        api_version: str = "v1",
    ) -> AgentResult:
        """Generate a response and parse it as JSON.

        Calls ``generate`` with ``json_mode=True``, then deserialises the
        response text into a Python dict or list.  If parsing fails the
        result will be a failure with the parse error.

        Returns:
            An ``AgentResult`` whose ``data`` field contains the parsed
            JSON (dict or list).
        """
        result = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            json_mode=True,
            response_schema=response_schema,
            model_name=model_name,
            api_version=api_version,
        )

        if not result.ok:
            return result

        try:
            parsed = json.loads(result.data or "{}")
            return AgentResult.success(
                data=parsed,
                tokens_used=result.tokens_used,
                latency_ms=result.latency_ms,
            )
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning(
                "[%s] JSON parse failed: %s, raw text: %.200s",
                self.agent_name,
                exc,
                result.data,
            )
            return AgentResult.failure(
                error=f"JSON parse error: {exc}",
                latency_ms=result.latency_ms,
            )

    # ------------------------------------------------------------------
    # Multi-turn chat
    # ------------------------------------------------------------------

    async def chat(
        self,
        messages: list[dict],
        system_instruction: Optional[str] = None,
    ) -> AgentResult:
        """Conduct a multi-turn conversation with Gemini.

        Args:
            messages: A list of message dicts, each with ``role``
                (``"user"`` or ``"model"``) and ``parts`` (list of
                strings). The whole transcript is sent; the last entry
                is the new user turn.
            system_instruction: Optional system instruction.

        Returns:
            An ``AgentResult`` with the model's latest reply in ``data``.
        """
        from estateguard.infra.gemini_client import build_config

        if not messages:
            return AgentResult.failure("No messages provided for chat.")

        contents = [
            types.Content(
                role=msg.get("role", "user"),
                parts=[types.Part.from_text(text=str(p)) for p in msg.get("parts", [])],
            )
            for msg in messages
        ]
        last_parts = messages[-1].get("parts", [])
        config = build_config(
            temperature=self.temperature,
            system_instruction=system_instruction,
        )
        return await self._generate_content(
            contents=contents,
            config=config,
            action="chat",
            input_summary="\n".join(str(p) for p in last_parts),
        )

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        instruction: str,
    ) -> AgentResult:
        """Send inline audio plus an instruction and return the transcript."""
        from estateguard.infra.gemini_client import build_config

        if not audio:
            return AgentResult.failure("No audio provided for transcription.")

        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=audio, mime_type=mime_type),
                    types.Part.from_text(text=instruction),
                ],
            )
        ]
        return await self._generate_content(
            contents=contents,
            config=build_config(temperature=0.0),
            action="transcribe",
            input_summary=f"<{len(audio)} bytes {mime_type}>",
        )

    # ------------------------------------------------------------------
    # Activity logging
    # ------------------------------------------------------------------

    async def log_activity(
        self,
        action: str,
        model_name: str,
        input_summary: str,
        output_summary: str,
        tokens_used: int,
        latency_ms: int,
        property_id: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> None:
        """Persist an activity log entry to the database.

        Creates an ``AgentLog`` record capturing what the agent did, how
        many tokens it consumed, and which listing or lead was involved.
        """
        try:
            from estateguard.infra.database import async_session
            from estateguard.domain.models import AgentLog

            async with async_session() as session:
                log_entry = AgentLog(
                    id=str(uuid.uuid4()),
                    agent_name=self.agent_name,
                    action=action,
                    model_name=model_name,
                    input_summary=input_summary,
                    output_summary=output_summary,
                    tokens_used=tokens_used,
                    latency_ms=latency_ms,
                    related_property_id=property_id,
                    related_lead_id=lead_id,
                    created_at=datetime.now(timezone.utc),
                )
                session.add(log_entry)
                await session.commit()
                logger.debug(
                    "[%s] Activity logged: action=%s, tokens=%d",
                    self.agent_name,
                    action,
                    tokens_used,
                )

        except Exception as exc:
            # DB logging must never break agent operation
            logger.warning(
                "[%s] Failed to log activity to DB: %s", self.agent_name, exc
            )

    async def _safe_log_activity(self, **kwargs) -> None:
        """Fire-and-forget wrapper around ``log_activity``.

        Schedules the DB write as a background task so it never blocks
        the calling agent.
        """
        asyncio.ensure_future(self._do_log_activity(**kwargs))

    async def _do_log_activity(self, **kwargs) -> None:
        """Actual DB write for agent logs, runs in background."""
        try:
            await self.log_activity(**kwargs)
        except Exception as exc:
            logger.warning(
                "[%s] _safe_log_activity suppressed error: %s",
                self.agent_name,
                exc,
            )
