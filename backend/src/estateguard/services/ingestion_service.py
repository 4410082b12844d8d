"""Ingestion normalizer: URL, pasted text or a voice note -> PropertyRecord.

Flow:
1. URL input is fetched through the relay and reduced to page text.
   A failed fetch falls back to the bare URL plus a degraded-context note.
2. The Ingestion Agent extracts JSON across its model fallback chain.
3. The result is normalized: defaults filled, numbers coerced, tier
   re-derived from price.
4. If every model fails on URL input, a local BeautifulSoup extractor
   builds a minimal record from the page. Text input raises instead.

Nothing is persisted here; callers own storage.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, ValidationError

from estateguard.agents.errors import classify_llm_error
from estateguard.agents.ingestion_agent import IngestionAgent
from estateguard.agents.prompts.ingestion import DEGRADED_CONTEXT_NOTE
from estateguard.app.config import get_settings
from estateguard.domain.enums import (
    IngestionSource,
    LLMErrorKind,
    PropertyCategory,
    PropertyStatus,
    PropertyTier,
    TransactionType,
)
from estateguard.domain.schemas import (
    AITraining,
    AgentNotes,
    Amenities,
    DeepData,
    KeyStats,
    ListingDetails,
    PropertyRecord,
    SEO,
    VisibilityProtocol,
)
from estateguard.services.fetch_relay import RelayError, fetch_source_text

logger = logging.getLogger(__name__)

ESTATE_GUARD_PRICE_THRESHOLD = 5_000_000

DEFAULT_PUBLIC_FIELDS = ["address", "price", "bedrooms", "bathrooms", "sq_ft"]
DEFAULT_GATED_FIELDS = ["private_appraisal", "seller_motivation", "showing_instructions"]

DEGRADED_NARRATIVE = (
    "Imported from {host}. Deep analysis is pending because the AI quota was "
    "exhausted during sync. Re-sync this listing to complete the record."
)

_HTTP_STATUS_BY_KIND = {
    LLMErrorKind.QUOTA: 429,
    LLMErrorKind.MODEL_NOT_FOUND: 502,
    LLMErrorKind.AUTH: 400,
    LLMErrorKind.GENERIC: 502,
}


class IngestionError(Exception):
    """Raised when a listing cannot be extracted."""

    def __init__(self, kind: LLMErrorKind, message: str, http_status: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.http_status = http_status or _HTTP_STATUS_BY_KIND[kind]
        super().__init__(message)


@dataclass
class IngestionOutcome:
    record: PropertyRecord
    source: IngestionSource
    degraded: bool = False


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def looks_like_url(text: str) -> bool:
    return text.strip().startswith("http")


def truncate_source(text: str, limit: Optional[int] = None) -> str:
    limit = limit if limit is not None else get_settings().ingestion_max_chars
    return text[:limit]


def html_to_text(html: str) -> str:
    """Reduce a page to its visible text, keeping the social meta tags."""
    soup = BeautifulSoup(html, "html.parser")
    meta_lines = []
    for prop in ("og:title", "og:description", "og:price:amount"):
        tag = soup.find("meta", attrs={"property": prop})
        if tag and tag.get("content"):
            meta_lines.append(f"{prop}: {tag['content']}")
    for tag in soup(["script", "style", "noscript", "svg"]):
        tag.decompose()
    body = soup.get_text(" ", strip=True)
    return "\n".join(meta_lines + [body])


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(k|m|mm|million|thousand)?\b", re.IGNORECASE)
_MULTIPLIERS = {"k": 1_000, "thousand": 1_000, "m": 1_000_000, "mm": 1_000_000, "million": 1_000_000}


def coerce_number(value: Any) -> Optional[float]:
    """Best-effort numeric coercion: ``"$500,000"`` -> 500000.0, ``"1.2M"`` -> 1200000.0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.search(str(value))
    if not match:
        return None
    number = float(match.group(1).replace(",", ""))
    suffix = (match.group(2) or "").lower()
    return number * _MULTIPLIERS.get(suffix, 1)


def classify_tier(price: float) -> PropertyTier:
    """Estate Guard strictly above the threshold; exactly 5M stays Standard."""
    if price > ESTATE_GUARD_PRICE_THRESHOLD:
        return PropertyTier.ESTATE_GUARD
    return PropertyTier.STANDARD


def new_property_id() -> str:
    return f"EG-{uuid.uuid4().hex[:8].upper()}"


def _coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    text = str(value or "").strip().lower()
    for member in enum_cls:
        if member.value.lower() == text:
            return member
    return default


def _optional_block(model_cls: type[BaseModel], value: Any):
    if not value or not isinstance(value, dict):
        return None
    try:
        return model_cls.model_validate(value)
    except ValidationError as exc:
        logger.warning("Dropping malformed %s block: %s", model_cls.__name__, exc)
        return None


def _normalize_key_stats(raw: dict) -> KeyStats:
    def opt(name):
        return coerce_number(raw.get(name))

    utilities = raw.get("utilities_available")
    return KeyStats(
        bedrooms=opt("bedrooms"),
        bathrooms=opt("bathrooms"),
        sq_ft=opt("sq_ft") or coerce_number(raw.get("sqft")) or 0,
        lot_size=str(raw.get("lot_size") or ""),
        zoning=raw.get("zoning") or None,
        topography=raw.get("topography") or None,
        utilities_available=[str(u) for u in utilities] if isinstance(utilities, list) else None,
        access_type=raw.get("access_type") or None,
        cap_rate=opt("cap_rate"),
        occupancy_pct=opt("occupancy_pct"),
        annual_revenue=opt("annual_revenue"),
    )


def normalize_property_record(
    raw: dict,
    image_url: Optional[str] = None,
    user_id: Optional[str] = None,
) -> PropertyRecord:
    """Turn loosely-typed model output into a valid ``PropertyRecord``.

    The tier is always re-derived from the normalized price, whatever the
    model claimed.
    """
    raw = raw or {}
    details = raw.get("listing_details") or {}
    if not isinstance(details, dict):
        details = {}

    price = max(coerce_number(details.get("price")) or 0.0, 0.0)
    key_stats = details.get("key_stats") if isinstance(details.get("key_stats"), dict) else {}

    visibility = raw.get("visibility_protocol") or {}
    public_fields = [str(f) for f in visibility.get("public_fields") or []]
    gated_fields = [str(f) for f in visibility.get("gated_fields") or []]
    if not public_fields and not gated_fields:
        public_fields = list(DEFAULT_PUBLIC_FIELDS)
        gated_fields = list(DEFAULT_GATED_FIELDS)

    listing = ListingDetails(
        address=str(details.get("address") or "").strip(),
        price=price,
        image_url=image_url or details.get("image_url") or None,
        video_tour_url=details.get("video_tour_url") or None,
        key_stats=_normalize_key_stats(key_stats),
        hero_narrative=str(details.get("hero_narrative") or ""),
    )

    return PropertyRecord(
        property_id=str(raw.get("property_id") or "").strip() or new_property_id(),
        user_id=user_id,
        category=_coerce_enum(PropertyCategory, raw.get("category"), PropertyCategory.RESIDENTIAL),
        transaction_type=_coerce_enum(TransactionType, raw.get("transaction_type"), TransactionType.SALE),
        status=_coerce_enum(PropertyStatus, raw.get("status"), PropertyStatus.ACTIVE),
        tier=classify_tier(price),
        visibility_protocol=VisibilityProtocol(public_fields=public_fields, gated_fields=gated_fields),
        listing_details=listing,
        deep_data=_optional_block(DeepData, raw.get("deep_data")) or DeepData(),
        agent_notes=_optional_block(AgentNotes, raw.get("agent_notes")) or AgentNotes(),
        ai_training=_optional_block(AITraining, raw.get("ai_training")),
        amenities=_optional_block(Amenities, raw.get("amenities")),
        seo=_optional_block(SEO, raw.get("seo")),
    )


# ---------------------------------------------------------------------------
# Degraded local extraction
# ---------------------------------------------------------------------------

_PRICE_SNIFF = re.compile(r"\$\s?(\d[\d,]*(?:\.\d+)?)\s*(k|m|million)?\b", re.IGNORECASE)
_BEDS_SNIFF = re.compile(r"(\d+(?:\.\d+)?)\s*(?:bedrooms?|beds?|bd|br)\b", re.IGNORECASE)
_BATHS_SNIFF = re.compile(r"(\d+(?:\.\d+)?)\s*(?:bathrooms?|baths?|ba)\b", re.IGNORECASE)
_SQFT_SNIFF = re.compile(r"(\d[\d,]*)\s*(?:sq\.?\s?ft|sqft|square\s+feet)", re.IGNORECASE)


def sniff_key_stats(text: str) -> dict:
    """Regex pass over page text for price, beds, baths and square feet."""
    found: dict = {}
    if match := _PRICE_SNIFF.search(text):
        found["price"] = coerce_number(match.group(0).lstrip("$ "))
    if match := _BEDS_SNIFF.search(text):
        found["bedrooms"] = float(match.group(1))
    if match := _BATHS_SNIFF.search(text):
        found["bathrooms"] = float(match.group(1))
    if match := _SQFT_SNIFF.search(text):
        found["sq_ft"] = float(match.group(1).replace(",", ""))
    return found


def degraded_listing(html: Optional[str], url: str) -> dict:
    """Build raw listing data from a page without the language model."""
    host = urlparse(url).netloc or url
    address = ""
    image_url = None
    text = ""

    if html:
        soup = BeautifulSoup(html, "html.parser")
        og_title = soup.find("meta", attrs={"property": "og:title"})
        h1 = soup.find("h1")
        if og_title and og_title.get("content"):
            address = og_title["content"]
        elif soup.title and soup.title.string:
            address = soup.title.string
        elif h1:
            address = h1.get_text(" ", strip=True)

        og_image = soup.find("meta", attrs={"property": "og:image"})
        img = soup.find("img", src=True)
        if og_image and og_image.get("content"):
            image_url = urljoin(url, og_image["content"])
        elif img:
            image_url = urljoin(url, img["src"])
        text = soup.get_text(" ", strip=True)

    stats = sniff_key_stats(text)
    price = stats.pop("price", 0)
    return {
        "listing_details": {
            "address": address.strip() or url,
            "price": price,
            "image_url": image_url,
            "key_stats": stats,
            "hero_narrative": DEGRADED_NARRATIVE.format(host=host),
        },
    }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class IngestionService:
    """Runs the normalizer end to end for one account."""

    def __init__(
        self,
        agent: Optional[IngestionAgent] = None,
        api_key: Optional[str] = None,
        fetcher: Callable[[str], Awaitable[str]] = fetch_source_text,
    ):
        self.agent = agent or IngestionAgent(api_key=api_key)
        self.fetcher = fetcher

    async def ingest(
        self,
        raw_input: str,
        image_url: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> IngestionOutcome:
        text = (raw_input or "").strip()
        if not text:
            raise IngestionError(LLMErrorKind.GENERIC, "Nothing to ingest", http_status=400)
        if looks_like_url(text):
            return await self._ingest_url(text, image_url, user_id)
        return await self._ingest_text(text, IngestionSource.TEXT, image_url, user_id)

    async def ingest_voice(
        self,
        audio: bytes,
        mime_type: str,
        image_url: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> IngestionOutcome:
        result = await self.agent.transcribe_note(audio, mime_type)
        if not result.ok:
            kind, message = classify_llm_error(result.error)
            raise IngestionError(kind, message)
        if not result.data:
            raise IngestionError(
                LLMErrorKind.GENERIC,
                "Transcription returned no text. Record the note again.",
                http_status=422,
            )
        logger.info("Voice note transcribed: %d chars", len(result.data))
        return await self._ingest_text(result.data, IngestionSource.VOICE, image_url, user_id)

    async def _ingest_text(self, text, source, image_url, user_id) -> IngestionOutcome:
        result = await self.agent.extract(truncate_source(text), source_kind=source.value)
        if not result.ok:
            kind, message = classify_llm_error(result.error)
            raise IngestionError(kind, message)
        record = normalize_property_record(result.data, image_url=image_url, user_id=user_id)
        return IngestionOutcome(record=record, source=source)

    async def _ingest_url(self, url, image_url, user_id) -> IngestionOutcome:
        html: Optional[str] = None
        context_note = ""
        try:
            html = await self.fetcher(url)
            content = truncate_source(html_to_text(html))
        except RelayError as exc:
            logger.warning("Relay failed, extracting from URL only: %s", exc)
            content = url
            context_note = DEGRADED_CONTEXT_NOTE.format(url=url)

        result = await self.agent.extract(content, source_kind="url", context_note=context_note)
        if result.ok:
            record = normalize_property_record(result.data, image_url=image_url, user_id=user_id)
            return IngestionOutcome(record=record, source=IngestionSource.URL)

        logger.warning("All extraction variants failed for %s, using local extractor: %s", url, result.error)
        record = normalize_property_record(
            degraded_listing(html, url), image_url=image_url, user_id=user_id
        )
        return IngestionOutcome(record=record, source=IngestionSource.URL, degraded=True)
