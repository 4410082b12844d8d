"""Gemini client factory for EstateGuard agents."""

import copy

from google import genai
from google.genai import types

from estateguard.app.config import get_settings


# Fields that Pydantic v2 adds to JSON Schema but Gemini's API rejects
_UNSUPPORTED_KEYS = {
    "$defs", "definitions", "title", "default", "examples",
    "additionalProperties", "maximum", "minimum", "exclusiveMaximum",
    "exclusiveMinimum", "maxLength", "minLength", "pattern",
    "maxItems", "minItems", "uniqueItems",
}


def _inline_defs(schema: dict) -> dict:
    """Clean a Pydantic JSON Schema for Gemini consumption.

    Resolves $defs/$ref references (inlines them), collapses the
    ``anyOf: [X, {"type": "null"}]`` pattern Pydantic emits for optional
    fields into ``X`` with ``nullable``, and strips fields that the Gemini
    schema dialect doesn't support (title, default, etc.).
    """
    schema = copy.deepcopy(schema)
    defs = schema.pop("$defs", None) or schema.pop("definitions", None)

    def _resolve(node):
        if isinstance(node, dict):
            if "$ref" in node:
                ref_name = node["$ref"].rsplit("/", 1)[-1]
                if defs and ref_name in defs:
                    return _resolve(copy.deepcopy(defs[ref_name]))
                return node
            if "anyOf" in node:
                variants = [v for v in node["anyOf"] if v.get("type") != "null"]
                if len(variants) == 1 and len(variants) < len(node["anyOf"]):
                    merged = {k: v for k, v in node.items() if k != "anyOf"}
                    merged.update(variants[0])
                    merged["nullable"] = True
                    node = merged
            for key in _UNSUPPORTED_KEYS:
                node.pop(key, None)
            for key, value in list(node.items()):
                node[key] = _resolve(value)
        elif isinstance(node, list):
            for i, item in enumerate(node):
                node[i] = _resolve(item)
        return node

    return _resolve(schema)


def get_client(api_key: str | None = None, api_version: str = "v1") -> genai.Client:
    """Return a Gemini client bound to one API surface.

    Args:
        api_key: Per-account key override. Falls back to ``GEMINI_API_KEY``.
        api_version: ``"v1"`` or ``"v1beta"``.
    """
    settings = get_settings()
    return genai.Client(
        api_key=api_key or settings.gemini_api_key,
        http_options=types.HttpOptions(api_version=api_version),
    )


def build_config(
    temperature: float = 0.7,
    json_mode: bool = False,
    response_schema: dict | None = None,
    system_instruction: str | None = None,
) -> types.GenerateContentConfig:
    """Build the generation config for a single ``generate_content`` call."""
    kwargs = {"temperature": temperature}
    if system_instruction:
        kwargs["system_instruction"] = system_instruction
    if json_mode:
        kwargs["response_mime_type"] = "application/json"
        if response_schema:
            kwargs["response_schema"] = _inline_defs(response_schema)
    return types.GenerateContentConfig(**kwargs)
