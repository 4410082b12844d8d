"""Compare the live database schema with the columns the app expects."""

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

# Columns the dashboard reads and writes; a missing one breaks a feature.
EXPECTED_COLUMNS: dict[str, list[str]] = {
    "properties": [
        "property_id", "user_id", "address", "price", "status", "tier",
        "category", "data", "amenities", "ai_training", "deep_data", "seo",
    ],
    "leads": [
        "id", "user_id", "name", "phone", "email", "financing_status",
        "property_id", "property_address", "status", "notes", "agent_notes",
        "notes_log", "conversation_history", "priority_score", "due_date",
        "created_at",
    ],
    "app_config": [
        "id", "business_name", "logo_url", "primary_color", "api_key",
        "high_security_mode", "subscription_tier", "monthly_price",
        "business_address", "contact_email", "contact_phone", "specialties",
        "agent_count", "concierge_intro", "language", "theme",
        "terms_and_conditions", "privacy_policy", "nda", "location_hours",
        "service_areas", "commission_rates", "marketing_strategy",
        "team_members", "awards", "legal_disclaimer", "pipeline_stages",
    ],
}


def known_column_names() -> set[str]:
    """Column names distinctive enough to identify a schema error by text."""
    generic = {"id", "name", "data", "status", "email", "phone", "price", "address", "tier"}
    return {
        col for cols in EXPECTED_COLUMNS.values() for col in cols if col not in generic
    }


def _missing(sync_conn) -> dict[str, list[str]]:
    inspector = inspect(sync_conn)
    tables = set(inspector.get_table_names())
    missing: dict[str, list[str]] = {}
    for table, expected in EXPECTED_COLUMNS.items():
        if table not in tables:
            missing[table] = list(expected)
            continue
        present = {col["name"] for col in inspector.get_columns(table)}
        absent = [col for col in expected if col not in present]
        if absent:
            missing[table] = absent
    return missing


async def find_missing_columns(engine: AsyncEngine) -> dict[str, list[str]]:
    """Return ``{table: [missing columns]}``; empty when the schema is current."""
    async with engine.connect() as conn:
        return await conn.run_sync(_missing)
