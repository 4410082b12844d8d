"""Tests for listing storage, dashboard stats, settings and share links."""

from urllib.parse import unquote

import pytest

from estateguard.domain.schemas import AgentSettings, PropertyRecord
from estateguard.services.pipeline_service import PipelineService
from estateguard.services.property_service import (
    PropertyConflictError,
    PropertyNotFoundError,
    dashboard_stats,
    delete_property,
    get_public_property,
    inject_starter_portfolio,
    list_properties,
    upsert_property,
)
from estateguard.services.settings_service import (
    get_agent_settings,
    get_or_create_config,
    save_agent_settings,
)
from estateguard.services.share_service import build_share_links
from estateguard.services.starter_portfolio import STARTER_PORTFOLIO


class TestListingStorage:

    async def test_upsert_round_trips_full_record(self, db_session, make_user, listing_payload):
        user = await make_user()
        record = PropertyRecord.model_validate(listing_payload(property_id="EG-STORE001"))
        saved = await upsert_property(db_session, user.id, record)

        assert saved.user_id == user.id
        row = await get_public_property(db_session, "EG-STORE001")
        assert row.address == "18 Harbor View Lane"
        assert row.price == 850_000
        assert row.data["agent_notes"]["showing_instructions"] == "Lockbox code 4417."

    async def test_upsert_replaces_existing(self, db_session, make_user, make_property, listing_payload):
        user = await make_user()
        await make_property(user, property_id="EG-STORE002")
        updated = PropertyRecord.model_validate(
            listing_payload(property_id="EG-STORE002", status="Sold")
        )
        await upsert_property(db_session, user.id, updated)

        [listing] = await list_properties(db_session, user.id)
        assert listing.status.value == "Sold"

    async def test_id_owned_by_another_account(self, db_session, make_user, make_property, listing_payload):
        owner = await make_user()
        other = await make_user()
        await make_property(owner, property_id="EG-TAKEN001")
        with pytest.raises(PropertyConflictError):
            await upsert_property(
                db_session, other.id, PropertyRecord.model_validate(listing_payload(property_id="EG-TAKEN001"))
            )

    async def test_delete_keeps_leads(self, db_session, make_user, make_property, make_lead):
        user = await make_user()
        listing = await make_property(user)
        lead = await make_lead(user, property_id=listing.property_id)

        await delete_property(db_session, user.id, listing.property_id)

        assert await list_properties(db_session, user.id) == []
        assert lead.property_id == listing.property_id

    async def test_delete_other_accounts_listing(self, db_session, make_user, make_property):
        owner = await make_user()
        other = await make_user()
        listing = await make_property(owner)
        with pytest.raises(PropertyNotFoundError):
            await delete_property(db_session, other.id, listing.property_id)


class TestStarterPortfolio:

    async def test_injects_once_per_account(self, db_session, make_user):
        first = await make_user()
        second = await make_user()

        added = await inject_starter_portfolio(db_session, first.id)
        assert len(added) == len(STARTER_PORTFOLIO)
        assert await inject_starter_portfolio(db_session, first.id) == []

        # A second account gets its own copies
        assert len(await inject_starter_portfolio(db_session, second.id)) == len(STARTER_PORTFOLIO)
        assert {r.user_id for r in added} == {first.id}


class TestDashboardStats:

    async def test_counts(self, db_session, make_user, make_property, make_lead):
        user = await make_user()
        await make_property(user)
        await make_property(user, price=9_000_000, tier="Estate Guard")
        await make_lead(user, status="New")
        await make_lead(user, status="New")
        await make_lead(user, status="Archived")

        stats = await dashboard_stats(db_session, user.id, ["New", "Closed"])

        assert stats.property_count == 2
        assert stats.estate_guard_count == 1
        assert stats.lead_count == 3
        assert stats.leads_by_stage == {"New": 2, "Closed": 0, "Archived": 1}


class TestSettings:

    async def test_defaults_created_on_first_read(self, db_session, make_user):
        user = await make_user()
        await db_session.delete(await get_or_create_config(db_session, user.id))
        await db_session.commit()

        settings = await get_agent_settings(db_session, user.id)
        assert settings.business_name == "EstateGuard AI"
        assert settings.high_security_mode is True
        assert settings.pipeline_stages[0] == "New"

    async def test_save_is_wholesale_but_keeps_stages(self, db_session, make_user):
        user = await make_user(name="Harbor Realty", contact_phone="555-0100")
        saved = await save_agent_settings(
            db_session, user.id, AgentSettings(business_name="Harbor & Co", high_security_mode=False)
        )
        assert saved.business_name == "Harbor & Co"
        assert saved.high_security_mode is False
        assert saved.contact_phone == ""
        assert saved.pipeline_stages[0] == "New"

    async def test_save_cannot_drop_an_occupied_stage(self, db_session, make_user, make_lead):
        user = await make_user()
        lead = await make_lead(user, status="Leads")
        lead_id = lead.id

        saved = await save_agent_settings(
            db_session,
            user.id,
            AgentSettings(pipeline_stages=["New", "Discovery", "Showing", "Negotiation", "Closed"]),
        )

        assert "Leads" in saved.pipeline_stages
        board = await PipelineService(db_session, user.id).load()
        assert lead_id in board.leads_in("Leads")


class TestShareLinks:

    def test_links_are_encoded(self, listing_payload):
        record = PropertyRecord.model_validate(listing_payload(property_id="EG-SHARE001"))
        links = build_share_links(record, "Harbor Realty", base_url="https://app.example.com/")

        assert links.property_url == "https://app.example.com/?property=EG-SHARE001"
        assert links.whatsapp_url.startswith("https://wa.me/?text=")
        assert " " not in links.whatsapp_url
        assert unquote(links.whatsapp_url.split("text=", 1)[1]) == links.summary
        assert "$850,000" in links.summary
        assert "4 Bed" in links.summary
        assert "Harbor Realty" in links.summary
        assert links.email_url.startswith("mailto:?subject=")
        assert "18%20Harbor%20View%20Lane" in links.email_url
