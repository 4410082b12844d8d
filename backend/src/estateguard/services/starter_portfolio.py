"""Sample listings a new account can load to try the dashboard and concierge.

Tiers here are set by hand, not derived from price.
"""

STARTER_PORTFOLIO: list[dict] = [
    {
        "property_id": "sample-res-1",
        "category": "Residential",
        "transaction_type": "Sale",
        "status": "Active",
        "tier": "Estate Guard",
        "visibility_protocol": {
            "public_fields": ["address", "price", "bedrooms", "bathrooms"],
            "gated_fields": ["private_appraisal", "seller_motivation", "showing_instructions"],
        },
        "listing_details": {
            "address": "742 Evergreen Terrace, Luxury Heights",
            "price": 4_250_000,
            "image_url": "https://images.unsplash.com/photo-1512917774080-9991f1c4c750?auto=format&fit=crop&w=1200&q=80",
            "key_stats": {"bedrooms": 5, "bathrooms": 4.5, "sq_ft": 5200, "lot_size": "0.75 Acres"},
            "hero_narrative": (
                "A hilltop residence in Luxury Heights with wide ocean views "
                "and custom finishes in every room."
            ),
        },
        "deep_data": {
            "private_appraisal": {"value": 4_100_000, "date": "2026-01-15", "notes": "Steady appreciation expected."},
            "mechanical_specs": {"hvac": "Dual-zone high efficiency", "smart_home": "Control4 whole-home"},
        },
        "agent_notes": {
            "motivation": "Seller is relocating abroad and wants a quick close.",
            "showing_instructions": "24 hours notice. Listing agent attends every showing.",
        },
        "amenities": {"pool": True, "garage": True, "security": True, "gym": True},
    },
    {
        "property_id": "sample-rent-1",
        "category": "Rental",
        "transaction_type": "Rent",
        "status": "Active",
        "tier": "Standard",
        "visibility_protocol": {
            "public_fields": ["address", "price", "sq_ft"],
            "gated_fields": ["lease_terms", "deposit_requirements"],
        },
        "listing_details": {
            "address": "Emerald City Penthouse, Unit 4201",
            "price": 12_500,
            "image_url": "https://images.unsplash.com/photo-1522708323590-d24dbb6b0267?auto=format&fit=crop&w=1200&q=80",
            "key_stats": {"bedrooms": 2, "bathrooms": 2, "sq_ft": 1850, "lot_size": "N/A"},
            "hero_narrative": (
                "A penthouse with floor-to-ceiling glass and a private terrace "
                "above the Emerald City skyline."
            ),
        },
        "deep_data": {
            "lease_terms": {"duration": "12-24 months", "deposit": 25_000, "utilities": "Included except electric"},
        },
        "agent_notes": {
            "motivation": "Owner wants an executive tenant.",
            "showing_instructions": "Building concierge holds the lockbox.",
        },
        "amenities": {"pool": True, "wifi": True, "laundry": True, "security": True},
    },
    {
        "property_id": "sample-comm-1",
        "category": "Commercial",
        "transaction_type": "Lease",
        "status": "Active",
        "tier": "Estate Guard",
        "visibility_protocol": {
            "public_fields": ["address", "sq_ft", "zoning"],
            "gated_fields": ["commission_structure", "current_tenants"],
        },
        "listing_details": {
            "address": "Tech Hub Plaza, Floor 12",
            "price": 45,
            "image_url": "https://images.unsplash.com/photo-1497366216548-37526070297c?auto=format&fit=crop&w=1200&q=80",
            "key_stats": {"sq_ft": 12_000, "lot_size": "N/A", "zoning": "Commercial - Mixed Use"},
            "hero_narrative": (
                "Open-plan office floor in the innovation district with "
                "shared collaboration zones."
            ),
        },
        "deep_data": {},
        "agent_notes": {
            "motivation": "New development seeking anchor tenants.",
            "showing_instructions": "Walk-throughs Monday to Friday, 9am to 5pm.",
        },
        "amenities": {"wifi": True, "gym": True, "security": True},
    },
]
