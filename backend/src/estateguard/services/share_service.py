"""Share links for a listing: deep link, WhatsApp and email."""

from urllib.parse import quote

from estateguard.app.config import get_settings
from estateguard.domain.schemas import PropertyRecord, ShareLinks


def property_url(property_id: str, base_url: str | None = None) -> str:
    base = (base_url or get_settings().frontend_url).rstrip("/")
    return f"{base}/?property={property_id}"


def _price_label(record: PropertyRecord) -> str:
    price = record.listing_details.price
    return f"${price:,.0f}" if price else "Contact for price"


def build_summary(record: PropertyRecord, business_name: str, link: str) -> str:
    details = record.listing_details
    stats = details.key_stats
    beds = f"{stats.bedrooms:g}" if stats.bedrooms else "0"
    return (
        f"{details.address or 'Exclusive listing'}\n"
        f"Price: {_price_label(record)}\n"
        f"Specs: {beds} Bed | {stats.sq_ft:,.0f} sqft\n\n"
        f"Interested in this {record.category.value} property? "
        f"Full details and contact here:\n{link}\n\n"
        f"Sent via {business_name} Concierge."
    )


def build_share_links(
    record: PropertyRecord, business_name: str, base_url: str | None = None
) -> ShareLinks:
    link = property_url(record.property_id, base_url)
    summary = build_summary(record, business_name, link)
    address = record.listing_details.address or "Exclusive listing"
    subject = f"Property listing: {address}"
    body = (
        f"Hello,\n\nI thought you might like this listing from {business_name}:\n\n"
        f"{address}\nFull details: {link}"
    )
    return ShareLinks(
        property_url=link,
        whatsapp_url=f"https://wa.me/?text={quote(summary, safe='')}",
        email_url=f"mailto:?subject={quote(subject, safe='')}&body={quote(body, safe='')}",
        summary=summary,
    )
