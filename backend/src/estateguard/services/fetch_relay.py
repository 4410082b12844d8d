"""Fetch relay: pulls a listing page server-side with a desktop-browser identity.

The dashboard cannot read third-party listing pages from the browser, so
both the ``/api/proxy`` route and the ingestion normalizer go through here.
"""

import logging

import httpx

from estateguard.app.config import get_settings

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Raised when a relayed fetch fails for any reason."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Relay fetch failed for {url}: {reason}")


async def fetch_source_text(url: str) -> str:
    """Return the body of ``url`` as text.

    Raises:
        RelayError: on transport failures and non-2xx responses.
    """
    settings = get_settings()
    headers = {
        "User-Agent": settings.relay_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }
    try:
        async with httpx.AsyncClient(
            timeout=settings.relay_timeout_seconds,
            follow_redirects=True,
            headers=headers,
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.text
    except httpx.HTTPStatusError as exc:
        logger.warning("Relay got HTTP %s from %s", exc.response.status_code, url)
        raise RelayError(url, f"HTTP {exc.response.status_code}") from exc
    except httpx.RequestError as exc:
        logger.warning("Relay request to %s failed: %s", url, exc)
        raise RelayError(url, str(exc) or exc.__class__.__name__) from exc
    except httpx.InvalidURL as exc:
        raise RelayError(url, f"invalid URL: {exc}") from exc
