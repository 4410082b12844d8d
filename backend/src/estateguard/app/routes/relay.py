"""Same-origin fetch relay used by the dashboard to read listing pages."""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from estateguard.services.fetch_relay import RelayError, fetch_source_text

router = APIRouter(prefix="/api", tags=["relay"])


@router.get("/proxy")
async def proxy(url: Optional[str] = None):
    if not url:
        return JSONResponse(status_code=400, content={"error": "URL is required"})
    try:
        body = await fetch_source_text(url)
    except RelayError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return PlainTextResponse(body)
