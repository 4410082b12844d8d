"""FastAPI application entry point for the EstateGuard agency API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estateguard.app.config import get_settings
from estateguard.domain.schemas import HealthResponse
from estateguard.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="EstateGuard Agency API",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware: allow all origins in debug mode
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from estateguard.app.routes.auth import router as auth_router
from estateguard.app.routes.concierge import router as concierge_router
from estateguard.app.routes.dashboard import router as dashboard_router
from estateguard.app.routes.ingestion import router as ingestion_router
from estateguard.app.routes.leads import router as leads_router
from estateguard.app.routes.pipeline import router as pipeline_router
from estateguard.app.routes.properties import router as properties_router
from estateguard.app.routes.relay import router as relay_router
from estateguard.app.routes.settings import router as settings_router

app.include_router(auth_router)
app.include_router(properties_router)
app.include_router(ingestion_router)
app.include_router(relay_router)
app.include_router(leads_router)
app.include_router(pipeline_router)
app.include_router(settings_router)
app.include_router(concierge_router)
app.include_router(dashboard_router)


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check():
    """Return service health status."""
    return HealthResponse(status="ok", service="estateguard")


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "estateguard.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
