import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.core.services import create_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging()
    logger.info("Lead engine starting (env=%s, tz=%s)", settings.APP_ENV, settings.LOCAL_TIMEZONE)
    yield
    logger.info("Lead engine shutting down")


app = FastAPI(
    title="CallHub Lead Engine API",
    description="Cold-call lead intake, distribution and prioritization",
    version="0.1.0",
    lifespan=lifespan,
)

# Shared service handles (XP ledger, import lock)
app.state.services = create_services()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "callhub-api", "version": "0.1.0"}
