"""
Vendi Agent Backend - conversation automation engine over HTTP.

ARCHITECTURE:
- Channel layer (WhatsApp ingestion/delivery): external, calls POST /agent/messages
- FastAPI Backend: engine pipeline, operator decisions, persistence
- SQL DB: source of truth for conversation state and the action audit trail

SAFETY MODEL:
- The model only proposes; the validator decides; the executor applies
- Prices, discounts and payment decisions are never in the model's reach
- Human takeover silences the agent until an operator releases it
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vendi.api.routes import agent
from vendi.core.config import settings
from vendi.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: ensure database tables exist.
    """
    logger.info("Initializing database...")
    init_db()
    logger.info(f"Database initialized (agent enabled: {settings.AGENT_ENABLED})")
    yield


app = FastAPI(
    title="Vendi Agent API",
    description="Conversation automation engine. Propose → Validate → Execute.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin"],
    max_age=600,  # Cache preflight for 10 minutes
)

app.include_router(agent.router, prefix="/agent", tags=["agent"])


@app.get("/health")
def health():
    return {"status": "ok", "agent_enabled": settings.AGENT_ENABLED}
