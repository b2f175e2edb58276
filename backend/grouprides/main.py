"""
FastAPI app entrypoint.

Group rides: rides (recurring rides advanced on read, no scheduler), messages, notification
preferences. Email notifications run in the background after each write.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from grouprides.api.routes import messages, preferences, rides
from grouprides.config import settings
from grouprides.services.mailgun import get_gateway

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_gateway().is_configured():
        logger.info("Email notifications enabled (Mailgun domain %s)", settings.mailgun_domain)
    else:
        logger.warning("Mailgun not configured; ride and message notifications will be skipped")
    logger.info("Backend ready; links point at %s", settings.site_url)
    yield


app = FastAPI(title="MTB Group Ride", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the production frontend
_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rides.router, prefix="/api", tags=["rides"])
app.include_router(messages.router, prefix="/api", tags=["messages"])
app.include_router(preferences.router, prefix="/api", tags=["preferences"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "MTB Group Ride API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "email": "configured" if get_gateway().is_configured() else "disabled"}
