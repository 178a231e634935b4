"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from soulpass.config import settings
from soulpass.database import Base, engine
from soulpass.errors import SoulPassError

# Import routers
from soulpass.routers import attendance, events, profiles, rsvps

# Import all models so Base.metadata knows about them
from soulpass.models.profile import Profile  # noqa: F401
from soulpass.models.event import Event      # noqa: F401
from soulpass.models.rsvp import RSVP        # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="SoulPass",
    description="Wallet-identity event coordination with RSVP approval and reputation",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(rsvps.router, prefix="/api/events", tags=["RSVPs"])
app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])


@app.exception_handler(SoulPassError)
async def handle_domain_error(request: Request, exc: SoulPassError):
    """Render every domain error as {detail, error} with its mapped status."""
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
