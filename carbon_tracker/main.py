"""
Carbon Tracker — Main Application
Dashboard API over the persisted usage records, plus the optional
in-process tracker for a live chat page.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carbon_tracker.core.config import settings
from carbon_tracker.core.database import engine, Base, get_store
from carbon_tracker.api.routes import activity, dashboard, session
from carbon_tracker.schemas.schemas import HealthResponse
from carbon_tracker.services.page import RemotePage
from carbon_tracker.services.tracker import CarbonTracker

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def _start_tracker(app: FastAPI):
    page = RemotePage(settings.TRACKED_PAGE_URL)
    tracker = CarbonTracker(page, get_store(), url=settings.TRACKED_PAGE_URL)
    app.state.tracker = tracker
    app.state.page_watch = asyncio.create_task(page.watch())
    app.state.tracker_start = asyncio.create_task(tracker.start())


async def _stop_tracker(app: FastAPI):
    for name in ("tracker_start", "page_watch"):
        task = getattr(app.state, name, None)
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
    tracker = getattr(app.state, "tracker", None)
    if tracker is not None:
        await tracker.stop()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Carbon tracking: {'ON' if settings.CARBON_TRACKING_ENABLED else 'OFF'}")

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.CARBON_TRACKING_ENABLED and settings.TRACKED_PAGE_URL:
        logger.info(f"Tracking chat page: {settings.TRACKED_PAGE_URL}")
        await _start_tracker(app)

    yield

    await _stop_tracker(app)
    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Energy and carbon footprint of conversational AI use and web browsing, "
        "with session, daily, weekly, monthly and all-time totals."
    ),
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ───────────────────────────────────────────────────────────────────
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(activity.router, prefix="/api/activity", tags=["Web Activity"])
app.include_router(session.router, prefix="/api/session", tags=["Session"])


# ── Health Check ─────────────────────────────────────────────────────────────
@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        carbon_tracking=settings.CARBON_TRACKING_ENABLED,
    )


@app.get("/", tags=["Root"])
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
    }
