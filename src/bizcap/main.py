"""Bizcap FastAPI application assembly.

Wires the patterns router, CORS middleware, and lifespan management for the
APScheduler job that keeps mined patterns fresh.
Run: uvicorn bizcap.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bizcap.config import get_settings
from bizcap.patterns.jobs import create_scheduler, register_pattern_refresh
from bizcap.patterns.router import patterns_router


def _session_factory():
    """Lazy session factory -- module-level so APScheduler can pickle it."""
    from bizcap.db.engine import SessionLocal, get_engine

    get_engine()
    return SessionLocal()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start/stop APScheduler with the pattern refresh job."""
    settings = get_settings()
    scheduler = create_scheduler(settings.scheduler_db_url)
    scheduler.start()

    register_pattern_refresh(
        scheduler,
        _session_factory,
        interval_hours=settings.pattern_refresh_interval_hours,
        default_success_rate=settings.default_success_rate,
    )
    app.state.scheduler = scheduler

    yield

    app.state.scheduler.shutdown(wait=False)


app = FastAPI(title="Bizcap", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(patterns_router)
