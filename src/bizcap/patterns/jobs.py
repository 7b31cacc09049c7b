"""Batch pattern refresh on APScheduler.

The analyzer runs detached from request handling: a periodic job opens its
own session, mines the corpus, upserts the pattern set and commits. A failed
run is rolled back as a whole and retried on the next interval.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import structlog
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from bizcap.patterns.analysis import DEFAULT_SUCCESS_RATE, PatternAnalysisService
from bizcap.patterns.schemas import PatternRefreshResponse

logger = structlog.get_logger(__name__)

REFRESH_JOB_ID = "pattern_refresh"


def create_scheduler(
    scheduler_db_url: str = "sqlite:///data/scheduler.db",
) -> AsyncIOScheduler:
    """Create APScheduler with job store.

    Uses SQLAlchemyJobStore for production.
    For tests, pass scheduler_db_url="sqlite://" for in-memory.
    """
    if scheduler_db_url == "sqlite://":
        jobstores = {"default": MemoryJobStore()}
    else:
        from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore

        url = make_url(scheduler_db_url)
        if url.get_backend_name() == "sqlite" and url.database:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        jobstores = {"default": SQLAlchemyJobStore(url=scheduler_db_url)}

    return AsyncIOScheduler(jobstores=jobstores)


def refresh_patterns(
    db_session_factory: Callable[[], Session],
    default_success_rate: float = DEFAULT_SUCCESS_RATE,
) -> PatternRefreshResponse:
    """Mine, upsert and commit the full pattern set in one session."""
    db = db_session_factory()
    try:
        service = PatternAnalysisService(db, default_success_rate)
        result = service.build_pattern_set()
        saved = service.save_patterns(result.patterns)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("pattern_refresh_failed")
        raise
    finally:
        db.close()

    logger.info(
        "pattern_refresh_complete",
        saved=saved,
        total_canvases=result.statistics.total_canvases,
        average_confidence=round(result.statistics.average_confidence, 2),
    )
    return PatternRefreshResponse(saved=saved, statistics=result.statistics)


def register_pattern_refresh(
    scheduler: Any,
    db_session_factory: Callable[[], Session],
    interval_hours: int = 24,
    default_success_rate: float = DEFAULT_SUCCESS_RATE,
) -> None:
    """Register the pattern refresh as a periodic APScheduler job."""
    scheduler.add_job(
        refresh_patterns,
        trigger="interval",
        hours=interval_hours,
        args=[db_session_factory, default_success_rate],
        id=REFRESH_JOB_ID,
        replace_existing=True,
    )
    logger.info("pattern_refresh_registered", interval_hours=interval_hours)
