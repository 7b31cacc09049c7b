"""Pattern REST API router.

POST /api/patterns/assign merges mined-pattern suggestions with the
deterministic association lookups for a canvas being created.
GET /api/patterns/assign runs the analyzer in memory and summarises the
patterns for one industry. POST /api/patterns/refresh mines and persists.

Error handling: StorageUnavailableError -> 503, other BizcapError -> 400.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bizcap.config import get_settings
from bizcap.exceptions import BizcapError, StorageUnavailableError
from bizcap.patterns.analysis import PatternAnalysisService
from bizcap.patterns.engine import PatternEngine
from bizcap.patterns.models import PATTERN_TYPES
from bizcap.patterns.schemas import (
    PatternAnalysisSummary,
    PatternAssignRequest,
    PatternAssignResponse,
    PatternCounts,
    PatternRefreshResponse,
)

logger = logging.getLogger(__name__)

patterns_router = APIRouter(prefix="/api/patterns", tags=["patterns"])


# -- DB dependency ------------------------------------------------------------


def _get_db():
    """Yield a SQLAlchemy session bound to the configured engine."""
    from bizcap.db.engine import SessionLocal, get_engine

    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _union(*lists: list[str]) -> list[str]:
    return list(dict.fromkeys(v for values in lists for v in values))


def _http_error(e: BizcapError) -> HTTPException:
    if isinstance(e, StorageUnavailableError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# -- Endpoints ----------------------------------------------------------------


@patterns_router.post("/assign")
async def assign_endpoint(
    request: PatternAssignRequest,
    db: Session = Depends(_get_db),
) -> PatternAssignResponse:
    """Suggest facility types, streams and compliance items for a canvas."""
    engine = PatternEngine(db)
    try:
        pattern_result = engine.assign_patterns(
            request.industry,
            request.sectors,
            location=request.location,
            business_size=request.business_size,
            risk_profile=request.risk_profile,
        )
    except BizcapError as e:
        logger.error("Pattern assignment failed for %s: %s", request.industry, e)
        raise _http_error(e)

    facility_types = engine.assign_facility_types(request.industry, request.sectors)
    streams = engine.assign_operational_streams(request.industry, request.sectors)
    compliance = engine.assign_compliance_requirements(
        request.industry, request.sectors, request.location
    )

    engine.record_applications(pattern_result.applied_patterns)
    db.commit()

    response = PatternAssignResponse(
        facility_types=_union(pattern_result.facility_types, facility_types),
        operational_streams=_union(pattern_result.operational_streams, streams),
        compliance_requirements=_union(
            pattern_result.compliance_requirements,
            compliance.compliance_requirements,
        ),
        regulatory_frameworks=_union(
            pattern_result.regulatory_frameworks,
            compliance.regulatory_frameworks,
        ),
        confidence=pattern_result.confidence,
        applied_patterns=pattern_result.applied_patterns,
        timestamp=datetime.now(timezone.utc),
    )
    logger.info(
        "Pattern assignment for %s: %d facility types, %d streams, "
        "%d compliance requirements, %d regulatory frameworks (confidence %.2f)",
        request.industry,
        len(response.facility_types),
        len(response.operational_streams),
        len(response.compliance_requirements),
        len(response.regulatory_frameworks),
        response.confidence,
    )
    return response


@patterns_router.get("/assign")
async def analysis_endpoint(
    industry: Optional[str] = Query(default=None),
    sectors: Optional[str] = Query(default=None),
    location: Optional[str] = Query(default=None),
    db: Session = Depends(_get_db),
) -> PatternAnalysisSummary:
    """Analyze the canvas corpus in memory and report one industry's patterns."""
    if not industry:
        raise HTTPException(status_code=400, detail="Industry parameter is required")

    service = PatternAnalysisService(db, get_settings().default_success_rate)
    try:
        analysis = service.analyze_existing_canvases()
        facility_fallback = service.generate_facility_patterns()
    except BizcapError as e:
        logger.error("Pattern analysis failed for %s: %s", industry, e)
        raise _http_error(e)

    industry_patterns = [p for p in analysis.patterns if p.industry_code == industry]
    fallback_count = sum(1 for p in facility_fallback if p.industry_code == industry)

    return PatternAnalysisSummary(
        industry=industry,
        sectors=[s for s in (sectors or "").split(",") if s],
        location=location,
        patterns=PatternCounts(
            total=analysis.statistics.patterns_generated,
            industry_specific=len(industry_patterns),
            facility_patterns=fallback_count,
            average_confidence=analysis.statistics.average_confidence,
        ),
        pattern_details={
            kind: [p for p in industry_patterns if p.pattern_type == kind]
            for kind in PATTERN_TYPES
        },
        statistics=analysis.statistics,
    )


@patterns_router.post("/refresh")
async def refresh_endpoint(
    db: Session = Depends(_get_db),
) -> PatternRefreshResponse:
    """Mine the corpus and persist the resulting pattern set."""
    service = PatternAnalysisService(db, get_settings().default_success_rate)
    try:
        result = service.build_pattern_set()
        saved = service.save_patterns(result.patterns)
        db.commit()
    except BizcapError as e:
        logger.error("Pattern refresh failed: %s", e)
        raise _http_error(e)
    return PatternRefreshResponse(saved=saved, statistics=result.statistics)
