"""Pattern analysis: mine assignment patterns from the business canvas corpus.

Active canvases are grouped by (industry, sorted unique sectors). Each group
yields up to three patterns: facility types, operational streams, and
compliance (compliance requirement codes plus the regulatory framework codes
linked to them). Industries with no canvas history fall back to patterns
derived from the static industry/facility-type association table.

Analysis is a pure read. Persistence is the separate save_patterns step,
which upserts by deterministic id so re-running on an unchanged corpus
leaves the stored statistics unchanged.
"""

from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bizcap.canvas.models import (
    BusinessCanvas,
    CanvasComplianceFramework,
    CanvasFacilityType,
    CanvasOperationalStream,
)
from bizcap.exceptions import StorageUnavailableError
from bizcap.frameworks.models import Industry, IndustryFacilityTypeAssociation
from bizcap.patterns.models import AssignmentPattern
from bizcap.patterns.schemas import (
    AnalysisStatistics,
    AssignmentData,
    MinedPattern,
    PatternAnalysisResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_RATE = 0.8

GroupKey = tuple[str, tuple[str, ...]]


def calculate_confidence(frequency: int, total: int) -> float:
    """Confidence from the ratio of distinct values to sample size.

    min(2 * frequency / total, 1), rounded to 2 places. Zero when total is 0.
    """
    if total == 0:
        return 0.0
    ratio = frequency / total
    return round(min(ratio * 2, 1.0), 2)


def make_group_key(industry: str, sectors: Optional[Iterable[str]]) -> GroupKey:
    """Order-independent grouping key for an industry and its sectors."""
    return industry, tuple(sorted(set(sectors or [])))


def canvas_pattern_id(
    pattern_type: str, industry_code: str, sector_codes: Sequence[str]
) -> str:
    """Deterministic id for a pattern mined from canvases.

    Sectors are encoded as a compact JSON list so that distinct sector sets
    never share an id.
    """
    sectors = json.dumps(list(sector_codes), separators=(",", ":"))
    return f"canvas:{pattern_type}:{industry_code}:{sectors}"


def association_pattern_id(pattern_type: str, industry_code: str) -> str:
    """Deterministic id for a pattern derived from an association table."""
    return f"association:{pattern_type}:{industry_code}"


def group_canvases_by_industry_sector(
    canvases: Iterable[BusinessCanvas],
) -> dict[GroupKey, list[BusinessCanvas]]:
    """Group canvases by (industry, sorted sectors). Canvases without an industry are dropped."""
    groups: dict[GroupKey, list[BusinessCanvas]] = defaultdict(list)
    for canvas in canvases:
        if not canvas.industry:
            continue
        groups[make_group_key(canvas.industry, canvas.sectors)].append(canvas)
    return dict(groups)


def _average_confidence(patterns: Sequence[MinedPattern]) -> float:
    if not patterns:
        return 0.0
    return sum(p.confidence_score for p in patterns) / len(patterns)


class PatternAnalysisService:
    """Derives AssignmentPattern records from canvases and association tables."""

    def __init__(
        self, db: Session, default_success_rate: float = DEFAULT_SUCCESS_RATE
    ) -> None:
        self.db = db
        self.default_success_rate = default_success_rate

    # -- Canvas mining -------------------------------------------------------

    def analyze_existing_canvases(self) -> PatternAnalysisResult:
        """Mine patterns from every active canvas.

        Raises:
            StorageUnavailableError: If the canvas corpus cannot be read.
        """
        logger.info("Starting pattern analysis of existing business canvases")
        canvases = self._load_active_canvases()
        patterns = self._mine(canvases)
        statistics = AnalysisStatistics(
            total_canvases=len(canvases),
            patterns_generated=len(patterns),
            average_confidence=_average_confidence(patterns),
        )
        logger.info(
            "Generated %d patterns from %d canvases (average confidence %.2f)",
            statistics.patterns_generated,
            statistics.total_canvases,
            statistics.average_confidence,
        )
        return PatternAnalysisResult(patterns=patterns, statistics=statistics)

    def build_pattern_set(self) -> PatternAnalysisResult:
        """Canvas-mined patterns plus association fallbacks.

        Association-derived facility patterns are only kept for industries
        that have no active canvases at all.
        """
        canvases = self._load_active_canvases()
        mined = self._mine(canvases)
        industries_with_history = {c.industry for c in canvases if c.industry}

        fallback = [
            p
            for p in self.generate_facility_patterns()
            if p.industry_code not in industries_with_history
        ]
        if fallback:
            logger.info(
                "Using association fallback for %d industries without canvas history",
                len(fallback),
            )

        patterns = mined + fallback
        return PatternAnalysisResult(
            patterns=patterns,
            statistics=AnalysisStatistics(
                total_canvases=len(canvases),
                patterns_generated=len(patterns),
                average_confidence=_average_confidence(patterns),
            ),
        )

    def _load_active_canvases(self) -> list[BusinessCanvas]:
        stmt = (
            select(BusinessCanvas)
            .where(BusinessCanvas.is_active.is_(True))
            .options(
                selectinload(BusinessCanvas.facility_types).selectinload(
                    CanvasFacilityType.facility_type
                ),
                selectinload(BusinessCanvas.operational_streams).selectinload(
                    CanvasOperationalStream.operational_stream
                ),
                selectinload(BusinessCanvas.compliance_frameworks).selectinload(
                    CanvasComplianceFramework.compliance_framework
                ),
                selectinload(BusinessCanvas.compliance_frameworks).selectinload(
                    CanvasComplianceFramework.regulatory_framework
                ),
            )
            .order_by(BusinessCanvas.id)
        )
        try:
            canvases = list(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise StorageUnavailableError(
                message="Failed to load business canvases for pattern analysis",
                detail=str(e),
            ) from e
        logger.info("Analyzing %d business canvases", len(canvases))
        return canvases

    def _mine(self, canvases: Sequence[BusinessCanvas]) -> list[MinedPattern]:
        patterns: list[MinedPattern] = []
        groups = group_canvases_by_industry_sector(canvases)
        for (industry_code, sector_codes), group in groups.items():
            sectors = list(sector_codes)
            for build in (
                self._facility_pattern,
                self._operational_pattern,
                self._compliance_pattern,
            ):
                pattern = build(industry_code, sectors, group)
                if pattern is not None:
                    patterns.append(pattern)
        return patterns

    def _facility_pattern(
        self, industry_code: str, sector_codes: list[str], canvases: list[BusinessCanvas]
    ) -> Optional[MinedPattern]:
        tally = Counter(
            link.facility_type.code for c in canvases for link in c.facility_types
        )
        if not tally:
            return None
        return self._build_pattern(
            "facility",
            industry_code,
            sector_codes,
            AssignmentData(facility_types=_ranked(tally)),
            distinct_count=len(tally),
            group_size=len(canvases),
        )

    def _operational_pattern(
        self, industry_code: str, sector_codes: list[str], canvases: list[BusinessCanvas]
    ) -> Optional[MinedPattern]:
        tally = Counter(
            link.operational_stream.code
            for c in canvases
            for link in c.operational_streams
        )
        if not tally:
            return None
        return self._build_pattern(
            "operational",
            industry_code,
            sector_codes,
            AssignmentData(operational_streams=_ranked(tally)),
            distinct_count=len(tally),
            group_size=len(canvases),
        )

    def _compliance_pattern(
        self, industry_code: str, sector_codes: list[str], canvases: list[BusinessCanvas]
    ) -> Optional[MinedPattern]:
        compliance: Counter[str] = Counter()
        regulatory: Counter[str] = Counter()
        for canvas in canvases:
            for link in canvas.compliance_frameworks:
                compliance[link.compliance_framework.code] += 1
                if link.regulatory_framework is not None:
                    regulatory[link.regulatory_framework.code] += 1

        if not compliance and not regulatory:
            return None
        return self._build_pattern(
            "compliance",
            industry_code,
            sector_codes,
            AssignmentData(
                compliance_requirements=_ranked(compliance),
                regulatory_frameworks=_ranked(regulatory),
            ),
            distinct_count=len(compliance) + len(regulatory),
            group_size=len(canvases),
        )

    def _build_pattern(
        self,
        pattern_type: str,
        industry_code: str,
        sector_codes: list[str],
        data: AssignmentData,
        distinct_count: int,
        group_size: int,
    ) -> MinedPattern:
        return MinedPattern(
            id=canvas_pattern_id(pattern_type, industry_code, sector_codes),
            pattern_type=pattern_type,
            industry_code=industry_code,
            sector_codes=sector_codes,
            assignment_data=data,
            confidence_score=calculate_confidence(distinct_count, group_size),
            source_sample_size=group_size,
            success_rate=self.default_success_rate,
        )

    # -- Association fallback ------------------------------------------------

    def generate_facility_patterns(self) -> list[MinedPattern]:
        """One facility pattern per industry from the active association rows.

        The association table has no sample size of its own, so confidence is
        computed against a total of 1.
        """
        logger.info("Generating facility patterns from industry associations")
        stmt = (
            select(IndustryFacilityTypeAssociation)
            .join(Industry, IndustryFacilityTypeAssociation.industry_id == Industry.id)
            .where(IndustryFacilityTypeAssociation.is_active.is_(True))
            .options(
                selectinload(IndustryFacilityTypeAssociation.industry),
                selectinload(IndustryFacilityTypeAssociation.facility_type),
            )
            .order_by(Industry.code, IndustryFacilityTypeAssociation.sort_order)
        )
        try:
            associations = self.db.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(
                message="Failed to load industry facility type associations",
                detail=str(e),
            ) from e

        by_industry: dict[str, list[str]] = defaultdict(list)
        for association in associations:
            by_industry[association.industry.code].append(
                association.facility_type.code
            )

        patterns = [
            MinedPattern(
                id=association_pattern_id("facility", industry_code),
                pattern_type="facility",
                industry_code=industry_code,
                sector_codes=[],
                assignment_data=AssignmentData(facility_types=codes),
                confidence_score=calculate_confidence(len(codes), 1),
                source_sample_size=len(codes),
                success_rate=self.default_success_rate,
            )
            for industry_code, codes in by_industry.items()
        ]
        logger.info("Generated %d facility patterns", len(patterns))
        return patterns

    # -- Persistence ---------------------------------------------------------

    def save_patterns(self, patterns: Iterable[MinedPattern]) -> int:
        """Upsert patterns by id and flush. Returns the number written.

        Existing rows get assignment_data, confidence_score,
        source_sample_size, success_rate and updated_at refreshed; identifying
        columns and application_count are left alone. Patterns with no
        assignment data are skipped. The caller commits.

        Raises:
            StorageUnavailableError: If any write fails. The session is
                rolled back so nothing from this call is kept.
        """
        unique = {p.id: p for p in patterns}
        logger.info("Saving %d patterns", len(unique))

        saved = 0
        try:
            for pattern in unique.values():
                if pattern.assignment_data.is_empty():
                    logger.warning("Skipping pattern %s: no assignment data", pattern.id)
                    continue

                data = pattern.assignment_data.model_dump(exclude_none=True)
                existing = self.db.get(AssignmentPattern, pattern.id)
                if existing is not None:
                    existing.assignment_data = data
                    existing.confidence_score = pattern.confidence_score
                    existing.source_sample_size = pattern.source_sample_size
                    existing.success_rate = pattern.success_rate
                    existing.updated_at = func.now()
                else:
                    location = (
                        pattern.location_patterns.model_dump(exclude_none=True)
                        if pattern.location_patterns
                        else None
                    )
                    self.db.add(
                        AssignmentPattern(
                            id=pattern.id,
                            pattern_type=pattern.pattern_type,
                            industry_code=pattern.industry_code,
                            sector_codes=list(pattern.sector_codes),
                            location_patterns=location,
                            assignment_data=data,
                            confidence_score=pattern.confidence_score,
                            source_sample_size=pattern.source_sample_size,
                            application_count=pattern.application_count,
                            success_rate=pattern.success_rate,
                        )
                    )
                saved += 1
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageUnavailableError(
                message="Failed to save assignment patterns",
                detail=str(e),
            ) from e

        logger.info("Saved %d patterns", saved)
        return saved


def _ranked(tally: Counter[str]) -> list[str]:
    """Codes by descending occurrence; ties keep first-seen order."""
    return [code for code, _ in tally.most_common()]
