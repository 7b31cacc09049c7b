"""Pattern engine: suggest assignments for a canvas being created or classified.

Two sources feed a suggestion:

- Stored AssignmentPattern rows for the industry whose sector set contains
  every requested sector, merged by set union (assign_patterns).
- Deterministic association-table lookups per dimension, plus static
  state/federal regulatory tables for compliance (assign_* methods).

assign_patterns surfaces storage failures. The assign_* lookups back a live
form, so they log a warning and return empty results instead.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bizcap.exceptions import StorageUnavailableError, ValidationError
from bizcap.frameworks.models import (
    FacilityType,
    Industry,
    IndustryComplianceFramework,
    IndustryFacilityTypeAssociation,
    IndustryOperationalStream,
)
from bizcap.patterns.models import AssignmentPattern
from bizcap.patterns.regulatory import get_location_specific_requirements
from bizcap.patterns.schemas import (
    ComplianceAssignment,
    MinedPattern,
    PatternAssignmentResult,
)

logger = logging.getLogger(__name__)


def filter_by_sector(associations: Sequence, sectors: Sequence[str]) -> list:
    """Keep sector-agnostic rows and rows for one of the requested sectors.

    With no requested sectors every row is kept. If nothing survives, fall
    back to the sector-agnostic rows only.
    """
    if not sectors:
        return list(associations)
    matched = [a for a in associations if not a.sector or a.sector in sectors]
    if matched:
        return matched
    return [a for a in associations if not a.sector]


def _dedupe(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class PatternEngine:
    """Combines mined patterns with static association lookups."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # -- Mined patterns ------------------------------------------------------

    def assign_patterns(
        self,
        industry: str,
        sectors: Sequence[str],
        location: Optional[str] = None,
        business_size: Optional[str] = None,
        risk_profile: Optional[str] = None,
    ) -> PatternAssignmentResult:
        """Merge every stored pattern matching the industry and sectors.

        location, business_size and risk_profile are accepted for callers but
        do not filter or weight patterns.

        Raises:
            ValidationError: If industry is blank.
            StorageUnavailableError: If the pattern table cannot be read.
        """
        if not industry or not industry.strip():
            raise ValidationError(
                message="Industry is required",
                detail=f"industry={industry!r}",
            )
        logger.info(
            "Assigning patterns for industry %s, sectors %s",
            industry,
            ", ".join(sectors),
        )
        patterns = self.get_matching_patterns(industry, sectors)
        result = self.apply_patterns(patterns, business_size, risk_profile)
        logger.info(
            "Assigned %d patterns with confidence %.2f",
            len(result.applied_patterns),
            result.confidence,
        )
        return result

    def get_matching_patterns(
        self, industry: str, sectors: Sequence[str]
    ) -> list[MinedPattern]:
        """Patterns for the industry whose sector_codes contain every input sector.

        Ordered by confidence, then source sample size, then application count,
        all descending.
        """
        stmt = (
            select(AssignmentPattern)
            .where(AssignmentPattern.industry_code == industry)
            .order_by(
                AssignmentPattern.confidence_score.desc(),
                AssignmentPattern.source_sample_size.desc(),
                AssignmentPattern.application_count.desc(),
                AssignmentPattern.id,
            )
        )
        try:
            rows = self.db.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(
                message="Failed to load assignment patterns",
                detail=str(e),
            ) from e

        wanted = set(sectors)
        return [
            MinedPattern.model_validate(row)
            for row in rows
            if wanted <= set(row.sector_codes or [])
        ]

    @staticmethod
    def apply_patterns(
        patterns: Sequence[MinedPattern],
        business_size: Optional[str] = None,
        risk_profile: Optional[str] = None,
    ) -> PatternAssignmentResult:
        """Union the assignment data of all patterns; confidence is their mean."""
        facility_types: dict[str, None] = {}
        operational_streams: dict[str, None] = {}
        compliance_requirements: dict[str, None] = {}
        regulatory_frameworks: dict[str, None] = {}
        applied: list[str] = []
        total_confidence = 0.0

        for pattern in patterns:
            applied.append(pattern.id)
            total_confidence += pattern.confidence_score
            data = pattern.assignment_data
            facility_types.update(dict.fromkeys(data.facility_types or []))
            operational_streams.update(dict.fromkeys(data.operational_streams or []))
            compliance_requirements.update(
                dict.fromkeys(data.compliance_requirements or [])
            )
            regulatory_frameworks.update(
                dict.fromkeys(data.regulatory_frameworks or [])
            )

        return PatternAssignmentResult(
            facility_types=list(facility_types),
            operational_streams=list(operational_streams),
            compliance_requirements=list(compliance_requirements),
            regulatory_frameworks=list(regulatory_frameworks),
            confidence=total_confidence / len(patterns) if patterns else 0.0,
            applied_patterns=applied,
        )

    def record_applications(self, pattern_ids: Sequence[str]) -> int:
        """Increment application_count for patterns whose suggestions were served.

        Returns the number of rows updated. Failures are logged and leave the
        counters untouched.
        """
        if not pattern_ids:
            return 0
        stmt = (
            update(AssignmentPattern)
            .where(AssignmentPattern.id.in_(list(pattern_ids)))
            .values(application_count=AssignmentPattern.application_count + 1)
        )
        try:
            result = self.db.execute(stmt)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to record pattern applications: %s", e)
            return 0
        return result.rowcount

    # -- Deterministic lookups -----------------------------------------------

    def _find_industry(self, industry: str) -> Optional[Industry]:
        return self.db.scalars(
            select(Industry).where(Industry.code == industry)
        ).first()

    def assign_facility_types(self, industry: str, sectors: Sequence[str]) -> list[str]:
        """Facility type codes associated with the industry, by sort order.

        Sectors are not used to filter; the industry-wide list is returned.
        """
        logger.info(
            "Assigning facility types for industry %s, sectors %s",
            industry,
            ", ".join(sectors),
        )
        try:
            industry_record = self._find_industry(industry)
            if industry_record is None:
                logger.warning("Industry not found: %s", industry)
                return []

            codes = self.db.scalars(
                select(FacilityType.code)
                .join(
                    IndustryFacilityTypeAssociation,
                    IndustryFacilityTypeAssociation.facility_type_id == FacilityType.id,
                )
                .where(
                    IndustryFacilityTypeAssociation.industry_id == industry_record.id,
                    IndustryFacilityTypeAssociation.is_active.is_(True),
                )
                .order_by(IndustryFacilityTypeAssociation.sort_order)
            ).all()
        except SQLAlchemyError as e:
            logger.warning("Error assigning facility types for %s: %s", industry, e)
            return []

        if sectors:
            logger.info(
                "Found %d facility types for industry %s (not filtered by sector)",
                len(codes),
                industry,
            )
        return list(codes)

    def assign_operational_streams(
        self, industry: str, sectors: Sequence[str]
    ) -> list[str]:
        """Operational stream names for the industry, narrowed by sector."""
        logger.info(
            "Assigning operational streams for industry %s, sectors %s",
            industry,
            ", ".join(sectors),
        )
        try:
            industry_record = self._find_industry(industry)
            if industry_record is None:
                logger.warning("Industry not found: %s", industry)
                return []

            associations = self.db.scalars(
                select(IndustryOperationalStream)
                .where(
                    IndustryOperationalStream.industry_id == industry_record.id,
                    IndustryOperationalStream.is_active.is_(True),
                )
                .order_by(IndustryOperationalStream.sort_order)
            ).all()
        except SQLAlchemyError as e:
            logger.warning("Error assigning operational streams for %s: %s", industry, e)
            return []

        streams = [a.stream_name for a in filter_by_sector(associations, sectors)]
        logger.info("Assigned %d operational streams", len(streams))
        return streams

    def assign_compliance_requirements(
        self,
        industry: str,
        sectors: Sequence[str],
        location: Optional[str] = None,
    ) -> ComplianceAssignment:
        """Compliance requirements and regulatory frameworks for the industry.

        Association rows are narrowed by sector like operational streams. When
        a location is given, state-level and federal requirements are added.
        Both lists are deduplicated, keeping first-seen order.
        """
        logger.info(
            "Assigning compliance requirements for industry %s, sectors %s",
            industry,
            ", ".join(sectors),
        )
        try:
            industry_record = self._find_industry(industry)
            if industry_record is None:
                logger.warning("Industry not found: %s", industry)
                return ComplianceAssignment()

            associations = self.db.scalars(
                select(IndustryComplianceFramework)
                .where(
                    IndustryComplianceFramework.industry_id == industry_record.id,
                    IndustryComplianceFramework.is_active.is_(True),
                )
                .order_by(IndustryComplianceFramework.sort_order)
            ).all()
        except SQLAlchemyError as e:
            logger.warning(
                "Error assigning compliance requirements for %s: %s", industry, e
            )
            return ComplianceAssignment()

        filtered = filter_by_sector(associations, sectors)
        compliance = [a.framework_name for a in filtered]
        regulatory = [code for a in filtered for code in (a.regulatory_frameworks or [])]

        if location:
            location_reqs = get_location_specific_requirements(location, industry)
            compliance.extend(location_reqs.compliance)
            regulatory.extend(location_reqs.regulatory)

        result = ComplianceAssignment(
            compliance_requirements=_dedupe(compliance),
            regulatory_frameworks=_dedupe(regulatory),
        )
        logger.info(
            "Assigned %d compliance requirements and %d regulatory frameworks",
            len(result.compliance_requirements),
            len(result.regulatory_frameworks),
        )
        return result
