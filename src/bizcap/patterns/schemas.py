"""Pydantic schemas for pattern mining and assignment.

MinedPattern is the transient form the analyzer produces and save_patterns
persists. PatternAssignmentResult is what the engine hands back to callers.
The *Request / *Response models are the REST payloads.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PatternType = Literal["facility", "operational", "compliance", "regulatory"]


class LocationPattern(BaseModel):
    """Optional structured location constraint on a pattern."""

    state: Optional[str] = None
    region: Optional[str] = None
    jurisdiction: Optional[str] = None
    coordinates: Optional[str] = None


class AssignmentData(BaseModel):
    """Values a pattern predicts, keyed by assignment dimension."""

    facility_types: Optional[list[str]] = None
    operational_streams: Optional[list[str]] = None
    compliance_requirements: Optional[list[str]] = None
    regulatory_frameworks: Optional[list[str]] = None

    def is_empty(self) -> bool:
        """True when no dimension carries a value."""
        return not any(
            (
                self.facility_types,
                self.operational_streams,
                self.compliance_requirements,
                self.regulatory_frameworks,
            )
        )


class MinedPattern(BaseModel):
    """An assignment pattern before (or after) persistence."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    pattern_type: PatternType
    industry_code: str
    sector_codes: list[str] = Field(default_factory=list)
    location_patterns: Optional[LocationPattern] = None
    assignment_data: AssignmentData
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    source_sample_size: int = Field(default=0, ge=0)
    application_count: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.8, ge=0.0, le=1.0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AnalysisStatistics(BaseModel):
    """Summary numbers for one analyzer run."""

    total_canvases: int
    patterns_generated: int
    average_confidence: float


class PatternAnalysisResult(BaseModel):
    """Patterns produced by an analyzer run plus run statistics."""

    patterns: list[MinedPattern]
    statistics: AnalysisStatistics


class PatternAssignmentResult(BaseModel):
    """Merged suggestions from all matching stored patterns."""

    facility_types: list[str] = Field(default_factory=list)
    operational_streams: list[str] = Field(default_factory=list)
    compliance_requirements: list[str] = Field(default_factory=list)
    regulatory_frameworks: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    applied_patterns: list[str] = Field(default_factory=list)


class ComplianceAssignment(BaseModel):
    """Result of the deterministic compliance lookup."""

    compliance_requirements: list[str] = Field(default_factory=list)
    regulatory_frameworks: list[str] = Field(default_factory=list)


class PatternAssignRequest(BaseModel):
    """Request body for a pattern assignment."""

    industry: str = Field(..., min_length=1)
    sectors: list[str] = Field(..., min_length=1)
    location: Optional[str] = None
    business_size: Optional[Literal["SMALL", "MEDIUM", "LARGE"]] = None
    risk_profile: Optional[str] = None


class PatternAssignResponse(PatternAssignmentResult):
    """Pattern suggestions merged with the deterministic lookups."""

    assignment_method: str = "pattern_engine"
    timestamp: datetime


class PatternCounts(BaseModel):
    """Pattern counts for one industry within an analyzer run."""

    total: int
    industry_specific: int
    facility_patterns: int
    average_confidence: float


class PatternAnalysisSummary(BaseModel):
    """Per-industry view of an in-memory analyzer run."""

    industry: str
    sectors: list[str]
    location: Optional[str] = None
    patterns: PatternCounts
    pattern_details: dict[str, list[MinedPattern]]
    statistics: AnalysisStatistics


class PatternRefreshResponse(BaseModel):
    """Outcome of a persisted pattern refresh."""

    saved: int
    statistics: AnalysisStatistics
