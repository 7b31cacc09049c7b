"""AssignmentPattern ORM model for mined co-occurrence rules.

One row per (pattern type, industry, sector group) produced by the analyzer.
Identifying columns (pattern_type, industry_code, sector_codes) are written
once on insert; re-runs only refresh the statistics and assignment_data.
"""

from typing import Optional

from sqlalchemy import JSON, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bizcap.db.base import Base, TimestampMixin

PATTERN_TYPES = ("facility", "operational", "compliance", "regulatory")


class AssignmentPattern(TimestampMixin, Base):
    """Mined assignment pattern with confidence and usage statistics.

    source_sample_size is the number of canvases the pattern was mined from.
    application_count is the number of times its suggestions were served.
    """

    __tablename__ = "assignment_patterns"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    pattern_type: Mapped[str] = mapped_column(String(20), nullable=False)
    industry_code: Mapped[str] = mapped_column(String(100), nullable=False)
    sector_codes: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    location_patterns: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    assignment_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    confidence_score: Mapped[float] = mapped_column(
        Float, default=0.0, nullable=False
    )
    source_sample_size: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    application_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    success_rate: Mapped[float] = mapped_column(Float, default=0.8, nullable=False)

    __table_args__ = (
        Index("ix_assignment_patterns_industry_type", "industry_code", "pattern_type"),
    )
