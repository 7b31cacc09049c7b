"""Business canvas ORM models and their framework links.

The canvas corpus is the input to pattern mining. Each canvas records its
industry code and sector codes directly, plus link rows to the facility
types, operational streams and compliance frameworks chosen for it.
"""

from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizcap.db.base import Base, TimestampMixin
from bizcap.frameworks.models import (
    ComplianceFramework,
    FacilityType,
    OperationalStream,
    RegulatoryFramework,
)


class BusinessCanvas(TimestampMixin, Base):
    """A business model canvas classified by industry, sectors and location."""

    __tablename__ = "business_canvases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    industry: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, index=True
    )
    sectors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    facility_types: Mapped[list["CanvasFacilityType"]] = relationship(
        back_populates="canvas", cascade="all, delete-orphan"
    )
    operational_streams: Mapped[list["CanvasOperationalStream"]] = relationship(
        back_populates="canvas", cascade="all, delete-orphan"
    )
    compliance_frameworks: Mapped[list["CanvasComplianceFramework"]] = relationship(
        back_populates="canvas", cascade="all, delete-orphan"
    )


class CanvasFacilityType(Base):
    """Facility type selected for a canvas."""

    __tablename__ = "canvas_facility_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    canvas_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("business_canvases.id"), nullable=False, index=True
    )
    facility_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("facility_types.id"), nullable=False
    )

    canvas: Mapped[BusinessCanvas] = relationship(back_populates="facility_types")
    facility_type: Mapped[FacilityType] = relationship()


class CanvasOperationalStream(Base):
    """Operational stream selected for a canvas."""

    __tablename__ = "canvas_operational_streams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    canvas_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("business_canvases.id"), nullable=False, index=True
    )
    operational_stream_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("operational_streams.id"), nullable=False
    )

    canvas: Mapped[BusinessCanvas] = relationship(
        back_populates="operational_streams"
    )
    operational_stream: Mapped[OperationalStream] = relationship()


class CanvasComplianceFramework(Base):
    """Compliance framework selected for a canvas, with an optional regulator."""

    __tablename__ = "canvas_compliance_frameworks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    canvas_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("business_canvases.id"), nullable=False, index=True
    )
    compliance_framework_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("compliance_frameworks.id"), nullable=False
    )
    regulatory_framework_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("regulatory_frameworks.id"), nullable=True
    )

    canvas: Mapped[BusinessCanvas] = relationship(
        back_populates="compliance_frameworks"
    )
    compliance_framework: Mapped[ComplianceFramework] = relationship()
    regulatory_framework: Mapped[Optional[RegulatoryFramework]] = relationship()
