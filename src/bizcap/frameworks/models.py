"""Reference framework ORM models: industries, sectors, and their associations.

These tables are maintained by administrators and only read by the pattern
core. Association rows carry is_active and sort_order; readers filter on
is_active and order by sort_order.
"""

from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizcap.db.base import Base, TimestampMixin


class Industry(TimestampMixin, Base):
    """Top-level industry classification (e.g. MINING_METALS)."""

    __tablename__ = "industries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    sectors: Mapped[list["Sector"]] = relationship(back_populates="industry")


class Sector(TimestampMixin, Base):
    """Sector within an industry (e.g. COPPER under MINING_METALS)."""

    __tablename__ = "sectors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    industry_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("industries.id"), nullable=True, index=True
    )

    industry: Mapped[Optional[Industry]] = relationship(back_populates="sectors")


class FacilityType(TimestampMixin, Base):
    """Physical facility category (e.g. OPEN_PIT_MINE)."""

    __tablename__ = "facility_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class OperationalStream(TimestampMixin, Base):
    """Operational value stream (e.g. EXTRACTION, PROCESSING)."""

    __tablename__ = "operational_streams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class ComplianceFramework(TimestampMixin, Base):
    """Compliance requirement a business must satisfy."""

    __tablename__ = "compliance_frameworks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class RegulatoryFramework(TimestampMixin, Base):
    """Regulatory or standards framework (e.g. ISO_14001)."""

    __tablename__ = "regulatory_frameworks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class IndustryFacilityTypeAssociation(TimestampMixin, Base):
    """Industry-level link to a facility type. No sector granularity."""

    __tablename__ = "industry_facility_type_associations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    industry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("industries.id"), nullable=False, index=True
    )
    facility_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("facility_types.id"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    industry: Mapped[Industry] = relationship()
    facility_type: Mapped[FacilityType] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "industry_id", "facility_type_id", name="uq_industry_facility_type"
        ),
    )


class IndustryOperationalStream(TimestampMixin, Base):
    """Operational stream suggested for an industry, optionally per sector.

    sector is a sector code; NULL or empty means the row applies to every
    sector of the industry.
    """

    __tablename__ = "industry_operational_streams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    industry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("industries.id"), nullable=False, index=True
    )
    stream_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sector: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class IndustryComplianceFramework(TimestampMixin, Base):
    """Compliance framework suggested for an industry, optionally per sector.

    regulatory_frameworks holds the codes of regulatory frameworks linked to
    this compliance requirement (may be empty).
    """

    __tablename__ = "industry_compliance_frameworks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    industry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("industries.id"), nullable=False, index=True
    )
    framework_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sector: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    regulatory_frameworks: Mapped[list] = mapped_column(
        JSON, default=list, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
