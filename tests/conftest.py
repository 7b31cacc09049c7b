"""Test fixtures for Bizcap integration tests.

Uses a temporary SQLite file so queries, JSON columns and upserts run
against a real database, matching the production engine pattern.
"""

import os
import tempfile
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session

from bizcap.db.base import Base
from bizcap.canvas.models import (  # noqa: F401 -- ensure models registered
    BusinessCanvas,
    CanvasComplianceFramework,
    CanvasFacilityType,
    CanvasOperationalStream,
)
from bizcap.frameworks.models import (  # noqa: F401 -- ensure models registered
    ComplianceFramework,
    FacilityType,
    Industry,
    IndustryComplianceFramework,
    IndustryFacilityTypeAssociation,
    IndustryOperationalStream,
    OperationalStream,
    RegulatoryFramework,
    Sector,
)
from bizcap.patterns.models import AssignmentPattern  # noqa: F401


@pytest.fixture(scope="session")
def test_engine():
    """Create a SQLite test database engine on a temp file.

    Creates all tables via Base.metadata.create_all.
    """
    tmpfile = tempfile.NamedTemporaryFile(
        suffix=".db", delete=False, prefix="bizcap_test_"
    )
    db_path = tmpfile.name
    tmpfile.close()

    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def set_pragmas(dbapi_conn, conn_rec):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def db_session(test_engine):
    """Create a database session for each test.

    Rolls back all changes after each test to maintain isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def catalog(db_session):
    """Reference data for a mining and an oil & gas industry.

    MINING_METALS has three active facility types and one inactive one,
    sector-scoped and sector-agnostic streams, and compliance rows with
    linked regulatory frameworks. OIL_GAS has facility associations only.
    """
    mining = Industry(code="MINING_METALS", name="Mining & Metals")
    oil = Industry(code="OIL_GAS", name="Oil & Gas")
    db_session.add_all([mining, oil])
    db_session.flush()

    db_session.add_all(
        [
            Sector(code="COPPER", name="Copper", industry_id=mining.id),
            Sector(code="GOLD", name="Gold", industry_id=mining.id),
            Sector(code="OFFSHORE", name="Offshore", industry_id=oil.id),
        ]
    )

    facility = {
        code: FacilityType(code=code, name=code.replace("_", " ").title())
        for code in (
            "OPEN_PIT_MINE",
            "UNDERGROUND_MINE",
            "PROCESSING_PLANT",
            "TAILINGS_FACILITY",
            "OFFSHORE_PLATFORM",
        )
    }
    stream = {
        code: OperationalStream(code=code, name=code.title())
        for code in ("EXTRACTION", "PROCESSING", "LOGISTICS")
    }
    compliance = {
        code: ComplianceFramework(code=code, name=code.title())
        for code in ("MINE_SAFETY_ACT", "ENVIRONMENTAL_LICENCE")
    }
    regulatory = {
        code: RegulatoryFramework(code=code, name=code.title())
        for code in ("ISO_14001", "ICMM_FRAMEWORK")
    }
    db_session.add_all(
        [*facility.values(), *stream.values(), *compliance.values(), *regulatory.values()]
    )
    db_session.flush()

    db_session.add_all(
        [
            IndustryFacilityTypeAssociation(
                industry_id=mining.id,
                facility_type_id=facility["PROCESSING_PLANT"].id,
                sort_order=2,
            ),
            IndustryFacilityTypeAssociation(
                industry_id=mining.id,
                facility_type_id=facility["OPEN_PIT_MINE"].id,
                sort_order=0,
            ),
            IndustryFacilityTypeAssociation(
                industry_id=mining.id,
                facility_type_id=facility["UNDERGROUND_MINE"].id,
                sort_order=1,
            ),
            IndustryFacilityTypeAssociation(
                industry_id=mining.id,
                facility_type_id=facility["TAILINGS_FACILITY"].id,
                sort_order=3,
                is_active=False,
            ),
            IndustryFacilityTypeAssociation(
                industry_id=oil.id,
                facility_type_id=facility["OFFSHORE_PLATFORM"].id,
                sort_order=0,
            ),
            IndustryOperationalStream(
                industry_id=mining.id, stream_name="Exploration", sector=None, sort_order=0
            ),
            IndustryOperationalStream(
                industry_id=mining.id, stream_name="Copper Smelting", sector="COPPER", sort_order=1
            ),
            IndustryOperationalStream(
                industry_id=mining.id, stream_name="Gold Refining", sector="GOLD", sort_order=2
            ),
            IndustryOperationalStream(
                industry_id=mining.id,
                stream_name="Retired Stream",
                sector=None,
                sort_order=3,
                is_active=False,
            ),
            IndustryComplianceFramework(
                industry_id=mining.id,
                framework_name="MINE_SAFETY_ACT",
                sector=None,
                regulatory_frameworks=["ISO_45001"],
                sort_order=0,
            ),
            IndustryComplianceFramework(
                industry_id=mining.id,
                framework_name="COPPER_EXPORT_CONTROLS",
                sector="COPPER",
                regulatory_frameworks=[],
                sort_order=1,
            ),
        ]
    )
    db_session.flush()

    return SimpleNamespace(
        mining=mining,
        oil=oil,
        facility=facility,
        stream=stream,
        compliance=compliance,
        regulatory=regulatory,
    )


@pytest.fixture
def make_canvas(db_session):
    """Factory creating a BusinessCanvas with its framework links."""

    def _make(
        industry,
        sectors,
        facility_types=(),
        streams=(),
        compliance=(),
        name="Canvas",
        is_active=True,
        location=None,
    ):
        canvas = BusinessCanvas(
            name=name,
            industry=industry,
            sectors=list(sectors),
            location=location,
            is_active=is_active,
        )
        for facility_type in facility_types:
            canvas.facility_types.append(CanvasFacilityType(facility_type=facility_type))
        for stream in streams:
            canvas.operational_streams.append(
                CanvasOperationalStream(operational_stream=stream)
            )
        for framework, regulator in compliance:
            canvas.compliance_frameworks.append(
                CanvasComplianceFramework(
                    compliance_framework=framework,
                    regulatory_framework=regulator,
                )
            )
        db_session.add(canvas)
        db_session.flush()
        return canvas

    return _make


@pytest.fixture
def make_pattern(db_session):
    """Factory persisting an AssignmentPattern row directly."""

    def _make(
        pattern_id,
        industry_code="MINING_METALS",
        sector_codes=(),
        pattern_type="facility",
        assignment_data=None,
        confidence_score=0.5,
        source_sample_size=1,
        application_count=0,
    ):
        pattern = AssignmentPattern(
            id=pattern_id,
            pattern_type=pattern_type,
            industry_code=industry_code,
            sector_codes=list(sector_codes),
            assignment_data=assignment_data or {"facility_types": ["OPEN_PIT_MINE"]},
            confidence_score=confidence_score,
            source_sample_size=source_sample_size,
            application_count=application_count,
            success_rate=0.8,
        )
        db_session.add(pattern)
        db_session.flush()
        return pattern

    return _make
