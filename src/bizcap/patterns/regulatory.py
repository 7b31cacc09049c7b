"""Static location and industry regulatory requirement tables.

Pure lookups used by the compliance assignment: a free-text location is
reduced to an Australian state or territory, which selects state-level
requirements; every lookup also carries the federal baseline plus any
industry-specific federal requirements.

Every function here is total: unknown states and industries yield empty
additions, never errors.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional


class RequirementSet(NamedTuple):
    """Compliance requirement codes paired with regulatory framework codes."""

    compliance: list[str]
    regulatory: list[str]


# Checked in order; first match wins
STATE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("NSW", re.compile(r"\b(NSW|New South Wales)\b", re.IGNORECASE)),
    ("VIC", re.compile(r"\b(VIC|Victoria)\b", re.IGNORECASE)),
    ("QLD", re.compile(r"\b(QLD|Queensland)\b", re.IGNORECASE)),
    ("WA", re.compile(r"\b(WA|Western Australia)\b", re.IGNORECASE)),
    ("SA", re.compile(r"\b(SA|South Australia)\b", re.IGNORECASE)),
    ("TAS", re.compile(r"\b(TAS|Tasmania)\b", re.IGNORECASE)),
    ("NT", re.compile(r"\b(NT|Northern Territory)\b", re.IGNORECASE)),
    ("ACT", re.compile(r"\b(ACT|Australian Capital Territory)\b", re.IGNORECASE)),
]

STATE_REQUIREMENTS: dict[str, RequirementSet] = {
    "NSW": RequirementSet(
        ["NSW_WHS_ACT_2011", "NSW_ENVIRONMENTAL_PROTECTION_ACT"],
        ["NSW_EPA_FRAMEWORK"],
    ),
    "VIC": RequirementSet(
        ["VIC_OHSA_2004", "VIC_ENVIRONMENTAL_PROTECTION_ACT"],
        ["VIC_EPA_FRAMEWORK"],
    ),
    "QLD": RequirementSet(
        ["QLD_WHS_ACT_2011", "QLD_ENVIRONMENTAL_PROTECTION_ACT"],
        ["QLD_EPA_FRAMEWORK"],
    ),
    "WA": RequirementSet(
        ["WA_WHS_ACT_2020", "WA_ENVIRONMENTAL_PROTECTION_ACT"],
        ["WA_EPA_FRAMEWORK"],
    ),
    "SA": RequirementSet(
        ["SA_WHS_ACT_2012", "SA_ENVIRONMENTAL_PROTECTION_ACT"],
        ["SA_EPA_FRAMEWORK"],
    ),
    "TAS": RequirementSet(
        ["TAS_WHS_ACT_2012", "TAS_ENVIRONMENTAL_PROTECTION_ACT"],
        ["TAS_EPA_FRAMEWORK"],
    ),
    "NT": RequirementSet(
        ["NT_WHS_ACT_2011", "NT_ENVIRONMENTAL_PROTECTION_ACT"],
        ["NT_EPA_FRAMEWORK"],
    ),
    "ACT": RequirementSet(
        ["ACT_WHS_ACT_2011", "ACT_ENVIRONMENTAL_PROTECTION_ACT"],
        ["ACT_EPA_FRAMEWORK"],
    ),
}

FEDERAL_BASELINE = RequirementSet(
    ["WHS_ACT_2011", "ENVIRONMENTAL_PROTECTION_ACT"],
    ["ISO_14001", "ISO_45001"],
)

INDUSTRY_FEDERAL_REQUIREMENTS: dict[str, RequirementSet] = {
    "MINING_METALS": RequirementSet(
        ["MINERALS_RESOURCE_RENT_TAX_ACT", "PETROLEUM_RESOURCE_RENT_TAX_ACT"],
        ["ICMM_FRAMEWORK", "GLOBAL_REPORTING_INITIATIVE"],
    ),
    "OIL_GAS": RequirementSet(
        ["PETROLEUM_ACT", "OFFSHORE_PETROLEUM_ACT"],
        ["ISO_14001", "ICMM_FRAMEWORK"],
    ),
    "CHEMICALS": RequirementSet(
        ["CHEMICAL_ACT", "HAZARDOUS_WASTE_ACT"],
        ["RESPONSIBLE_CARE", "ISO_14001"],
    ),
}


def extract_state_from_location(location: str) -> Optional[str]:
    """Return the state/territory abbreviation mentioned in a location string.

    Matches whole words, case-insensitively, against either the abbreviation
    or the full name. "Perth, Western Australia" and "perth wa" both give "WA".
    """
    for abbreviation, pattern in STATE_PATTERNS:
        if pattern.search(location):
            return abbreviation
    return None


def get_state_specific_requirements(state: str) -> RequirementSet:
    """State-level requirements for an abbreviation; empty when unknown."""
    found = STATE_REQUIREMENTS.get(state.upper())
    if found is None:
        return RequirementSet([], [])
    return RequirementSet(list(found.compliance), list(found.regulatory))


def get_federal_requirements(industry: str) -> RequirementSet:
    """Federal baseline plus industry-specific federal requirements."""
    specific = INDUSTRY_FEDERAL_REQUIREMENTS.get(industry, RequirementSet([], []))
    return RequirementSet(
        FEDERAL_BASELINE.compliance + specific.compliance,
        FEDERAL_BASELINE.regulatory + specific.regulatory,
    )


def get_location_specific_requirements(location: str, industry: str) -> RequirementSet:
    """State requirements for the location (if any) followed by federal ones.

    Lists may contain duplicates; callers deduplicate after merging with
    their other sources.
    """
    compliance: list[str] = []
    regulatory: list[str] = []

    state = extract_state_from_location(location)
    if state:
        state_reqs = get_state_specific_requirements(state)
        compliance.extend(state_reqs.compliance)
        regulatory.extend(state_reqs.regulatory)

    federal = get_federal_requirements(industry)
    compliance.extend(federal.compliance)
    regulatory.extend(federal.regulatory)

    return RequirementSet(compliance, regulatory)
