"""
Core domain models for drug coverage records and per-insurer aggregates.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_numeric_text(text: Optional[str]) -> float:
    """
    Parse a number embedded in free text such as ``"50 million"`` or ``"15%"``.

    Every character that is not a digit or a decimal point is stripped before
    parsing. Text without digits gives 0.0.
    """
    if not text:
        return 0.0
    cleaned = _NON_NUMERIC.sub("", str(text))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


@dataclass(frozen=True)
class NormalizedRecord:
    """
    One drug coverage policy row after field-name resolution.

    ``extra`` carries the opaque free-text fields (clinical criteria, policy
    dates, links) unmodified.
    """

    brand_name: str
    indication: str
    insurer: str
    indicated_population: str = ""
    hcpcs_codes: Tuple[str, ...] = ()
    prior_authorization_required: bool = False
    step_therapy_required: Optional[bool] = None
    raw_hcpcs: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class InsurerMetadata:
    """Static insurer facts from the coverage table."""

    insurer: str
    approx_covered_lives: str = ""
    percentage_us_population: str = ""
    notes: str = ""

    @property
    def numeric_lives(self) -> float:
        return parse_numeric_text(self.approx_covered_lives)

    @property
    def numeric_percentage(self) -> float:
        return parse_numeric_text(self.percentage_us_population)

    @property
    def short_name(self) -> str:
        return self.insurer.split(" ")[0]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "InsurerMetadata":
        insurer = str(data.get("insurer") or "").strip()
        if not insurer:
            raise ValueError("insurer metadata entry has no insurer name")
        return cls(
            insurer=insurer,
            approx_covered_lives=str(data.get("approx_covered_lives") or ""),
            percentage_us_population=str(data.get("percentage_us_population") or ""),
            notes=str(data.get("notes") or ""),
        )


@dataclass(frozen=True)
class CoverageFilters:
    """
    Active filters. Empty or missing values match everything.
    """

    indication: Optional[str] = None
    brand: Optional[str] = None
    hcpcs_code: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "CoverageFilters":
        data = data or {}
        return cls(
            indication=data.get("indication") or None,
            brand=data.get("brand") or None,
            hcpcs_code=data.get("hcpcs_code") or data.get("hcpcsCode") or None,
        )

    def matches(self, record: NormalizedRecord) -> bool:
        """Conjunctive match of every supplied filter against one record."""
        if self.indication and self.indication.lower() not in record.indication.lower():
            return False
        if self.brand and self.brand.lower() not in record.brand_name.lower():
            return False
        if self.hcpcs_code and self.hcpcs_code.strip().upper() not in record.hcpcs_codes:
            return False
        return True


@dataclass(frozen=True)
class InsurerAggregate:
    """Per-insurer summary row: static metadata plus filtered record counts."""

    insurer: str
    short_name: str
    approx_covered_lives: str
    percentage_us_population: str
    notes: str
    numeric_lives: float
    numeric_percentage: float
    drug_count: int = 0
    unique_brands: Tuple[str, ...] = ()
    unique_indications: Tuple[str, ...] = ()
    unique_hcpcs_codes: Tuple[str, ...] = ()

    @property
    def unique_brand_count(self) -> int:
        return len(self.unique_brands)

    @property
    def unique_indication_count(self) -> int:
        return len(self.unique_indications)

    @property
    def unique_hcpcs_count(self) -> int:
        return len(self.unique_hcpcs_codes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "insurer": self.insurer,
            "short_name": self.short_name,
            "approx_covered_lives": self.approx_covered_lives,
            "percentage_us_population": self.percentage_us_population,
            "notes": self.notes,
            "numeric_lives": self.numeric_lives,
            "numeric_percentage": self.numeric_percentage,
            "drug_count": self.drug_count,
            "unique_brand_count": self.unique_brand_count,
            "unique_indication_count": self.unique_indication_count,
            "unique_hcpcs_count": self.unique_hcpcs_count,
            "unique_brands": list(self.unique_brands),
            "unique_indications": list(self.unique_indications),
            "unique_hcpcs_codes": list(self.unique_hcpcs_codes),
        }


@dataclass(frozen=True)
class BreakdownRow:
    name: str
    count: int = 0
    with_prior_auth: int = 0


@dataclass(frozen=True)
class InsurerDrugStats:
    insurer: str
    total_drugs: int
    prior_auth_required: int
    prior_auth_percentage: float
    step_therapy_required: int
    unique_brands: Tuple[str, ...] = ()
    unique_indications: Tuple[str, ...] = ()
    unique_hcpcs_codes: Tuple[str, ...] = ()
    by_indication: Tuple[BreakdownRow, ...] = ()
    top_brands: Tuple[BreakdownRow, ...] = ()


@dataclass(frozen=True)
class InsurerSummary:
    insurer: str
    total_brands: int
    total_indications: int
    prior_auth_required: int
    step_therapy_required: int
    unique_hcpcs: int
    last_updated: str


@dataclass(frozen=True)
class FilterOptions:
    indications: List[str] = field(default_factory=list)
    brands: List[str] = field(default_factory=list)
    hcpcs_codes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class BrandCoverageEntry:
    """Coverage of one brand at one insurer."""

    insurer: str
    covered: bool
    indications: Tuple[str, ...] = ()
    hcpcs_codes: Tuple[str, ...] = ()
    prior_authorization_required: bool = False
    step_therapy_required: Optional[bool] = None


__all__ = [
    "BrandCoverageEntry",
    "BreakdownRow",
    "CoverageFilters",
    "FilterOptions",
    "InsurerAggregate",
    "InsurerDrugStats",
    "InsurerMetadata",
    "InsurerSummary",
    "NormalizedRecord",
    "parse_numeric_text",
]
