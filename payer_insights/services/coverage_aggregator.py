"""
Coverage aggregation across insurers.

Every function here is a pure derivation over records and metadata passed in
by the caller. Unknown filter values never raise; they produce empty or
all-zero results.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from payer_insights.core.coverage_model import (
    BrandCoverageEntry,
    BreakdownRow,
    CoverageFilters,
    FilterOptions,
    InsurerAggregate,
    InsurerDrugStats,
    InsurerMetadata,
    InsurerSummary,
    NormalizedRecord,
)


logger = logging.getLogger(__name__)

POLICY_DATE_FIELDS = (
    "policy_revised_date",
    "policy_effective_date",
    "policy_approved_date",
    "published_date",
    "last_review_date",
)
TOP_BRAND_LIMIT = 10


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    """Distinct non-empty values in first-seen order."""
    return tuple(dict.fromkeys(value for value in values if value))


def _unique_codes(records: Iterable[NormalizedRecord]) -> Tuple[str, ...]:
    return _unique(code for record in records for code in record.hcpcs_codes)


def filter_records(
    records: Sequence[NormalizedRecord],
    filters: Optional[CoverageFilters] = None,
) -> List[NormalizedRecord]:
    """Return the records matching every supplied filter, in input order."""
    if filters is None:
        return list(records)
    return [record for record in records if filters.matches(record)]


def group_by_insurer(records: Iterable[NormalizedRecord]) -> Dict[str, List[NormalizedRecord]]:
    grouped: Dict[str, List[NormalizedRecord]] = {}
    for record in records:
        grouped.setdefault(record.insurer, []).append(record)
    return grouped


def aggregate(
    records: Sequence[NormalizedRecord],
    metadata: Sequence[InsurerMetadata],
    filters: Optional[CoverageFilters] = None,
) -> List[InsurerAggregate]:
    """
    Build one summary row per insurer of the metadata table.

    Args:
        records: Normalized coverage records.
        metadata: Static insurer table; defines which rows appear and in what
            order.
        filters: Optional indication/brand/HCPCS filters, applied before
            grouping.

    Returns:
        One InsurerAggregate per metadata entry. Insurers without matching
        records are reported with zero counts rather than omitted.
    """
    by_insurer = group_by_insurer(filter_records(records, filters))

    aggregates: List[InsurerAggregate] = []
    for meta in metadata:
        insurer_records = by_insurer.get(meta.insurer, [])
        aggregates.append(
            InsurerAggregate(
                insurer=meta.insurer,
                short_name=meta.short_name,
                approx_covered_lives=meta.approx_covered_lives,
                percentage_us_population=meta.percentage_us_population,
                notes=meta.notes,
                numeric_lives=meta.numeric_lives,
                numeric_percentage=meta.numeric_percentage,
                drug_count=len(insurer_records),
                unique_brands=_unique(r.brand_name for r in insurer_records),
                unique_indications=_unique(r.indication for r in insurer_records),
                unique_hcpcs_codes=_unique_codes(insurer_records),
            )
        )
    return aggregates


def get_filter_options(records: Sequence[NormalizedRecord]) -> FilterOptions:
    """Sorted distinct values for the indication, brand and HCPCS dropdowns."""
    return FilterOptions(
        indications=sorted(_unique(r.indication for r in records)),
        brands=sorted(_unique(r.brand_name for r in records)),
        hcpcs_codes=sorted(_unique_codes(records)),
    )


def _breakdown(records: Iterable[NormalizedRecord], key) -> List[BreakdownRow]:
    counts: Dict[str, List[int]] = {}
    for record in records:
        name = key(record)
        bucket = counts.setdefault(name, [0, 0])
        bucket[0] += 1
        if record.prior_authorization_required:
            bucket[1] += 1

    rows = [BreakdownRow(name=name, count=c, with_prior_auth=pa) for name, (c, pa) in counts.items()]
    rows.sort(key=lambda row: (-row.count, row.name))
    return rows


def get_insurer_drug_stats(
    records: Sequence[NormalizedRecord],
    insurer: str,
    filters: Optional[CoverageFilters] = None,
) -> InsurerDrugStats:
    """
    Detailed prior-auth and step-therapy statistics for one insurer.

    Args:
        records: Normalized coverage records for all insurers.
        insurer: Exact insurer name.
        filters: Optional filters applied to that insurer's records.
    """
    insurer_records = [r for r in filter_records(records, filters) if r.insurer == insurer]
    total = len(insurer_records)
    prior_auth = sum(1 for r in insurer_records if r.prior_authorization_required)
    step_therapy = sum(1 for r in insurer_records if r.step_therapy_required)

    return InsurerDrugStats(
        insurer=insurer,
        total_drugs=total,
        prior_auth_required=prior_auth,
        prior_auth_percentage=(prior_auth / total) * 100 if total else 0.0,
        step_therapy_required=step_therapy,
        unique_brands=_unique(r.brand_name for r in insurer_records),
        unique_indications=_unique(r.indication for r in insurer_records),
        unique_hcpcs_codes=_unique_codes(insurer_records),
        by_indication=tuple(_breakdown(insurer_records, lambda r: r.indication)),
        top_brands=tuple(_breakdown(insurer_records, lambda r: r.brand_name)[:TOP_BRAND_LIMIT]),
    )


def _latest_policy_date(records: Iterable[NormalizedRecord]) -> Optional[date]:
    latest: Optional[date] = None
    for record in records:
        for field_name in POLICY_DATE_FIELDS:
            value = record.extra.get(field_name)
            if not value:
                continue
            try:
                parsed = date.fromisoformat(str(value).strip()[:10])
            except ValueError:
                logger.warning(
                    "Ignoring unparseable %s %r for %s", field_name, value, record.brand_name
                )
                continue
            if latest is None or parsed > latest:
                latest = parsed
    return latest


def summarize_insurer(records: Sequence[NormalizedRecord], insurer: str) -> InsurerSummary:
    """Headline counts and last policy update date for one insurer."""
    insurer_records = [r for r in records if r.insurer == insurer]
    latest = _latest_policy_date(insurer_records)

    return InsurerSummary(
        insurer=insurer,
        total_brands=len(_unique(r.brand_name for r in insurer_records)),
        total_indications=len(_unique(r.indication for r in insurer_records)),
        prior_auth_required=sum(1 for r in insurer_records if r.prior_authorization_required),
        step_therapy_required=sum(1 for r in insurer_records if r.step_therapy_required),
        unique_hcpcs=len(_unique_codes(insurer_records)),
        last_updated=latest.isoformat() if latest else "Unknown",
    )


def compare_brand_across_insurers(
    records: Sequence[NormalizedRecord],
    brand: str,
    metadata: Sequence[InsurerMetadata],
) -> List[BrandCoverageEntry]:
    """
    Side-by-side coverage of one brand for every insurer in the metadata table.

    The brand name is matched case-insensitively and exactly.
    """
    wanted = (brand or "").strip().lower()
    by_insurer = group_by_insurer(r for r in records if r.brand_name.strip().lower() == wanted)

    entries: List[BrandCoverageEntry] = []
    for meta in metadata:
        matches = by_insurer.get(meta.insurer, [])
        if not matches:
            entries.append(BrandCoverageEntry(insurer=meta.insurer, covered=False))
            continue

        step_flags = [r.step_therapy_required for r in matches if r.step_therapy_required is not None]
        entries.append(
            BrandCoverageEntry(
                insurer=meta.insurer,
                covered=True,
                indications=_unique(r.indication for r in matches),
                hcpcs_codes=_unique_codes(matches),
                prior_authorization_required=any(r.prior_authorization_required for r in matches),
                step_therapy_required=any(step_flags) if step_flags else None,
            )
        )
    return entries


__all__ = [
    "POLICY_DATE_FIELDS",
    "aggregate",
    "compare_brand_across_insurers",
    "filter_records",
    "get_filter_options",
    "get_insurer_drug_stats",
    "group_by_insurer",
    "summarize_insurer",
]
