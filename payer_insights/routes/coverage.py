"""
API routes for insurer coverage aggregates, drug statistics and HCPCS helpers.
"""
import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from payer_insights.core.coverage_model import CoverageFilters
from payer_insights.core.dataset import CoverageDataset
from payer_insights.core.hcpcs import (
    create_hcpcs_display_text,
    extract_hcpcs_codes,
    format_hcpcs_codes_for_badges,
    parse_hcpcs_input,
)
from payer_insights.schemas.coverage_schema import (
    BrandCoverageResponse,
    FilterOptionsResponse,
    HCPCSExtractRequest,
    HCPCSExtractResponse,
    InsurerAggregateResponse,
    InsurerDrugStatsResponse,
    InsurerSummaryResponse,
)
from payer_insights.services.coverage_aggregator import (
    aggregate,
    compare_brand_across_insurers,
    get_filter_options,
    get_insurer_drug_stats,
    summarize_insurer,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/coverage", tags=["coverage"])


def get_dataset(request: Request) -> CoverageDataset:
    """
    Dependency returning the dataset loaded at startup.

    Responds 503 with the load failure notice when loading failed.
    """
    dataset = getattr(request.app.state, "dataset", None)
    if dataset is None:
        notice = getattr(request.app.state, "load_error", None) or "Coverage data is not loaded"
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Coverage data unavailable: {notice}",
        )
    return dataset


def get_filters(
    indication: Optional[str] = Query(None, description="Case-insensitive substring of the indication"),
    brand: Optional[str] = Query(None, description="Case-insensitive substring of the brand name"),
    hcpcs_code: Optional[str] = Query(None, description="Exact HCPCS code, any case"),
) -> CoverageFilters:
    return CoverageFilters(
        indication=indication or None,
        brand=brand or None,
        hcpcs_code=hcpcs_code or None,
    )


def _require_insurer(dataset: CoverageDataset, insurer: str) -> None:
    if dataset.get_insurer(insurer) is None:
        logger.warning("Unknown insurer requested: %s", insurer)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Insurer {insurer} not found",
        )


@router.get("/insurers", response_model=List[InsurerAggregateResponse])
def list_insurer_aggregates(
    filters: CoverageFilters = Depends(get_filters),
    dataset: CoverageDataset = Depends(get_dataset),
) -> List[InsurerAggregateResponse]:
    """
    One coverage summary per insurer, after applying the filters.

    Insurers without matching records are included with zero counts.
    """
    try:
        rows = aggregate(dataset.records, dataset.insurers, filters)
    except Exception as exc:
        logger.exception("Unexpected error while aggregating coverage", extra={"filters": asdict(filters)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to aggregate coverage data",
        ) from exc
    return [InsurerAggregateResponse(**row.to_dict()) for row in rows]


@router.get("/insurers/{insurer}/stats", response_model=InsurerDrugStatsResponse)
def get_insurer_stats(
    insurer: str,
    filters: CoverageFilters = Depends(get_filters),
    dataset: CoverageDataset = Depends(get_dataset),
) -> InsurerDrugStatsResponse:
    """
    Prior authorization, step therapy and breakdown statistics for one insurer.
    """
    _require_insurer(dataset, insurer)
    stats = get_insurer_drug_stats(dataset.records, insurer, filters)
    return InsurerDrugStatsResponse(**asdict(stats))


@router.get("/insurers/{insurer}/summary", response_model=InsurerSummaryResponse)
def get_insurer_summary(
    insurer: str,
    dataset: CoverageDataset = Depends(get_dataset),
) -> InsurerSummaryResponse:
    _require_insurer(dataset, insurer)
    return InsurerSummaryResponse(**asdict(summarize_insurer(dataset.records, insurer)))


@router.get("/brands/{brand}/compare", response_model=List[BrandCoverageResponse])
def compare_brand(
    brand: str,
    dataset: CoverageDataset = Depends(get_dataset),
) -> List[BrandCoverageResponse]:
    """
    Compare one brand's coverage policy across every insurer.
    """
    entries = compare_brand_across_insurers(dataset.records, brand, dataset.insurers)
    return [BrandCoverageResponse(**asdict(entry)) for entry in entries]


@router.get("/filters", response_model=FilterOptionsResponse)
def list_filter_options(dataset: CoverageDataset = Depends(get_dataset)) -> FilterOptionsResponse:
    return FilterOptionsResponse(**asdict(get_filter_options(dataset.records)))


@router.post("/hcpcs/extract", response_model=HCPCSExtractResponse)
def extract_hcpcs(request: HCPCSExtractRequest) -> HCPCSExtractResponse:
    """
    Normalize a free-text HCPCS field into codes and display badges.
    """
    codes = extract_hcpcs_codes(request.text)
    parsed = parse_hcpcs_input(request.text)
    return HCPCSExtractResponse(
        codes=codes,
        description=parsed.description,
        badges=format_hcpcs_codes_for_badges(codes, request.style),
        display_text=create_hcpcs_display_text(request.text, show_description=True),
    )
