"""
Pydantic schemas for the coverage insights API.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from payer_insights.core.hcpcs import BadgeStyle


class InsurerAggregateResponse(BaseModel):
    """Per-insurer coverage summary."""
    insurer: str = Field(..., description="Insurer name as listed in the coverage table")
    short_name: str = Field(..., description="First word of the insurer name")
    approx_covered_lives: str = Field(..., description="Covered lives estimate, free text")
    percentage_us_population: str = Field(..., description="Share of US population, free text")
    notes: str = Field("", description="Notes from the coverage table")
    numeric_lives: float = Field(..., description="Covered lives parsed from the free text")
    numeric_percentage: float = Field(..., description="Population share parsed from the free text")
    drug_count: int = Field(..., ge=0, description="Matching drug policy records")
    unique_brand_count: int = Field(..., ge=0)
    unique_indication_count: int = Field(..., ge=0)
    unique_hcpcs_count: int = Field(..., ge=0)
    unique_brands: List[str] = Field(default_factory=list)
    unique_indications: List[str] = Field(default_factory=list)
    unique_hcpcs_codes: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "insurer": "Cigna Healthcare",
                "short_name": "Cigna",
                "approx_covered_lives": "19 million",
                "percentage_us_population": "5.7%",
                "notes": "",
                "numeric_lives": 19.0,
                "numeric_percentage": 5.7,
                "drug_count": 1,
                "unique_brand_count": 1,
                "unique_indication_count": 1,
                "unique_hcpcs_count": 1,
                "unique_brands": ["Adakveo"],
                "unique_indications": ["Sickle cell disease"],
                "unique_hcpcs_codes": ["J0791"],
            }
        }


class BreakdownRowResponse(BaseModel):
    name: str
    count: int
    with_prior_auth: int


class InsurerDrugStatsResponse(BaseModel):
    """Prior authorization and step therapy statistics for one insurer."""
    insurer: str
    total_drugs: int
    prior_auth_required: int
    prior_auth_percentage: float = Field(..., ge=0.0, le=100.0)
    step_therapy_required: int
    unique_brands: List[str] = Field(default_factory=list)
    unique_indications: List[str] = Field(default_factory=list)
    unique_hcpcs_codes: List[str] = Field(default_factory=list)
    by_indication: List[BreakdownRowResponse] = Field(default_factory=list)
    top_brands: List[BreakdownRowResponse] = Field(default_factory=list)


class InsurerSummaryResponse(BaseModel):
    insurer: str
    total_brands: int
    total_indications: int
    prior_auth_required: int
    step_therapy_required: int
    unique_hcpcs: int
    last_updated: str = Field(..., description="Latest policy date (ISO) or 'Unknown'")


class FilterOptionsResponse(BaseModel):
    indications: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    hcpcs_codes: List[str] = Field(default_factory=list)


class BrandCoverageResponse(BaseModel):
    """Coverage of one brand at one insurer."""
    insurer: str
    covered: bool
    indications: List[str] = Field(default_factory=list)
    hcpcs_codes: List[str] = Field(default_factory=list)
    prior_authorization_required: bool = False
    step_therapy_required: Optional[bool] = Field(
        None, description="None when the insurer's source does not report step therapy"
    )


class HCPCSExtractRequest(BaseModel):
    """Free-text HCPCS field to normalize."""
    text: Optional[str] = Field(None, description="Raw HCPCS field, e.g. 'J1234;J5678:Notes'")
    style: BadgeStyle = Field(BadgeStyle.SIMPLE, description="Badge presentation")


class HCPCSExtractResponse(BaseModel):
    codes: List[str] = Field(default_factory=list, description="Normalized codes, first-seen order")
    description: Optional[str] = None
    badges: List[str] = Field(default_factory=list)
    display_text: str = ""
