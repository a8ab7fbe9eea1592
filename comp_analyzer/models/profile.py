from pydantic import BaseModel, ConfigDict, Field
from typing import Literal

AnalysisDepth = Literal["standard", "comprehensive", "investment-grade"]
ValuationMethods = Literal["all", "revenue-multiple", "earnings-multiple", "custom"]


class AnalysisRequest(BaseModel):
    company_description: str = Field(
        ..., min_length=50, description="Free-text description of the private company (at least 50 characters)"
    )
    analysis_depth: AnalysisDepth = Field("comprehensive", description="Depth of the profile extraction")
    valuation_methods: ValuationMethods = Field(
        "all", description="Requested valuation methods; recorded on the report only, all three estimates are always computed"
    )


class CompanyProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    industry: str = Field("Unknown Industry", description="Primary industry, e.g. 'B2B SaaS - Manufacturing Tech'")
    region: str = Field("Unknown Region", description="Primary geographic market, e.g. 'North America', 'Global'")
    revenue: str = Field("Revenue not disclosed", description="Revenue with amount and timeframe, e.g. '$12M ARR'")
    business_model: str = Field("Business model not specified", description="e.g. 'Subscription SaaS', 'Marketplace'")
    growth_stage: str = Field(
        "Growth stage not specified", description="Stage with metrics if available, e.g. 'Growth Stage (40% YoY)'"
    )
    strengths: str = Field("Competitive advantages not identified", description="Concise summary of key strengths")
    market_position: str = Field("Market position analysis pending", description="Market position and landscape")
    competitive_advantages: list[str] = Field(
        default_factory=lambda: ["Competitive advantages analysis pending"],
        description="3-5 key competitive advantages",
    )
    risk_factors: list[str] = Field(
        default_factory=lambda: ["Risk assessment pending"],
        description="3-5 primary risk factors",
    )
