import logging
from pydantic import BaseModel, Field, field_validator

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.report import LLMCallLog
from comp_analyzer.services.llm_service import LLMService

logger = logging.getLogger(__name__)


class ProfileExtractionError(Exception):
    """Raised when the company profile cannot be extracted. Fatal to the request."""


class _ExtractedProfile(BaseModel):
    """Lenient wire shape of the extractor's JSON; blanks are filled with placeholders."""
    industry: str | None = Field(None, description="Primary industry/sector, specific (e.g. 'B2B SaaS - Manufacturing Tech')")
    region: str | None = Field(None, description="Primary geographic region or market (e.g. 'North America', 'Europe', 'Global')")
    revenue: str | None = Field(None, description="Revenue with amount and timeframe (e.g. '$12M ARR', '$50M annually')")
    businessModel: str | None = Field(None, description="Business model type (e.g. 'Subscription SaaS', 'Marketplace')")
    growthStage: str | None = Field(None, description="Growth stage with metrics if available (e.g. 'Growth Stage (40% YoY)')")
    strengths: str | None = Field(None, description="Key strengths, concise summary")
    marketPosition: str | None = Field(None, description="Market position and competitive landscape")
    competitiveAdvantages: list[str] | None = Field(None, description="3-5 key competitive advantages")
    riskFactors: list[str] | None = Field(None, description="3-5 primary risk factors")

    @field_validator("competitiveAdvantages", "riskFactors", mode="before")
    @classmethod
    def _list_or_none(cls, v):
        return v if isinstance(v, list) else None

    def to_profile(self) -> CompanyProfile:
        fields = {
            "industry": self.industry,
            "region": self.region,
            "revenue": self.revenue,
            "business_model": self.businessModel,
            "growth_stage": self.growthStage,
            "strengths": self.strengths,
            "market_position": self.marketPosition,
            "competitive_advantages": self.competitiveAdvantages,
            "risk_factors": self.riskFactors,
        }
        return CompanyProfile(**{k: v for k, v in fields.items() if v})


async def extract_profile(
    description: str,
    depth: str,
    llm: LLMService,
    call_logs: list[LLMCallLog] | None = None,
) -> CompanyProfile:
    """Step 1: Turn the free-text company description into a structured profile."""
    system_prompt = (
        "You are a financial analyst specializing in company valuation and competitive analysis. "
        f"Provide a detailed analysis at the \"{depth}\" depth level. "
        "Ensure all fields are filled with specific, actionable information based on the "
        "company description."
    )
    user_prompt = f"Company Description:\n{description}"

    try:
        extracted = await llm.structured_completion(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_model=_ExtractedProfile,
            step_name="extract",
            call_logs=call_logs,
        )
    except Exception as e:
        raise ProfileExtractionError(f"Failed to extract company data: {e}") from e

    profile = extracted.to_profile()
    logger.info(
        f"Extracted profile: industry='{profile.industry}', region='{profile.region}', "
        f"revenue='{profile.revenue}', stage='{profile.growth_stage}', "
        f"risks={len(profile.risk_factors)}"
    )
    return profile
