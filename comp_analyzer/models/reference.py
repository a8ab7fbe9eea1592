from pydantic import BaseModel, ConfigDict, Field


class ReferenceCompany(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticker: str
    name: str
    industry: str
    sector: str
    region: str
    description: str = ""


class MatchTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    industry: str
    region: str
    business_model: str = ""


class ScoredCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    company: ReferenceCompany
    match_score: float = Field(..., ge=0.0, le=100.0)
