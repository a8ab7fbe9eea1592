from pydantic import BaseModel, Field
from typing import Optional


class SearchResult(BaseModel):
    id: str
    content: str = ""
    title: Optional[str] = None
    company_name: Optional[str] = None
    region: Optional[str] = None
    relevance_score: float = 0.0


class SearchInsights(BaseModel):
    insights: list[str] = Field(default_factory=list)
    market_data: list[str] = Field(default_factory=list)
    competitive_intel: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    summary: str = ""
