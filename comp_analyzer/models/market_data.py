from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CompanyFinancials(BaseModel):
    ticker: str
    name: Optional[str] = None
    market_cap: float = 0.0
    revenue: float = 0.0
    pe_ratio: Optional[float] = None
    ev_to_revenue: Optional[float] = None
    ev_to_ebitda: Optional[float] = None
    one_year_change: float = Field(0.0, description="One-year share price change in percent")
    summary: Optional[str] = None
    data_source_url: Optional[str] = None
    fetched_at: Optional[datetime] = None
    data_source: Optional[str] = None


class EnrichedComparable(BaseModel):
    ticker: str
    name: str
    description: str = ""
    industry: str
    market_cap: float = Field(0.0, ge=0.0)
    revenue: float = Field(0.0, ge=0.0)
    pe_ratio: Optional[float] = None
    ev_to_revenue: Optional[float] = None
    ev_to_ebitda: Optional[float] = None
    one_year_change: float = Field(0.0, description="One-year share price change in percent")
    match_score: float = Field(..., ge=0.0, le=100.0)
    data_source: str = "unavailable"
    data_source_url: Optional[str] = None

    @property
    def has_usable_multiple(self) -> bool:
        return self.ev_to_revenue is not None and self.ev_to_revenue > 0
