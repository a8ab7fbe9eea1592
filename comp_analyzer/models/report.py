from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.models.valuations import ValuationResult
from comp_analyzer.models.search import SearchInsights


class PipelineStep(BaseModel):
    step_name: str
    status: str = "pending"  # pending, running, completed, failed, skipped
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None


class LLMCallLog(BaseModel):
    step_name: str
    model: str
    system_prompt: str
    user_prompt: str
    response: str
    tokens_used: Optional[int] = None
    duration_ms: Optional[float] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AnalysisReport(BaseModel):
    id: Optional[str] = None
    company_description: str
    analysis_depth: str = "comprehensive"
    valuation_methods: str = "all"
    profile: Optional[CompanyProfile] = None
    normalized_revenue: Optional[float] = None
    comparables: list[EnrichedComparable] = Field(default_factory=list)
    valuation: Optional[ValuationResult] = None
    narrative: Optional[str] = None
    insights: Optional[SearchInsights] = None
    error: Optional[str] = Field(None, description="Error message if the analysis could not be completed")
    pipeline_steps: list[PipelineStep] = Field(default_factory=list)
    llm_call_logs: list[LLMCallLog] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
