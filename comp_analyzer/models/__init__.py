from comp_analyzer.models.profile import AnalysisRequest, CompanyProfile
from comp_analyzer.models.reference import ReferenceCompany, MatchTarget, ScoredCandidate
from comp_analyzer.models.market_data import CompanyFinancials, EnrichedComparable
from comp_analyzer.models.valuations import ValueRange, ValuationEstimate, ValuationResult
from comp_analyzer.models.search import SearchResult, SearchInsights
from comp_analyzer.models.report import PipelineStep, LLMCallLog, AnalysisReport

__all__ = [
    "AnalysisRequest", "CompanyProfile",
    "ReferenceCompany", "MatchTarget", "ScoredCandidate",
    "CompanyFinancials", "EnrichedComparable",
    "ValueRange", "ValuationEstimate", "ValuationResult",
    "SearchResult", "SearchInsights",
    "PipelineStep", "LLMCallLog", "AnalysisReport",
]
