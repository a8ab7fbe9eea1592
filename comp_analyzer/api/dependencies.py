import os
from functools import lru_cache
from comp_analyzer.services.llm_service import LLMService
from comp_analyzer.services.market_data_service import MarketDataService
from comp_analyzer.services.search_service import DocumentSearchService
from comp_analyzer.services.db_service import DBService
from comp_analyzer.pipeline.orchestrator import AnalysisPipeline


@lru_cache
def get_llm_service() -> LLMService:
    return LLMService()


@lru_cache
def get_market_data_service() -> MarketDataService:
    return MarketDataService()


@lru_cache
def get_search_service() -> DocumentSearchService:
    return DocumentSearchService()


@lru_cache
def get_db_service() -> DBService:
    return DBService()


def get_pipeline() -> AnalysisPipeline:
    return AnalysisPipeline(
        llm=get_llm_service(),
        market=get_market_data_service(),
        search=get_search_service(),
        db=get_db_service(),
        comparable_limit=int(os.getenv("COMPARABLE_LIMIT", "5")),
        market_timeout=float(os.getenv("MARKET_DATA_TIMEOUT", "15")),
        narrative_timeout=float(os.getenv("NARRATIVE_TIMEOUT", "60")),
    )
