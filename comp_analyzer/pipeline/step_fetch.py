import asyncio
import logging

from comp_analyzer.models.market_data import CompanyFinancials, EnrichedComparable
from comp_analyzer.models.reference import ScoredCandidate
from comp_analyzer.services.market_data_service import MarketDataService

logger = logging.getLogger(__name__)


def _merge(candidate: ScoredCandidate, financials: CompanyFinancials) -> EnrichedComparable:
    company = candidate.company
    return EnrichedComparable(
        ticker=company.ticker,
        name=company.name,
        description=company.description,
        industry=company.industry,
        market_cap=max(financials.market_cap, 0.0),
        revenue=max(financials.revenue, 0.0),
        pe_ratio=financials.pe_ratio,
        ev_to_revenue=financials.ev_to_revenue,
        ev_to_ebitda=financials.ev_to_ebitda,
        one_year_change=financials.one_year_change,
        match_score=candidate.match_score,
        data_source=financials.data_source or "unknown",
        data_source_url=financials.data_source_url,
    )


def degraded_comparable(candidate: ScoredCandidate) -> EnrichedComparable:
    """Zero/absent financials; the candidate stays in the comparable set."""
    company = candidate.company
    return EnrichedComparable(
        ticker=company.ticker,
        name=company.name,
        description=company.description,
        industry=company.industry,
        match_score=candidate.match_score,
        data_source="unavailable",
    )


async def _enrich_one(
    candidate: ScoredCandidate,
    market_service: MarketDataService,
    timeout: float,
) -> EnrichedComparable:
    ticker = candidate.company.ticker
    try:
        financials = await asyncio.wait_for(market_service.fetch_financials(ticker), timeout=timeout)
        return _merge(candidate, financials)
    except asyncio.TimeoutError:
        logger.warning(f"Financial data for {ticker} timed out after {timeout:.0f}s; using empty metrics")
    except Exception as e:
        logger.warning(f"Failed to get financial data for {ticker}: {e}; using empty metrics")
    return degraded_comparable(candidate)


async def fetch_comparable_data(
    candidates: list[ScoredCandidate],
    market_service: MarketDataService,
    timeout: float = 15.0,
) -> list[EnrichedComparable]:
    """Step 4: Enrich every candidate concurrently. One ticker's failure never affects the others."""
    enriched = await asyncio.gather(*(_enrich_one(c, market_service, timeout) for c in candidates))
    degraded = sum(1 for c in enriched if c.data_source == "unavailable")
    if degraded:
        logger.warning(f"{degraded}/{len(enriched)} comparables have no financial data")
    return list(enriched)
