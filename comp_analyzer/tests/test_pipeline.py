import asyncio
import random

import pytest
from unittest.mock import MagicMock

from comp_analyzer.models.profile import AnalysisRequest
from comp_analyzer.models.report import LLMCallLog
from comp_analyzer.models.search import SearchResult
from comp_analyzer.pipeline.orchestrator import AnalysisPipeline
from comp_analyzer.pipeline.step_extract import ProfileExtractionError
from comp_analyzer.services.db_service import DBService
from comp_analyzer.services.market_data_service import MarketDataService, MarketDataUnavailableError
from comp_analyzer.valuation.revenue import DEFAULT_REVENUE

STEP_NAMES = ["extract", "normalize", "match", "enrich", "research", "valuate", "narrate", "persist"]


@pytest.fixture
def mock_llm():
    llm = MagicMock()

    async def mock_structured(*args, **kwargs):
        return kwargs["response_model"](
            industry="B2B SaaS",
            region="North America",
            revenue="$12M ARR",
            businessModel="Subscription SaaS",
            growthStage="Growth Stage (40% YoY)",
            riskFactors=["market competition", "customer concentration risk"],
        )

    async def mock_text(*args, **kwargs):
        kwargs["call_logs"].append(LLMCallLog(
            step_name=kwargs["step_name"], model="mock", system_prompt="s", user_prompt="u", response="r",
        ))
        return "```html\n<p>Mock narrative</p>\n```"

    llm.structured_completion = mock_structured
    llm.text_completion = mock_text
    return llm


@pytest.fixture
def mock_market():
    market = MarketDataService()
    market.use_mock = True
    return market


@pytest.fixture
def mock_search():
    search = MagicMock()
    search.configured = False
    return search


@pytest.fixture
def mock_db(tmp_path):
    return DBService(f"sqlite:///{tmp_path}/test.db")


@pytest.fixture
def make_pipeline(mock_llm, mock_market, mock_search, mock_db):
    def _make(**overrides):
        kwargs = dict(
            llm=mock_llm, market=mock_market, search=mock_search, db=mock_db,
            market_timeout=2.0, narrative_timeout=2.0, rng=random.Random(0),
        )
        kwargs.update(overrides)
        return AnalysisPipeline(**kwargs)
    return _make


@pytest.fixture
def request_body():
    return AnalysisRequest(
        company_description=(
            "We are a B2B SaaS company with $12M ARR selling workflow automation software "
            "to mid-market manufacturers in North America, growing 40% year over year."
        ),
        analysis_depth="comprehensive",
    )


@pytest.mark.asyncio
async def test_full_pipeline(make_pipeline, request_body, mock_db):
    report = await make_pipeline().run(request_body)

    assert report.error is None
    assert report.profile.industry == "B2B SaaS"
    assert report.normalized_revenue == 12_000_000
    assert [c.ticker for c in report.comparables] == ["CRM", "NOW", "MNDY", "ASAN", "SMAR"]
    assert all(c.data_source == "mock" for c in report.comparables)

    # Mock multiples for these five are 8.1, 17.6, 13.0, 4.9, 7.1
    valuation = report.valuation
    assert valuation.comparable_count == 5
    assert valuation.revenue_multiple.factor == 8.1
    assert valuation.revenue_multiple.valuation == pytest.approx(12_000_000 * 8.1)

    assert report.narrative == "<p>Mock narrative</p>"
    assert report.insights is None
    assert [s.step_name for s in report.pipeline_steps] == STEP_NAMES
    assert all(s.status == "completed" for s in report.pipeline_steps)

    saved = mock_db.get_report(report.id)
    assert saved is not None
    assert saved.valuation.risk_adjusted.valuation == pytest.approx(valuation.risk_adjusted.valuation)


@pytest.mark.asyncio
async def test_failed_ticker_is_degraded_not_dropped(make_pipeline, request_body):
    real = MarketDataService()
    real.use_mock = True
    market = MagicMock()

    async def fetch(ticker):
        if ticker == "NOW":
            raise MarketDataUnavailableError(ticker, "provider error")
        return await real.fetch_financials(ticker)

    market.fetch_financials = fetch
    report = await make_pipeline(market=market).run(request_body)

    assert [c.ticker for c in report.comparables] == ["CRM", "NOW", "MNDY", "ASAN", "SMAR"]
    degraded = report.comparables[1]
    assert degraded.data_source == "unavailable"
    assert degraded.ev_to_revenue is None
    assert degraded.market_cap == 0
    assert degraded.match_score == 100.0
    assert report.valuation.comparable_count == 4


@pytest.mark.asyncio
async def test_market_timeout_uses_default_multiple(make_pipeline, request_body):
    market = MagicMock()

    async def slow_fetch(ticker):
        await asyncio.sleep(5)

    market.fetch_financials = slow_fetch
    report = await make_pipeline(market=market, market_timeout=0.05).run(request_body)

    assert len(report.comparables) == 5
    assert all(c.data_source == "unavailable" for c in report.comparables)
    assert report.valuation.used_default_multiple
    assert report.valuation.revenue_multiple.factor == 8.5
    assert [e.confidence for e in report.valuation.estimates()] == [0.4, 0.3, 0.35]


@pytest.mark.asyncio
async def test_narrative_fallback_on_llm_failure(make_pipeline, request_body, mock_llm):
    async def failing_text(*args, **kwargs):
        raise RuntimeError("LLM down")

    mock_llm.text_completion = failing_text
    report = await make_pipeline().run(request_body)

    assert report.narrative.startswith("<p><strong>Investment Thesis:</strong>")
    assert "B2B SaaS sector" in report.narrative
    assert "North America" in report.narrative
    narrate = next(s for s in report.pipeline_steps if s.step_name == "narrate")
    assert narrate.status == "completed"


@pytest.mark.asyncio
async def test_narrative_fallback_on_timeout(make_pipeline, request_body, mock_llm):
    async def slow_text(*args, **kwargs):
        await asyncio.sleep(5)
        return "too late"

    mock_llm.text_completion = slow_text
    report = await make_pipeline(narrative_timeout=0.05).run(request_body)
    assert report.narrative.startswith("<p><strong>Investment Thesis:</strong>")


@pytest.mark.asyncio
async def test_extraction_failure_is_fatal(make_pipeline, request_body, mock_llm, mock_db):
    async def failing_structured(*args, **kwargs):
        raise RuntimeError("LLM call failed after 3 attempts")

    mock_llm.structured_completion = failing_structured
    with pytest.raises(ProfileExtractionError, match="Failed to extract company data"):
        await make_pipeline().run(request_body, report_id="failed-run")

    saved = mock_db.get_report("failed-run")
    assert saved is not None
    assert saved.profile is None
    assert saved.error.startswith("Failed to extract company data")
    assert saved.pipeline_steps[0].step_name == "extract"
    assert saved.pipeline_steps[0].status == "failed"


@pytest.mark.asyncio
async def test_placeholder_profile_still_valued(make_pipeline, request_body, mock_llm):
    async def empty_structured(*args, **kwargs):
        return kwargs["response_model"]()

    mock_llm.structured_completion = empty_structured
    report = await make_pipeline().run(request_body)

    assert report.profile.industry == "Unknown Industry"
    assert report.normalized_revenue == DEFAULT_REVENUE
    assert report.comparables == []
    assert report.valuation.used_default_multiple
    assert report.valuation.revenue_multiple.factor == 8.0


@pytest.mark.asyncio
async def test_search_insights_included(make_pipeline, request_body, mock_search):
    async def search(profile, description):
        return [SearchResult(id="1", content="The SaaS market keeps growing.", relevance_score=1.5)]

    mock_search.configured = True
    mock_search.search = search
    report = await make_pipeline().run(request_body)

    assert report.insights is not None
    assert report.insights.market_data == ["The SaaS market keeps growing"]


@pytest.mark.asyncio
async def test_search_failure_is_optional(make_pipeline, request_body, mock_search):
    async def search(profile, description):
        raise ConnectionError("index offline")

    mock_search.configured = True
    mock_search.search = search
    report = await make_pipeline().run(request_body)

    assert report.insights is None
    assert report.valuation is not None


@pytest.mark.asyncio
async def test_call_logs_are_per_run(make_pipeline, request_body):
    pipeline = make_pipeline()
    first = await pipeline.run(request_body)
    second = await pipeline.run(request_body)

    assert len(first.llm_call_logs) == 1
    assert len(second.llm_call_logs) == 1
    assert first.id != second.id
