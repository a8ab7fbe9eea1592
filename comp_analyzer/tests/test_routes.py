import random

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from comp_analyzer.main import app
from comp_analyzer.api.dependencies import get_pipeline, get_db_service, get_market_data_service, get_search_service
from comp_analyzer.api.routes import EXPORT_COLUMNS, build_export_csv
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.report import AnalysisReport
from comp_analyzer.pipeline.orchestrator import AnalysisPipeline
from comp_analyzer.services.db_service import DBService
from comp_analyzer.services.market_data_service import MarketDataService

DESCRIPTION = (
    "We are a B2B SaaS company with $12M ARR selling workflow automation software "
    "to mid-market manufacturers in North America."
)


@pytest.fixture
def db(tmp_path):
    return DBService(f"sqlite:///{tmp_path}/test.db")


@pytest.fixture
def llm():
    llm = MagicMock()

    async def structured(*args, **kwargs):
        return kwargs["response_model"](industry="B2B SaaS", region="North America", revenue="$12M ARR")

    async def text(*args, **kwargs):
        return "<p>Narrative</p>"

    llm.structured_completion = structured
    llm.text_completion = text
    return llm


@pytest.fixture
def client(db, llm):
    market = MarketDataService()
    market.use_mock = True
    search = MagicMock()
    search.configured = False

    app.dependency_overrides[get_db_service] = lambda: db
    app.dependency_overrides[get_market_data_service] = lambda: market
    app.dependency_overrides[get_search_service] = lambda: search
    app.dependency_overrides[get_pipeline] = lambda: AnalysisPipeline(
        llm=llm, market=market, search=search, db=db, rng=random.Random(0),
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json()["service"] == "CompAnalyzer API"


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"
    assert body["dependencies"]["market_data"] == "mock"
    assert body["dependencies"]["search"] is False
    assert body["dependencies"]["storage"] is True


def test_short_description_rejected(client):
    response = client.post("/api/analyze", json={"company_description": "too short"})
    assert response.status_code == 422


def test_bad_depth_rejected(client):
    response = client.post("/api/analyze", json={"company_description": DESCRIPTION, "analysis_depth": "deep"})
    assert response.status_code == 422


def test_analyze_and_fetch(client):
    response = client.post("/api/analyze", json={"company_description": DESCRIPTION})
    assert response.status_code == 200
    report = response.json()
    assert report["profile"]["industry"] == "B2B SaaS"
    assert len(report["comparables"]) == 5
    assert report["narrative"] == "<p>Narrative</p>"

    fetched = client.get(f"/api/analysis/{report['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["valuation"] == report["valuation"]

    listed = client.get("/api/analyses").json()
    assert [a["id"] for a in listed] == [report["id"]]

    audit = client.get(f"/api/analysis/{report['id']}/audit-log").json()
    assert audit["pipeline_steps"][0]["step_name"] == "extract"


def test_valuation_methods_recorded_without_narrowing_estimates(client):
    response = client.post(
        "/api/analyze",
        json={"company_description": DESCRIPTION, "valuation_methods": "revenue-multiple"},
    )
    report = response.json()

    assert report["valuation_methods"] == "revenue-multiple"
    for method in ("revenue_multiple", "growth_adjusted", "risk_adjusted"):
        assert report["valuation"][method]["valuation"] > 0


def test_analyze_extraction_failure(client, llm):
    async def failing(*args, **kwargs):
        raise RuntimeError("no key")

    llm.structured_completion = failing
    response = client.post("/api/analyze", json={"company_description": DESCRIPTION})
    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Analysis failed"
    assert "Failed to extract company data" in body["message"]


def test_export_csv(client):
    report = client.post("/api/analyze", json={"company_description": DESCRIPTION}).json()
    response = client.get(f"/api/analysis/{report['id']}/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    lines = response.text.splitlines()
    assert lines[0].startswith("# Analysis Export - ")
    assert lines[1] == "# Target Company: B2B SaaS company"
    assert lines[2] == "# Generated by CompAnalyzer"
    assert lines[3] == ""
    assert lines[4].startswith(",".join(EXPORT_COLUMNS[:9]))
    assert lines[5].startswith("Salesforce,CRM,B2B SaaS,")
    assert lines[5].endswith(",100.0%")
    assert len(lines) == 10


def test_missing_analysis(client):
    assert client.get("/api/analysis/missing").status_code == 404
    assert client.get("/api/analysis/missing/export").status_code == 404
    assert client.delete("/api/analysis/missing").status_code == 404


def test_delete(client):
    report = client.post("/api/analyze", json={"company_description": DESCRIPTION}).json()
    assert client.delete(f"/api/analysis/{report['id']}").json() == {"status": "deleted"}
    assert client.get(f"/api/analysis/{report['id']}").status_code == 404


def test_export_csv_keeps_zero_ratios_and_marks_missing_data():
    report = AnalysisReport(
        company_description=DESCRIPTION,
        profile=CompanyProfile(industry="B2B SaaS"),
        comparables=[
            EnrichedComparable(
                ticker="FLAT", name="Flat Co", industry="B2B SaaS", market_cap=2_000_000_000.0,
                revenue=400_000_000.0, pe_ratio=None, ev_to_revenue=5.0, ev_to_ebitda=0.0,
                one_year_change=0.0, match_score=72.5, data_source="mock",
            ),
            EnrichedComparable(ticker="GONE", name="Gone Inc", industry="B2B SaaS", match_score=55.0),
        ],
    )

    lines = build_export_csv(report).splitlines()

    assert lines[5].startswith("Flat Co,FLAT,B2B SaaS,2000000000.0,400000000.0,N/A,5.0,0.0,0.0%,72.5%")
    assert lines[6] == "Gone Inc,GONE,B2B SaaS,N/A,N/A,N/A,N/A,N/A,0.0%,55.0%"
