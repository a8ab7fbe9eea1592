import csv
import io
import os
import time
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, Response

from comp_analyzer.models.profile import AnalysisRequest
from comp_analyzer.models.report import AnalysisReport
from comp_analyzer.api.dependencies import get_pipeline, get_db_service, get_market_data_service, get_search_service
from comp_analyzer.pipeline.orchestrator import AnalysisPipeline
from comp_analyzer.pipeline.step_extract import ProfileExtractionError
from comp_analyzer.services.db_service import DBService
from comp_analyzer.services.market_data_service import MarketDataService
from comp_analyzer.services.search_service import DocumentSearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])

EXPORT_COLUMNS = [
    "Company",
    "Ticker",
    "Industry",
    "Market Cap",
    "Revenue",
    "P/E Ratio",
    "EV/Revenue",
    "EV/EBITDA",
    "1Y Change",
    "Match Score - based on similarity to the target company across attributes such as industry, "
    "region, and business model.",
]


def _or_na(value: float | None):
    return "N/A" if value is None else value


def build_export_csv(report: AnalysisReport) -> str:
    """Comparable table as CSV, preceded by '#' comment lines."""
    industry = report.profile.industry if report.profile else "Unknown"
    buf = io.StringIO()
    buf.write(f"# Analysis Export - {datetime.now(timezone.utc).isoformat()}\n")
    buf.write(f"# Target Company: {industry} company\n")
    buf.write("# Generated by CompAnalyzer\n")
    buf.write("\n")

    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for comp in report.comparables:
        # Degraded records carry 0.0 placeholders for size
        available = comp.data_source != "unavailable"
        writer.writerow([
            comp.name,
            comp.ticker,
            comp.industry,
            _or_na(comp.market_cap if available else None),
            _or_na(comp.revenue if available else None),
            _or_na(comp.pe_ratio),
            _or_na(comp.ev_to_revenue),
            _or_na(comp.ev_to_ebitda),
            f"{comp.one_year_change}%",
            f"{comp.match_score:.1f}%",
        ])
    return buf.getvalue()


@router.get("/health")
async def health(
    market: MarketDataService = Depends(get_market_data_service),
    search: DocumentSearchService = Depends(get_search_service),
    db: DBService = Depends(get_db_service),
):
    """Dependency report."""
    try:
        db.list_reports()
        storage_ok = True
    except Exception as e:
        logger.warning(f"Storage health check failed: {e}")
        storage_ok = False

    return {
        "status": "healthy" if storage_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dependencies": {
            "openai": bool(os.getenv("OPENAI_API_KEY")),
            "market_data": "mock" if market.use_mock else "yfinance",
            "search": search.configured,
            "storage": storage_ok,
        },
    }


@router.post("/analyze", response_model=AnalysisReport)
async def analyze(
    request: AnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """Run the full analysis pipeline and return the report."""
    try:
        return await pipeline.run(request)
    except ProfileExtractionError as e:
        return JSONResponse(status_code=500, content={"error": "Analysis failed", "message": str(e)})


@router.get("/analyses", response_model=list[dict])
async def list_analyses(db: DBService = Depends(get_db_service)):
    """List past analyses (summary only), newest first."""
    return db.list_reports()


@router.get("/analysis/{analysis_id}", response_model=AnalysisReport)
async def get_analysis(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    report = db.get_report(analysis_id)
    if not report:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return report


@router.delete("/analysis/{analysis_id}")
async def delete_analysis(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    deleted = db.delete_report(analysis_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return {"status": "deleted"}


@router.get("/analysis/{analysis_id}/audit-log")
async def get_audit_log(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    """Pipeline steps and LLM call logs for an analysis."""
    return db.get_audit_log(analysis_id)


@router.get("/analysis/{analysis_id}/export")
async def export_analysis(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    report = db.get_report(analysis_id)
    if not report or report.profile is None:
        raise HTTPException(status_code=404, detail="Analysis or comparable data not found")

    filename = f"analysis_{analysis_id}_{int(time.time() * 1000)}.csv"
    return Response(
        content=build_export_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
