import time
import uuid
import random
import asyncio
import inspect
import logging
from datetime import datetime, timezone

from comp_analyzer.models.profile import AnalysisRequest, CompanyProfile
from comp_analyzer.models.reference import ReferenceCompany
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.models.valuations import ValuationResult
from comp_analyzer.models.search import SearchInsights
from comp_analyzer.models.report import AnalysisReport, LLMCallLog, PipelineStep
from comp_analyzer.services.llm_service import LLMService
from comp_analyzer.services.market_data_service import MarketDataService
from comp_analyzer.services.search_service import DocumentSearchService
from comp_analyzer.services.db_service import DBService
from comp_analyzer.services.reference_universe import get_reference_universe
from comp_analyzer.valuation.revenue import DEFAULT_REVENUE, normalize_revenue
from comp_analyzer.pipeline.step_extract import extract_profile, ProfileExtractionError
from comp_analyzer.pipeline.step_match import select_comparables
from comp_analyzer.pipeline.step_fetch import fetch_comparable_data
from comp_analyzer.pipeline.step_research import gather_insights
from comp_analyzer.pipeline.step_valuate import run_valuation
from comp_analyzer.pipeline.step_narrate import generate_narrative, fallback_narrative
from comp_analyzer.pipeline.step_persist import persist_report

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    def __init__(
        self,
        llm: LLMService,
        market: MarketDataService,
        search: DocumentSearchService,
        db: DBService,
        comparable_limit: int = 5,
        market_timeout: float = 15.0,
        narrative_timeout: float = 60.0,
        universe: tuple[ReferenceCompany, ...] | None = None,
        rng: random.Random | None = None,
    ):
        self.llm = llm
        self.market = market
        self.search = search
        self.db = db
        self.comparable_limit = comparable_limit
        self.market_timeout = market_timeout
        self.narrative_timeout = narrative_timeout
        self.universe = universe if universe is not None else get_reference_universe()
        self.rng = rng

    async def run(self, request: AnalysisRequest, report_id: str | None = None) -> AnalysisReport:
        if report_id is None:
            report_id = str(uuid.uuid4())
        steps: list[PipelineStep] = []
        call_logs: list[LLMCallLog] = []

        logger.info(f"=== Analysis started (id={report_id}, depth={request.analysis_depth}) ===")

        report = AnalysisReport(
            id=report_id,
            company_description=request.company_description,
            analysis_depth=request.analysis_depth,
            valuation_methods=request.valuation_methods,
        )

        # Step 1: Extract (fatal)
        try:
            profile = await self._run_step(
                "extract", steps, self._extract, request, call_logs, reraise=True
            )
        except ProfileExtractionError as e:
            report.error = str(e)
            report.pipeline_steps = steps
            report.llm_call_logs = call_logs
            await self._run_step("persist", steps, self._persist, report)
            logger.error(f"=== Analysis {report_id} aborted: {e} ===")
            raise

        # Step 2: Normalize revenue
        revenue = await self._run_step("normalize", steps, normalize_revenue, profile.revenue)
        if revenue is None:
            revenue = DEFAULT_REVENUE

        # Step 3: Match
        candidates = await self._run_step("match", steps, self._match, profile) or []

        # Step 4: Enrich
        comparables = await self._run_step(
            "enrich", steps, fetch_comparable_data, candidates, self.market, self.market_timeout
        ) or []

        # Step 5: Research (optional)
        insights = await self._run_step(
            "research", steps, gather_insights, profile, request.company_description, self.search
        )

        # Step 6: Valuate
        valuation = await self._run_step("valuate", steps, run_valuation, profile, revenue, comparables)

        # Step 7: Narrate (skip if valuation failed)
        narrative = None
        if valuation is not None:
            narrative = await self._run_step(
                "narrate", steps, self._narrate,
                profile, comparables, valuation, request.company_description, insights, call_logs,
            )
        else:
            now = datetime.now(timezone.utc)
            steps.append(PipelineStep(
                step_name="narrate", status="skipped", started_at=now, completed_at=now,
                duration_ms=0, error="Skipped, no valuation results to narrate",
            ))

        report.profile = profile
        report.normalized_revenue = revenue
        report.comparables = comparables
        report.valuation = valuation
        report.narrative = narrative
        report.insights = insights
        report.pipeline_steps = steps
        report.llm_call_logs = call_logs

        # Step 8: Persist (failure is logged, the report is still returned)
        await self._run_step("persist", steps, self._persist, report)

        logger.info(
            f"=== Analysis completed (id={report_id}): {len(comparables)} comparables, "
            f"risk_adjusted={valuation.risk_adjusted.valuation if valuation else 'FAILED'} ==="
        )
        return report

    async def _run_step(self, name: str, steps: list[PipelineStep], fn, *args, reraise: bool = False):
        step = PipelineStep(step_name=name, status="running", started_at=datetime.now(timezone.utc))
        start = time.time()
        logger.info(f"Step '{name}' started")
        try:
            result = await fn(*args) if inspect.iscoroutinefunction(fn) else fn(*args)
        except Exception as e:
            self._finish(step, start, steps, error=e)
            if reraise:
                raise
            return None
        self._finish(step, start, steps)
        return result

    @staticmethod
    def _finish(step: PipelineStep, start: float, steps: list[PipelineStep], error: Exception | None = None):
        step.completed_at = datetime.now(timezone.utc)
        step.duration_ms = (time.time() - start) * 1000
        steps.append(step)
        if error is None:
            step.status = "completed"
            logger.info(f"Step '{step.step_name}' completed in {step.duration_ms:.0f}ms")
        else:
            step.status = "failed"
            step.error = str(error)
            logger.error(f"Step '{step.step_name}' failed in {step.duration_ms:.0f}ms: {error}")

    async def _extract(self, request: AnalysisRequest, call_logs: list[LLMCallLog]) -> CompanyProfile:
        return await extract_profile(request.company_description, request.analysis_depth, self.llm, call_logs)

    def _match(self, profile: CompanyProfile):
        return select_comparables(profile, self.universe, self.comparable_limit, self.rng)

    async def _narrate(
        self,
        profile: CompanyProfile,
        comparables: list[EnrichedComparable],
        valuation: ValuationResult,
        description: str,
        insights: SearchInsights | None,
        call_logs: list[LLMCallLog],
    ) -> str:
        try:
            return await asyncio.wait_for(
                generate_narrative(profile, comparables, valuation, description, insights, self.llm, call_logs),
                timeout=self.narrative_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Narrative generation timed out after {self.narrative_timeout:.0f}s, using fallback")
        except Exception as e:
            logger.warning(f"Narrative generation failed: {e}, using fallback")
        return fallback_narrative(profile, valuation)

    def _persist(self, report: AnalysisReport) -> str:
        return persist_report(report, self.db)
