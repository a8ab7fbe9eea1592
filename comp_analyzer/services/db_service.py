import os
import logging
from sqlalchemy import create_engine, desc
from sqlalchemy.orm import sessionmaker

from comp_analyzer.models.db import Base, AnalysisRecord, AuditLogEntry, LLMCallRecord
from comp_analyzer.models.report import AnalysisReport

logger = logging.getLogger(__name__)


def _analysis_record(report: AnalysisReport) -> AnalysisRecord:
    """Flatten the searchable parts of a report; the full report goes in report_json."""
    profile = report.profile
    valuation = report.valuation
    return AnalysisRecord(
        id=report.id,
        status="failed" if report.error else "completed",
        industry=profile.industry if profile else None,
        region=profile.region if profile else None,
        analysis_depth=report.analysis_depth,
        normalized_revenue=report.normalized_revenue,
        comparable_tickers=",".join(c.ticker for c in report.comparables) or None,
        used_default_multiple=valuation.used_default_multiple if valuation else None,
        base_valuation=valuation.revenue_multiple.valuation if valuation else None,
        risk_adjusted_valuation=valuation.risk_adjusted.valuation if valuation else None,
        report_json=report.model_dump_json(),
        created_at=report.created_at,
    )


def _summary(record: AnalysisRecord) -> dict:
    return {
        "id": record.id,
        "status": record.status,
        "industry": record.industry,
        "region": record.region,
        "analysis_depth": record.analysis_depth,
        "normalized_revenue": record.normalized_revenue,
        "comparables": record.comparable_tickers.split(",") if record.comparable_tickers else [],
        "used_default_multiple": record.used_default_multiple,
        "base_valuation": record.base_valuation,
        "risk_adjusted_valuation": record.risk_adjusted_valuation,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


class DBService:
    def __init__(self, database_url: str | None = None):
        url = database_url or os.getenv("DATABASE_URL", "sqlite:///./analyses.db")
        self.engine = create_engine(url, echo=False)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    def save_report(self, report: AnalysisReport) -> str:
        session = self.Session()
        try:
            session.merge(_analysis_record(report))

            # Re-saving a report replaces its audit trail
            self._delete_trail(session, report.id)
            session.add_all(
                AuditLogEntry(
                    analysis_id=report.id,
                    step_name=step.step_name,
                    status=step.status,
                    duration_ms=step.duration_ms,
                    error=step.error,
                )
                for step in report.pipeline_steps
            )
            session.add_all(
                LLMCallRecord(analysis_id=report.id, created_at=log.timestamp, **log.model_dump(exclude={"timestamp"}))
                for log in report.llm_call_logs
            )

            session.commit()
            logger.info(
                f"Saved analysis {report.id}: {len(report.comparables)} comparables, "
                f"{len(report.pipeline_steps)} steps, {len(report.llm_call_logs)} LLM calls"
            )
            return report.id
        finally:
            session.close()

    def get_report(self, report_id: str) -> AnalysisReport | None:
        session = self.Session()
        try:
            record = session.get(AnalysisRecord, report_id)
            return AnalysisReport.model_validate_json(record.report_json) if record else None
        finally:
            session.close()

    def list_reports(self) -> list[dict]:
        """Summaries of every stored analysis, newest first."""
        session = self.Session()
        try:
            records = session.query(AnalysisRecord).order_by(desc(AnalysisRecord.created_at)).all()
            return [_summary(r) for r in records]
        finally:
            session.close()

    def delete_report(self, report_id: str) -> bool:
        session = self.Session()
        try:
            record = session.get(AnalysisRecord, report_id)
            if not record:
                return False
            self._delete_trail(session, report_id)
            session.delete(record)
            session.commit()
            logger.info(f"Deleted analysis {report_id}")
            return True
        finally:
            session.close()

    def get_audit_log(self, report_id: str) -> dict:
        """Pipeline steps in execution order plus LLM call metadata (prompts omitted)."""
        session = self.Session()
        try:
            steps = (
                session.query(AuditLogEntry)
                .filter_by(analysis_id=report_id)
                .order_by(AuditLogEntry.id)
                .all()
            )
            llm_calls = (
                session.query(LLMCallRecord)
                .filter_by(analysis_id=report_id)
                .order_by(LLMCallRecord.id)
                .all()
            )
            return {
                "analysis_id": report_id,
                "failed_steps": [s.step_name for s in steps if s.status == "failed"],
                "total_tokens": sum(c.tokens_used or 0 for c in llm_calls),
                "pipeline_steps": [
                    {"step_name": s.step_name, "status": s.status, "duration_ms": s.duration_ms, "error": s.error}
                    for s in steps
                ],
                "llm_calls": [
                    {"step_name": c.step_name, "model": c.model, "tokens_used": c.tokens_used,
                     "duration_ms": c.duration_ms, "response": c.response}
                    for c in llm_calls
                ],
            }
        finally:
            session.close()

    @staticmethod
    def _delete_trail(session, report_id: str) -> None:
        session.query(AuditLogEntry).filter_by(analysis_id=report_id).delete()
        session.query(LLMCallRecord).filter_by(analysis_id=report_id).delete()
