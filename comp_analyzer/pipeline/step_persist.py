from comp_analyzer.models.report import AnalysisReport
from comp_analyzer.services.db_service import DBService


def persist_report(report: AnalysisReport, db: DBService) -> str:
    """Step 8: Save the report and its audit trail."""
    return db.save_report(report)
