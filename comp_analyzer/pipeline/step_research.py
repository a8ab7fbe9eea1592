import logging

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.search import SearchInsights
from comp_analyzer.services.search_service import DocumentSearchService, summarize_insights

logger = logging.getLogger(__name__)


async def gather_insights(
    profile: CompanyProfile,
    description: str,
    search: DocumentSearchService,
) -> SearchInsights | None:
    """Step 5: Optional document-index insights. None when search is off or failing."""
    if not search.configured:
        logger.info("Document search not configured, skipping insights")
        return None
    try:
        results = await search.search(profile, description)
    except Exception as e:
        logger.warning(f"Document search not available: {e}")
        return None
    return summarize_insights(results, profile)
