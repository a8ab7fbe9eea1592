import asyncio
import os
import re
import logging

import requests

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.search import SearchResult, SearchInsights

logger = logging.getLogger(__name__)

API_VERSION = "2023-11-01"

_THEME_KEYWORDS = (
    "valuation",
    "growth strategy",
    "market expansion",
    "investment strategy",
    "competitive advantage",
    "strategic partnership",
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_NON_WORD = re.compile(r"[^\w\s]")


class SearchUnavailableError(Exception):
    """Raised when the document index cannot be queried."""


class DocumentSearchService:
    """Azure Cognitive Search client over the REST API.

    Disabled (``configured`` is False) unless AZURE_SEARCH_ENDPOINT,
    AZURE_SEARCH_KEY and AZURE_SEARCH_INDEX_NAME are all set.
    """

    def __init__(self, timeout: float = 10.0):
        self.endpoint = os.getenv("AZURE_SEARCH_ENDPOINT", "").rstrip("/")
        self.api_key = os.getenv("AZURE_SEARCH_KEY", "")
        self.index_name = os.getenv("AZURE_SEARCH_INDEX_NAME", "")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.api_key and self.index_name)

    async def search(self, profile: CompanyProfile, description: str, top: int = 10) -> list[SearchResult]:
        return await asyncio.to_thread(self._search_sync, profile, description, top)

    def _search_sync(self, profile: CompanyProfile, description: str, top: int) -> list[SearchResult]:
        if not self.configured:
            raise SearchUnavailableError(
                "Search configuration missing. Provide AZURE_SEARCH_ENDPOINT, AZURE_SEARCH_KEY "
                "and AZURE_SEARCH_INDEX_NAME"
            )

        url = f"{self.endpoint}/indexes/{self.index_name}/docs/search?api-version={API_VERSION}"
        body = {
            "search": build_search_query(profile, description),
            "searchMode": "any",
            "queryType": "full",
            "top": top,
            "select": "*",
            "orderby": "search.score() desc",
        }
        try:
            response = requests.post(
                url,
                json=body,
                headers={"Content-Type": "application/json", "api-key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise SearchUnavailableError(f"Search request failed: {e}") from e

        items = response.json().get("value") or []
        results = [
            SearchResult(
                id=str(item.get("@search.id") or item.get("id") or i),
                content=_content_text(item.get("content")),
                title=item.get("title") or "",
                company_name=item.get("companyName") or "",
                region=item.get("region") or "",
                relevance_score=float(item.get("@search.score") or 0.0),
            )
            for i, item in enumerate(items)
        ]
        logger.info(f"Document search returned {len(results)} results")
        return results


def _content_text(content) -> str:
    # Index documents store content either as a string or as a list of chunks
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            c.get("content", "") if isinstance(c, dict) else str(c) for c in content
        )
    return "" if content is None else str(content)


def build_search_query(profile: CompanyProfile, description: str) -> str:
    terms: list[str] = []

    description_terms = [t for t in _NON_WORD.sub(" ", description.lower()).split() if len(t) > 3]
    terms.extend(description_terms[:10])

    if profile.industry:
        terms.append(" OR ".join(_THEME_KEYWORDS))
    if profile.region:
        terms.append(profile.region)
    if profile.business_model:
        terms.extend(t for t in profile.business_model.split() if len(t) > 2)

    return " ".join(terms)


def extract_relevant_snippet(content: str, profile: CompanyProfile, max_length: int = 1000) -> str:
    keywords = [
        *_THEME_KEYWORDS,
        profile.industry.lower(),
        profile.region.lower(),
        *profile.business_model.lower().split(),
    ]
    keywords = [k for k in keywords if k]

    relevant = [
        sentence for sentence in _SENTENCE_SPLIT.split(content)
        if any(k in sentence.lower() for k in keywords)
    ]
    snippet = ".".join(relevant[:3]).strip()
    if len(snippet) > max_length:
        snippet = snippet[:max_length] + "..."
    return snippet


def summarize_insights(results: list[SearchResult], profile: CompanyProfile) -> SearchInsights:
    if not results:
        return SearchInsights(summary="No additional information found in the document index.")

    top_results = sorted(results, key=lambda r: r.relevance_score, reverse=True)[:5]

    insights = SearchInsights()
    for result in top_results:
        content = result.content.lower()
        snippet = extract_relevant_snippet(result.content, profile)

        if "market" in content or "trend" in content or "growth" in content:
            insights.market_data.append(snippet)
        elif "competitor" in content or "competitive" in content:
            insights.competitive_intel.append(snippet)
        elif "risk" in content or "challenge" in content or "threat" in content:
            insights.risk_factors.append(snippet)
        else:
            insights.insights.append(snippet)

    avg_score = sum(r.relevance_score for r in top_results) / len(top_results)
    insights.summary = (
        f"Found {len(top_results)} relevant documents in the internal knowledge base using the "
        f"company's profile (industry, region, and business model). The average relevance score is "
        f"{avg_score:.2f}. These documents may inform the valuation through growth trends, "
        f"competitive dynamics, and potential risks."
    )
    return insights
