"""Rank the reference universe of public companies against a target profile.

Scores are additive: industry (100 / 70 / 40), region (30 / 25 / 15) and a
business-model refinement (20), plus a small random jitter so equal scores do
not always come back in the same order. The total is capped at 100 and only
candidates scoring above MIN_MATCH_SCORE are returned.
"""
import random
import re
import logging
from types import MappingProxyType
from typing import Iterable

from comp_analyzer.models.reference import MatchTarget, ReferenceCompany, ScoredCandidate

logger = logging.getLogger(__name__)

MAX_MATCH_SCORE = 100.0
MIN_MATCH_SCORE = 30.0
DEFAULT_JITTER = 5.0

EXACT_INDUSTRY_POINTS = 100.0
PARTIAL_INDUSTRY_POINTS = 70.0
SECTOR_POINTS = 40.0
EXACT_REGION_POINTS = 30.0
GLOBAL_REGION_POINTS = 25.0
ALIAS_REGION_POINTS = 15.0
BUSINESS_MODEL_POINTS = 20.0

_INDUSTRY_KEYWORDS = (
    "saas", "software", "tech", "technology", "manufacturing",
    "fintech", "healthcare", "ai", "data", "analytics",
)

_SECTOR_KEYWORDS = MappingProxyType({
    "Technology": ("tech", "software", "saas", "ai", "data", "digital", "platform"),
    "Financial Services": ("fintech", "finance", "payment", "banking"),
    "Healthcare": ("healthcare", "medical", "health", "pharma"),
    "Manufacturing": ("manufacturing", "industrial", "automation"),
})

_REGION_ALIASES = MappingProxyType({
    "north america": ("usa", "us", "america", "canada", "north american"),
    "europe": ("european", "eu", "uk", "britain", "germany", "france"),
    "asia": ("asian", "china", "japan", "singapore", "india"),
    "global": ("worldwide", "international", "multinational"),
})

_MODEL_TERMS = MappingProxyType({
    "platform": ("platform", "marketplace", "network"),
    "saas": ("saas", "software", "cloud", "subscription"),
    "automation": ("automation", "workflow", "process"),
    "analytics": ("analytics", "data", "insights", "intelligence"),
})

_TERM_SPLIT = re.compile(r"[\s-]+")


def _terms(label: str) -> list[str]:
    return [t for t in _TERM_SPLIT.split(label.lower()) if t]


def exact_industry_match(company_industry: str, target_industry: str) -> bool:
    return company_industry.lower() == target_industry.lower()


def partial_industry_match(company_industry: str, target_industry: str) -> bool:
    company_terms = _terms(company_industry)
    target_terms = _terms(target_industry)

    for keyword in _INDUSTRY_KEYWORDS:
        if any(keyword in t for t in company_terms) and any(keyword in t for t in target_terms):
            return True

    return any(
        len(ct) > 3 and len(tt) > 3 and (ct in tt or tt in ct)
        for ct in company_terms
        for tt in target_terms
    )


def sector_match(company_sector: str, target_industry: str) -> bool:
    target_lower = target_industry.lower()
    return any(term in target_lower for term in _SECTOR_KEYWORDS.get(company_sector, ()))


def exact_region_match(company_region: str, target_region: str) -> bool:
    return company_region.lower() == target_region.lower()


def partial_region_match(company_region: str, target_region: str) -> bool:
    company_lower = company_region.lower()
    target_lower = target_region.lower()

    for region, aliases in _REGION_ALIASES.items():
        names = (region,) + aliases
        if any(n in company_lower for n in names) and any(n in target_lower for n in names):
            return True
    return False


def business_model_match(company_description: str, target_industry: str) -> bool:
    description_lower = company_description.lower()
    industry_lower = target_industry.lower()
    return any(
        any(term in industry_lower for term in terms) and any(term in description_lower for term in terms)
        for terms in _MODEL_TERMS.values()
    )


def score_company(company: ReferenceCompany, target: MatchTarget) -> float:
    """Deterministic part of the match score, before jitter and capping."""
    score = 0.0

    if exact_industry_match(company.industry, target.industry):
        score += EXACT_INDUSTRY_POINTS
    elif partial_industry_match(company.industry, target.industry):
        score += PARTIAL_INDUSTRY_POINTS
    elif sector_match(company.sector, target.industry):
        score += SECTOR_POINTS

    if exact_region_match(company.region, target.region):
        score += EXACT_REGION_POINTS
    elif company.region == "Global":
        score += GLOBAL_REGION_POINTS
    elif partial_region_match(company.region, target.region):
        score += ALIAS_REGION_POINTS

    if company.description and business_model_match(company.description, target.industry):
        score += BUSINESS_MODEL_POINTS

    return score


def match_comparables(
    target: MatchTarget,
    universe: Iterable[ReferenceCompany],
    limit: int = 5,
    rng: random.Random | None = None,
    jitter: float = DEFAULT_JITTER,
) -> list[ScoredCandidate]:
    """Return at most `limit` candidates scoring above MIN_MATCH_SCORE, best first.

    The tie-break jitter makes ordering among near-equal scores vary between
    runs; pass a seeded `rng` (or `jitter=0`) for reproducible output.
    """
    if rng is None:
        rng = random.Random()

    scored: list[ScoredCandidate] = []
    for company in universe:
        score = score_company(company, target)
        if jitter > 0:
            score += rng.random() * jitter
        scored.append(ScoredCandidate(company=company, match_score=min(score, MAX_MATCH_SCORE)))

    passing = [c for c in scored if c.match_score > MIN_MATCH_SCORE]
    passing.sort(key=lambda c: c.match_score, reverse=True)
    selected = passing[:max(limit, 0)]

    logger.info(
        f"Matched {len(passing)}/{len(scored)} reference companies for "
        f"industry='{target.industry}', region='{target.region}', "
        f"business_model='{target.business_model}'; returning {[c.company.ticker for c in selected]}"
    )
    return selected
