import re
import logging
import statistics
from dataclasses import dataclass
from types import MappingProxyType

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.models.valuations import ValueRange, ValuationEstimate, ValuationResult

logger = logging.getLogger(__name__)

DEFAULT_MULTIPLE = 8.0
DEFAULT_GROWTH_PREMIUM = 0.15
DEFAULT_RISK_DISCOUNT = 0.25
DEFAULT_CONFIDENCES = (0.4, 0.3, 0.35)
# Default path has no comparable spread; use a +/-30% band around the multiple.
DEFAULT_BAND = 0.30

MAX_GROWTH_PREMIUM = 0.35
BASE_RISK_DISCOUNT = 0.15
MIN_RISK_DISCOUNT = 0.10
MAX_RISK_DISCOUNT = 0.40
RISK_FACTOR_PENALTY = 0.03

_INDUSTRY_MULTIPLES = MappingProxyType({
    "B2B SaaS": 8.5,
    "Manufacturing Tech": 6.2,
    "E-commerce": 4.8,
    "Fintech": 7.3,
    "Healthcare Tech": 9.1,
    "AI Software": 12.5,
    "Data Analytics": 10.2,
})

_HIGH_RISK_TERMS = ("competition", "market", "regulation", "customer concentration")

_PERCENT = re.compile(r"(\d+)%")


@dataclass(frozen=True)
class MultipleStats:
    p25: float
    median: float
    p75: float


def industry_default_multiple(industry: str) -> float:
    """Look up a fallback EV/Revenue multiple; substring match in either direction."""
    industry_lower = industry.lower()
    for key, multiple in _INDUSTRY_MULTIPLES.items():
        key_lower = key.lower()
        if key_lower in industry_lower or industry_lower in key_lower:
            return multiple
    return DEFAULT_MULTIPLE


def multiple_stats(multiples: list[float]) -> MultipleStats:
    """Order statistics by index (no interpolation): [n//2], [0.25n], [0.75n]."""
    ordered = sorted(multiples)
    n = len(ordered)
    return MultipleStats(
        p25=ordered[int(n * 0.25)],
        median=ordered[n // 2],
        p75=ordered[int(n * 0.75)],
    )


def _mean_one_year_change(comparables: list[EnrichedComparable]) -> float:
    if not comparables:
        return 0.0
    return statistics.mean(c.one_year_change for c in comparables)


def growth_premium(profile: CompanyProfile, comparables: list[EnrichedComparable]) -> float:
    stage = profile.growth_stage.lower()

    if "high" in stage or "rapid" in stage:
        premium = 0.25
    elif "growth" in stage:
        premium = 0.15
    elif "early" in stage:
        premium = 0.20
    else:
        premium = 0.10

    growth_match = _PERCENT.search(profile.growth_stage)
    if growth_match:
        growth_rate = int(growth_match.group(1))
        if growth_rate > 50:
            premium += 0.15
        elif growth_rate > 30:
            premium += 0.10
        elif growth_rate > 20:
            premium += 0.05

    # Premium for outperforming public markets
    if _mean_one_year_change(comparables) < 10:
        premium += 0.05

    return min(premium, MAX_GROWTH_PREMIUM)


def risk_discount(profile: CompanyProfile, comparables: list[EnrichedComparable]) -> float:
    discount = BASE_RISK_DISCOUNT
    stage = profile.growth_stage.lower()

    if "early" in stage:
        discount += 0.10
    if "mature" in stage:
        discount -= 0.05

    high_risk_factors = sum(
        1 for risk in profile.risk_factors
        if any(term in risk.lower() for term in _HIGH_RISK_TERMS)
    )
    discount += high_risk_factors * RISK_FACTOR_PENALTY

    avg_change = _mean_one_year_change(comparables)
    if avg_change < -10:
        discount += 0.08
    elif avg_change > 20:
        discount -= 0.03

    return min(max(discount, MIN_RISK_DISCOUNT), MAX_RISK_DISCOUNT)


def build_estimates(
    revenue: float,
    stats: MultipleStats,
    premium: float,
    discount: float,
    confidences: tuple[float, float, float],
    explanations: tuple[str, str, str],
) -> tuple[ValuationEstimate, ValuationEstimate, ValuationEstimate]:
    """Chain base -> growth-adjusted -> risk-adjusted estimates.

    Ranges widen asymmetrically: growth stretches the upside (0.5x / 1.2x of the
    premium), risk cuts the downside harder (1.2x / 0.8x of the discount).
    """
    base_valuation = revenue * stats.median
    base_range = ValueRange(min=revenue * stats.p25, max=revenue * stats.p75)

    growth_valuation = base_valuation * (1 + premium)
    growth_range = ValueRange(
        min=base_range.min * (1 + premium * 0.5),
        max=base_range.max * (1 + premium * 1.2),
    )

    risk_valuation = growth_valuation * (1 - discount)
    risk_range = ValueRange(
        min=growth_range.min * (1 - discount * 1.2),
        max=growth_range.max * (1 - discount * 0.8),
    )

    base_conf, growth_conf, risk_conf = (min(max(c, 0.0), 1.0) for c in confidences)

    return (
        ValuationEstimate(
            method="revenue_multiple", factor=stats.median, valuation=base_valuation,
            range=base_range, confidence=base_conf, confidence_explanation=explanations[0],
        ),
        ValuationEstimate(
            method="growth_adjusted", factor=premium, valuation=growth_valuation,
            range=growth_range, confidence=growth_conf, confidence_explanation=explanations[1],
        ),
        ValuationEstimate(
            method="risk_adjusted", factor=discount, valuation=risk_valuation,
            range=risk_range, confidence=risk_conf, confidence_explanation=explanations[2],
        ),
    )


def _default_valuation(profile: CompanyProfile, revenue: float) -> ValuationResult:
    multiple = industry_default_multiple(profile.industry)
    stats = MultipleStats(
        p25=multiple * (1 - DEFAULT_BAND),
        median=multiple,
        p75=multiple * (1 + DEFAULT_BAND),
    )
    explanations = (
        f"Confidence is based on a default {multiple:.1f}x EV/Revenue multiple for "
        f"'{profile.industry}'; no comparable company had usable market data.",
        f"Confidence is based on a default growth premium of {DEFAULT_GROWTH_PREMIUM:.0%} "
        f"rather than market data.",
        f"Confidence is based on a default risk discount of {DEFAULT_RISK_DISCOUNT:.0%} "
        f"rather than market data.",
    )
    logger.warning(
        f"No usable EV/Revenue multiples; using default {multiple:.1f}x for industry '{profile.industry}'"
    )
    base, growth, risk = build_estimates(
        revenue, stats, DEFAULT_GROWTH_PREMIUM, DEFAULT_RISK_DISCOUNT,
        DEFAULT_CONFIDENCES, explanations,
    )
    return ValuationResult(
        revenue_multiple=base,
        growth_adjusted=growth,
        risk_adjusted=risk,
        revenue=revenue,
        comparable_count=0,
        used_default_multiple=True,
    )


def compute_valuation(
    profile: CompanyProfile,
    revenue: float,
    comparables: list[EnrichedComparable],
) -> ValuationResult:
    """Three layered estimates: revenue multiple, growth-adjusted, risk-adjusted."""
    usable = [c for c in comparables if c.has_usable_multiple]
    if not usable:
        return _default_valuation(profile, revenue)

    stats = multiple_stats([c.ev_to_revenue for c in usable])

    base_confidence = min(0.95, 0.6 + len(usable) * 0.05)
    industry_match_score = statistics.mean(c.match_score for c in usable) / 100
    adjusted_confidence = base_confidence * (0.7 + industry_match_score * 0.3)

    explanation = (
        f"Confidence is based on {len(usable)} comparable companies, industry match score of "
        f"{industry_match_score * 100:.0f}%, and a median EV/Revenue multiple of {stats.median:.2f}x. "
        f"The spread of multiples (P25-P75) is {stats.p75 - stats.p25:.2f}x. "
        f"More comparables and higher industry match increase confidence."
    )

    # Premium and discount look at every comparable, not only the usable ones.
    premium = growth_premium(profile, comparables)
    discount = risk_discount(profile, comparables)

    base, growth, risk = build_estimates(
        revenue, stats, premium, discount,
        (adjusted_confidence, adjusted_confidence * 0.9, adjusted_confidence * 0.85),
        (explanation, explanation, explanation),
    )

    logger.info(
        f"Valuation: {len(usable)}/{len(comparables)} usable comps, median={stats.median:.2f}x, "
        f"base=${base.valuation:,.0f}, premium={premium:.2f}, discount={discount:.2f}, "
        f"risk-adjusted=${risk.valuation:,.0f}"
    )

    return ValuationResult(
        revenue_multiple=base,
        growth_adjusted=growth,
        risk_adjusted=risk,
        revenue=revenue,
        comparable_count=len(usable),
    )
