import re

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.models.valuations import ValuationResult, ValuationEstimate
from comp_analyzer.models.search import SearchInsights
from comp_analyzer.models.report import LLMCallLog
from comp_analyzer.services.llm_service import LLMService

_CODE_FENCE_START = re.compile(r"^```(?:html)?\s*", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"```\s*$")

SYSTEM_PROMPT = (
    "You are a managing director at a top-tier investment bank with 20+ years of experience in "
    "private company valuations and M&A. Generate institutional-quality investment analysis with "
    "detailed supporting rationale, specific comparable analysis, and comprehensive risk assessment. "
    "Your analysis will be used for investment committee decisions involving significant capital deployment."
)

REPORT_STRUCTURE = """Generate a detailed, professional investment analysis structured as follows:

**EXECUTIVE SUMMARY**
Provide a 2-3 sentence high-level investment thesis and valuation conclusion.

**INVESTMENT THESIS**
Strategic rationale: market opportunity, competitive positioning, growth potential. Reference specific comparables.

**VALUATION ASSESSMENT**
Explain the choice of multiples, the reasonableness of the valuation relative to comparables, and the adjustments made.

**COMPETITIVE LANDSCAPE ANALYSIS**
Compare this company with the identified public comparables.

**KEY INVESTMENT HIGHLIGHTS**
List 4-5 specific positive factors supporting the investment case.

**RISK ANALYSIS & MITIGATION**
Identify primary risks, compare the risk profile to the comparables, and discuss mitigation.

**VALUATION SUMMARY & RECOMMENDATION**
Final recommendation, confidence levels, and suggested due diligence areas.

Format as HTML with paragraph tags, bold headings, and bullet points where helpful. Be specific with numbers."""


def _millions(value: float, digits: int = 1) -> str:
    return f"${value / 1_000_000:.{digits}f}M"


def _billions(value: float) -> str:
    return f"${value / 1_000_000_000:.1f}B"


def _optional_multiple(value: float | None) -> str:
    return f"{value:.1f}x" if value is not None else "N/A"


def _signed_pct(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.1f}%"


def _comparable_line(comp: EnrichedComparable) -> str:
    return (
        f"{comp.name} ({comp.ticker}): Market Cap {_billions(comp.market_cap)}, "
        f"Revenue {_billions(comp.revenue)}, EV/Revenue {_optional_multiple(comp.ev_to_revenue)}, "
        f"P/E {_optional_multiple(comp.pe_ratio)}, 1Y Performance {_signed_pct(comp.one_year_change)}, "
        f"Match Score {comp.match_score:.0f}%, Source {comp.data_source}"
    )


def _estimate_block(index: int, title: str, estimate: ValuationEstimate, factor_label: str) -> str:
    return (
        f"{index}. {title}: {_millions(estimate.valuation)}\n"
        f"   - {factor_label}\n"
        f"   - Confidence Level: {estimate.confidence * 100:.0f}% ({estimate.confidence_explanation})\n"
        f"   - Range: {_millions(estimate.range.min, 0)} - {_millions(estimate.range.max, 0)}"
    )


def _bullets(items: list[str], empty: str) -> str:
    if not items:
        return f"- {empty}"
    return "\n".join(f"- {item}" for item in items)


def _insights_section(insights: SearchInsights) -> str:
    return (
        "ADDITIONAL MARKET INTELLIGENCE (document search):\n"
        f"{insights.summary}\n\n"
        f"Market Insights:\n{_bullets(insights.market_data, 'No specific market data found')}\n\n"
        f"Competitive Intelligence:\n{_bullets(insights.competitive_intel, 'No specific competitive intelligence found')}\n\n"
        f"Additional Risk Factors:\n{_bullets(insights.risk_factors, 'No additional risk factors identified')}\n\n"
        f"Key Insights:\n{_bullets(insights.insights, 'No additional insights available')}"
    )


def build_narrative_prompt(
    profile: CompanyProfile,
    comparables: list[EnrichedComparable],
    valuation: ValuationResult,
    description: str,
    insights: SearchInsights | None = None,
) -> str:
    usable = [c for c in comparables if c.has_usable_multiple]
    avg_multiple = sum(c.ev_to_revenue for c in usable) / len(usable) if usable else 0.0
    avg_change = sum(c.one_year_change for c in comparables) / len(comparables) if comparables else 0.0
    avg_cap = sum(c.market_cap for c in comparables) / len(comparables) if comparables else 0.0

    multiple_note = "industry default, no usable comparables" if valuation.used_default_multiple else "median of comparables"

    sections = [
        "Generate a comprehensive, investment-grade analysis for the following private company "
        "based on comparable analysis and multiple valuation methodologies.",
        f"COMPANY DESCRIPTION:\n{description}",
        "COMPANY PROFILE:\n"
        f"Industry: {profile.industry}\n"
        f"Region: {profile.region}\n"
        f"Revenue: {profile.revenue} (normalized to {_millions(valuation.revenue)})\n"
        f"Business Model: {profile.business_model}\n"
        f"Growth Stage: {profile.growth_stage}\n"
        f"Market Position: {profile.market_position}\n"
        f"Key Strengths: {profile.strengths}\n"
        f"Competitive Advantages: {', '.join(profile.competitive_advantages)}\n"
        f"Risk Factors: {', '.join(profile.risk_factors)}",
        "COMPARABLE COMPANIES ANALYSIS:\n"
        f"Total Comparables Identified: {len(comparables)}\n"
        + _bullets([_comparable_line(c) for c in comparables], "No comparables identified"),
        "COMPARABLE METRICS SUMMARY:\n"
        f"- Average EV/Revenue Multiple: {avg_multiple:.1f}x\n"
        f"- Average Market Cap: {_billions(avg_cap)}\n"
        f"- Average 1-Year Performance: {_signed_pct(avg_change)}\n"
        f"- Median EV/Revenue Applied: {valuation.revenue_multiple.factor:.1f}x ({multiple_note})",
        "VALUATION METHODOLOGY & RESULTS:\n"
        + "\n\n".join([
            _estimate_block(
                1, "Revenue Multiple Approach", valuation.revenue_multiple,
                f"Multiple Applied: {valuation.revenue_multiple.factor:.1f}x",
            ),
            _estimate_block(
                2, "Growth-Adjusted Valuation", valuation.growth_adjusted,
                f"Growth Premium Applied: +{valuation.growth_adjusted.factor * 100:.0f}%",
            ),
            _estimate_block(
                3, "Risk-Adjusted Final Valuation", valuation.risk_adjusted,
                f"Liquidity/Size Discount: -{valuation.risk_adjusted.factor * 100:.0f}%",
            ),
        ]),
    ]
    if insights is not None:
        sections.append(_insights_section(insights))
    sections.append(REPORT_STRUCTURE)
    return "\n\n".join(sections)


def strip_code_fences(text: str) -> str:
    text = _CODE_FENCE_START.sub("", text.strip())
    return _CODE_FENCE_END.sub("", text).strip()


async def generate_narrative(
    profile: CompanyProfile,
    comparables: list[EnrichedComparable],
    valuation: ValuationResult,
    description: str,
    insights: SearchInsights | None,
    llm: LLMService,
    call_logs: list[LLMCallLog] | None = None,
) -> str:
    """Step 7: Investment-committee narrative (HTML) from the computed numbers."""
    user_prompt = build_narrative_prompt(profile, comparables, valuation, description, insights)
    content = await llm.text_completion(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        step_name="narrate",
        call_logs=call_logs,
    )
    narrative = strip_code_fences(content)
    if not narrative:
        raise ValueError("Narrative model returned an empty response")
    return narrative


def fallback_narrative(profile: CompanyProfile, valuation: ValuationResult) -> str:
    """Template narrative used when the LLM is unavailable."""
    risk = valuation.risk_adjusted
    return "\n\n".join([
        "<p><strong>Investment Thesis:</strong> Based on the provided company description and comparable "
        f"analysis, this represents an interesting investment opportunity in the {profile.industry} sector.</p>",
        "<p><strong>Valuation Assessment:</strong> Our analysis suggests a fair value range of "
        f"{_millions(risk.range.min, 0)}-{_millions(risk.range.max, 0)}, with a central estimate of "
        f"{_millions(risk.valuation)}.</p>",
        "<p><strong>Key Considerations:</strong> The valuation reflects the company's position in "
        f"{profile.region} and competitive dynamics in the {profile.industry} market.</p>",
        "<p><strong>Risk Assessment:</strong> Standard risks for companies at this stage include market "
        "competition, execution risk, and economic sensitivity.</p>",
    ])
