from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.models.valuations import ValuationResult
from comp_analyzer.valuation.calculator import compute_valuation


def run_valuation(
    profile: CompanyProfile,
    revenue: float,
    comparables: list[EnrichedComparable],
) -> ValuationResult:
    """Step 6: Revenue-multiple, growth-adjusted and risk-adjusted estimates.

    Zero usable comparables is not an error; the calculator falls back to the
    industry default multiple.
    """
    return compute_valuation(profile, revenue, comparables)
