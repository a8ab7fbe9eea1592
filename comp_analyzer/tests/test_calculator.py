import pytest

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.market_data import EnrichedComparable
from comp_analyzer.valuation.calculator import (
    compute_valuation, multiple_stats, growth_premium, risk_discount, industry_default_multiple,
)


def _comp(ticker: str, ev_rev: float | None, change: float = 0.0, score: float = 100.0) -> EnrichedComparable:
    return EnrichedComparable(
        ticker=ticker,
        name=ticker,
        industry="B2B SaaS",
        ev_to_revenue=ev_rev,
        one_year_change=change,
        match_score=score,
        data_source="mock" if ev_rev else "unavailable",
    )


SCENARIO_A_MULTIPLES = [13.0, 4.9, 17.6, 7.1, 8.1]


@pytest.fixture
def saas_profile():
    return CompanyProfile(
        industry="B2B SaaS",
        region="North America",
        revenue="$12M ARR",
        growth_stage="Growth Stage (40% YoY)",
        risk_factors=["market competition", "customer concentration risk"],
    )


def test_multiple_stats_by_index():
    stats = multiple_stats(SCENARIO_A_MULTIPLES)
    assert stats.median == 8.1
    assert stats.p25 == 7.1
    assert stats.p75 == 13.0


def test_revenue_multiple_estimate(saas_profile):
    comps = [_comp(f"C{i}", m) for i, m in enumerate(SCENARIO_A_MULTIPLES)]
    result = compute_valuation(saas_profile, 12_000_000, comps)

    base = result.revenue_multiple
    assert base.factor == 8.1
    assert base.valuation == pytest.approx(12_000_000 * 8.1)
    assert base.range.min == pytest.approx(12_000_000 * 7.1)
    assert base.range.max == pytest.approx(12_000_000 * 13.0)
    assert result.comparable_count == 5
    assert not result.used_default_multiple


def test_confidence_tiers(saas_profile):
    comps = [_comp(f"C{i}", m) for i, m in enumerate(SCENARIO_A_MULTIPLES)]
    result = compute_valuation(saas_profile, 12_000_000, comps)
    # 0.6 + 5 * 0.05, scaled by (0.7 + 1.0 * 0.3)
    assert result.revenue_multiple.confidence == pytest.approx(0.85)
    assert result.growth_adjusted.confidence == pytest.approx(0.85 * 0.9)
    assert result.risk_adjusted.confidence == pytest.approx(0.85 * 0.85)


def test_estimates_chain_multiplicatively(saas_profile):
    comps = [_comp(f"C{i}", m, change=12.0) for i, m in enumerate(SCENARIO_A_MULTIPLES)]
    result = compute_valuation(saas_profile, 12_000_000, comps)
    base, growth, risk = result.estimates()

    assert [e.method for e in result.estimates()] == ["revenue_multiple", "growth_adjusted", "risk_adjusted"]
    assert growth.valuation == pytest.approx(base.valuation * (1 + growth.factor))
    assert risk.valuation == pytest.approx(growth.valuation * (1 - risk.factor))
    assert growth.range.min == pytest.approx(base.range.min * (1 + growth.factor * 0.5))
    assert growth.range.max == pytest.approx(base.range.max * (1 + growth.factor * 1.2))
    assert risk.range.min == pytest.approx(growth.range.min * (1 - risk.factor * 1.2))
    assert risk.range.max == pytest.approx(growth.range.max * (1 - risk.factor * 0.8))


def test_default_multiple_when_no_usable_comps(saas_profile):
    comps = [_comp("A", None), _comp("B", 0.0), _comp("C", None)]
    result = compute_valuation(saas_profile, 10_000_000, comps)

    assert result.used_default_multiple
    assert result.comparable_count == 0
    assert result.revenue_multiple.factor == 8.5
    assert result.revenue_multiple.valuation == pytest.approx(85_000_000)
    assert result.revenue_multiple.range.min == pytest.approx(85_000_000 * 0.7)
    assert result.revenue_multiple.range.max == pytest.approx(85_000_000 * 1.3)
    assert result.growth_adjusted.valuation == pytest.approx(85_000_000 * 1.15)
    assert result.risk_adjusted.valuation == pytest.approx(85_000_000 * 1.15 * 0.75)
    assert [e.confidence for e in result.estimates()] == [0.4, 0.3, 0.35]


def test_default_multiple_empty_comparable_list(saas_profile):
    result = compute_valuation(saas_profile, 10_000_000, [])
    assert result.used_default_multiple
    assert result.revenue_multiple.factor == 8.5


def test_industry_default_lookup():
    assert industry_default_multiple("B2B SaaS - Manufacturing Tech") == 8.5
    assert industry_default_multiple("AI Software") == 12.5
    assert industry_default_multiple("Quantum Widgets") == 8.0


def test_growth_premium_stage_and_rate(saas_profile):
    # "growth" 0.15 + 40% tier 0.10; comparables average >= 10% so no market addend
    assert growth_premium(saas_profile, [_comp("A", 5.0, change=15.0)]) == pytest.approx(0.25)
    # average 1Y change below 10% adds 0.05
    assert growth_premium(saas_profile, [_comp("A", 5.0, change=2.0)]) == pytest.approx(0.30)


def test_growth_premium_capped():
    profile = CompanyProfile(growth_stage="High growth (60% YoY)")
    assert growth_premium(profile, []) == pytest.approx(0.35)


def test_growth_premium_mid_rate_tier():
    profile = CompanyProfile(growth_stage="Growth (25% YoY)")
    assert growth_premium(profile, [_comp("A", 5.0, change=15.0)]) == pytest.approx(0.15 + 0.05)


def test_growth_premium_top_rate_tier_below_cap():
    profile = CompanyProfile(growth_stage="Series A (60% YoY)")
    assert growth_premium(profile, [_comp("A", 5.0, change=15.0)]) == pytest.approx(0.10 + 0.15)


def test_risk_discount_counts_each_risk_once():
    profile = CompanyProfile(
        growth_stage="Series B",
        risk_factors=["market competition", "customer concentration risk"],
    )
    assert risk_discount(profile, []) == pytest.approx(0.21)


def test_risk_discount_stage_and_market():
    early = CompanyProfile(growth_stage="Early stage", risk_factors=["key person"])
    assert risk_discount(early, [_comp("A", 5.0, change=-20.0)]) == pytest.approx(0.15 + 0.10 + 0.08)


def test_risk_discount_early_and_mature_both_apply():
    profile = CompanyProfile(growth_stage="Early-to-mature transition", risk_factors=["key person"])
    assert risk_discount(profile, []) == pytest.approx(0.15 + 0.10 - 0.05)


def test_risk_discount_strong_public_market():
    profile = CompanyProfile(growth_stage="Series B", risk_factors=["key person"])
    assert risk_discount(profile, [_comp("A", 5.0, change=30.0)]) == pytest.approx(0.15 - 0.03)


def test_risk_discount_clamped():
    risky = CompanyProfile(growth_stage="Early stage", risk_factors=["competition"] * 10)
    assert risk_discount(risky, []) == pytest.approx(0.40)

    safe = CompanyProfile(growth_stage="Mature", risk_factors=["key person"])
    assert risk_discount(safe, [_comp("A", 5.0, change=30.0)]) == pytest.approx(0.10)


def test_confidence_in_unit_interval():
    profile = CompanyProfile()
    comps = [_comp(f"C{i}", 2.0 + i, score=31.0 + i) for i in range(12)]
    result = compute_valuation(profile, 5_000_000, comps)
    for estimate in result.estimates():
        assert 0.0 <= estimate.confidence <= 1.0
