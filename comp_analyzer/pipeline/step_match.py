import random

from comp_analyzer.models.profile import CompanyProfile
from comp_analyzer.models.reference import MatchTarget, ReferenceCompany, ScoredCandidate
from comp_analyzer.valuation.matcher import match_comparables


def select_comparables(
    profile: CompanyProfile,
    universe: tuple[ReferenceCompany, ...],
    limit: int,
    rng: random.Random | None = None,
) -> list[ScoredCandidate]:
    """Step 3: Rank the reference universe against the extracted profile."""
    target = MatchTarget(
        industry=profile.industry,
        region=profile.region,
        business_model=profile.business_model,
    )
    return match_comparables(target, universe, limit=limit, rng=rng)
