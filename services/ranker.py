# services/ranker.py
"""Rank a supplier pool for one opportunity."""

from typing import List, Optional

from models import Opportunity, Supplier, SupplierMatch
from config import DEFAULT_MATCH_LIMIT
from services.scorer import SupplierScorer
from services.pricing import PricingEstimator


def rank_suppliers(
    opportunity: Opportunity,
    suppliers: List[Supplier],
    limit: int = DEFAULT_MATCH_LIMIT,
    scorer: Optional[SupplierScorer] = None,
    estimator: Optional[PricingEstimator] = None
) -> List[SupplierMatch]:
    """
    Score every supplier, sort by match score and keep the top ``limit``.

    No activity filtering happens here; callers pass the pool they want
    ranked. Python's sort is stable, so suppliers with equal scores keep
    their input order.
    """
    scorer = scorer or SupplierScorer()
    estimator = estimator or PricingEstimator()

    matches = []
    for supplier in suppliers:
        match = scorer.score(opportunity, supplier)
        match.estimated_price = estimator.estimate_price(opportunity, supplier)
        match.estimated_delivery_days = estimator.estimate_delivery_days(opportunity, supplier)
        matches.append(match)

    ranked = sorted(matches, key=lambda m: m.match_score, reverse=True)
    return ranked[:max(0, limit)]
