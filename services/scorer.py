# services/scorer.py
"""Supplier match scoring with fixed business weights."""

from typing import List, Dict

from models import Opportunity, Supplier, SupplierMatch, parse_rating
from config import (
    MATCH_WEIGHTS, STRONG_MATCH_THRESHOLD, GOOD_MATCH_THRESHOLD, HIGH_RATING_THRESHOLD
)
from services.scoring import (
    naics_alignment, set_aside_compliance, rating_score, capability_overlap,
    gsa_bonus, round_half_up
)


class SupplierScorer:
    """Score one supplier against one opportunity."""

    def __init__(
        self,
        strong_threshold: int = STRONG_MATCH_THRESHOLD,
        good_threshold: int = GOOD_MATCH_THRESHOLD
    ):
        self.weights = MATCH_WEIGHTS
        self.strong_threshold = strong_threshold
        self.good_threshold = good_threshold

    def score(self, opportunity: Opportunity, supplier: Supplier) -> SupplierMatch:
        """Score a single supplier. Never raises on malformed numbers."""
        breakdown = self.breakdown(opportunity, supplier)

        total = (
            breakdown["naics"] * self.weights["naics"] +
            breakdown["gsa"] * self.weights["gsa"] +
            breakdown["set_aside"] * self.weights["set_aside"] +
            breakdown["rating"] * self.weights["rating"] +
            breakdown["capability"] * self.weights["capability"]
        )
        match_score = min(100, max(0, round_half_up(total)))

        return SupplierMatch(
            opportunity_id=opportunity.id,
            supplier_id=supplier.id,
            supplier_name=supplier.name,
            match_score=match_score,
            reasoning=self._reasoning(opportunity, supplier, match_score)
        )

    def breakdown(self, opportunity: Opportunity, supplier: Supplier) -> Dict[str, float]:
        """Unweighted sub-scores, keyed like MATCH_WEIGHTS."""
        return {
            "naics": naics_alignment(opportunity.naics_code, supplier.naics_codes).score,
            "gsa": gsa_bonus(supplier.gsa_schedule),
            "set_aside": set_aside_compliance(
                opportunity.set_aside_code, supplier.certifications
            ).score,
            "rating": rating_score(supplier.rating),
            "capability": capability_overlap(opportunity.description, supplier.capabilities)
        }

    def _reasoning(
        self,
        opportunity: Opportunity,
        supplier: Supplier,
        match_score: int
    ) -> List[str]:
        """Human-readable reasons, in check order."""
        reasons = []

        naics = naics_alignment(opportunity.naics_code, supplier.naics_codes)
        if naics.exact_match:
            reasons.append("Exact NAICS code match")
        elif naics.related_match:
            reasons.append("Related NAICS code experience")

        if supplier.gsa_schedule:
            reasons.append("GSA Schedule holder")

        set_aside = set_aside_compliance(opportunity.set_aside_code, supplier.certifications)
        if set_aside.matched:
            reasons.append(f"Qualified for {opportunity.set_aside_code} set-aside")

        if parse_rating(supplier.rating) >= HIGH_RATING_THRESHOLD:
            reasons.append("High performance rating")

        if match_score >= self.strong_threshold:
            reasons.append("Strong overall match")
        elif match_score >= self.good_threshold:
            reasons.append("Good potential match")

        return reasons


_default_scorer = SupplierScorer()


def score_supplier_match(opportunity: Opportunity, supplier: Supplier) -> SupplierMatch:
    """Score one (opportunity, supplier) pair with the default thresholds."""
    return _default_scorer.score(opportunity, supplier)
