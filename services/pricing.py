# services/pricing.py
"""Price and lead-time estimates for an (opportunity, supplier) pair."""

import random
from typing import Callable, List, Optional

from models import Opportunity, Supplier, PricingEstimate, ContractType, parse_rating
from config import (
    PRICE_RANDOM_MIN, PRICE_RANDOM_MAX, RATING_MULTIPLIER_BASE, RATING_MULTIPLIER_SPAN,
    MAX_RATING, BASE_DELIVERY_DAYS, TIME_AND_MATERIALS_DELIVERY_DAYS,
    URGENT_DELIVERY_FACTOR, GSA_DELIVERY_FACTOR
)
from services.scoring import round_half_up

RandomSource = Callable[[], float]

# NAICS prefix -> (category, share of total, confidence, min share, max share)
CATEGORY_BREAKDOWNS = {
    "5415": [  # IT services
        ("Labor Costs", 0.75, "High", 0.65, 0.85),
        ("Technology/Equipment", 0.15, "Medium", 0.10, 0.25),
    ],
    "3372": [  # Office furniture
        ("Materials", 0.60, "High", 0.50, 0.70),
        ("Delivery/Installation", 0.25, "Medium", 0.15, 0.35),
    ],
}


def default_random_source() -> float:
    """Market variance factor, uniform in [0.85, 1.15]."""
    return random.uniform(PRICE_RANDOM_MIN, PRICE_RANDOM_MAX)


class PricingEstimator:
    """
    Estimate supplier price and delivery time.

    Pricing is deliberately noisy: pass a fixed ``random_source`` to make it
    reproducible.
    """

    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random_source = random_source or default_random_source

    def estimate_price(self, opportunity: Opportunity, supplier: Supplier) -> Optional[int]:
        """Return None when the opportunity has no (or a zero) estimated value."""
        if not opportunity.estimated_value:
            return None

        rating = parse_rating(supplier.rating)
        rating_multiplier = RATING_MULTIPLIER_BASE + (rating / MAX_RATING) * RATING_MULTIPLIER_SPAN
        random_factor = self.random_source()

        return round_half_up(opportunity.estimated_value * rating_multiplier * random_factor)

    def estimate_delivery_days(self, opportunity: Opportunity, supplier: Supplier) -> int:
        days = BASE_DELIVERY_DAYS

        if opportunity.contract_type is ContractType.TIME_AND_MATERIALS:
            days = TIME_AND_MATERIALS_DELIVERY_DAYS

        if "urgent" in (opportunity.description or "").lower():
            days = round_half_up(days * URGENT_DELIVERY_FACTOR)

        if supplier.gsa_schedule:
            days = round_half_up(days * GSA_DELIVERY_FACTOR)

        return days


def estimate_pricing(
    opportunity: Opportunity,
    supplier: Supplier,
    random_source: Optional[RandomSource] = None
) -> Optional[int]:
    return PricingEstimator(random_source).estimate_price(opportunity, supplier)


def estimate_delivery_days(opportunity: Opportunity, supplier: Supplier) -> int:
    return PricingEstimator().estimate_delivery_days(opportunity, supplier)


def generate_pricing_estimates(opportunity: Opportunity) -> List[PricingEstimate]:
    """Total contract value estimate plus NAICS category breakdowns."""
    if not opportunity.estimated_value:
        return []

    value = opportunity.estimated_value
    estimates = [
        PricingEstimate(
            category="Total Contract Value",
            estimated_price=round_half_up(value),
            confidence="Medium",
            price_min=round_half_up(value * PRICE_RANDOM_MIN),
            price_max=round_half_up(value * PRICE_RANDOM_MAX)
        )
    ]

    if opportunity.naics_code:
        for prefix, categories in CATEGORY_BREAKDOWNS.items():
            if not opportunity.naics_code.startswith(prefix):
                continue
            for category, share, confidence, low, high in categories:
                estimates.append(PricingEstimate(
                    category=category,
                    estimated_price=round_half_up(value * share),
                    confidence=confidence,
                    price_min=round_half_up(value * low),
                    price_max=round_half_up(value * high)
                ))

    return estimates
