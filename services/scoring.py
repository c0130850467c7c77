# services/scoring.py
"""Scoring primitives: pure 0-100 sub-scores for one (opportunity, supplier) pair."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from config import (
    NAICS_EXACT_SCORE, NAICS_RELATED_SCORE, NAICS_NEUTRAL_SCORE, NAICS_PREFIX_LENGTH,
    OPEN_COMPETITION_SCORE, CAPABILITY_NEUTRAL_SCORE, GSA_HOLDER_SCORE,
    GSA_NON_HOLDER_SCORE, MAX_RATING, SET_ASIDE_CERTIFICATIONS
)
from models import parse_rating


@dataclass
class NaicsAlignment:
    score: int
    exact_match: bool
    related_match: bool = False


@dataclass
class SetAsideCompliance:
    score: int
    matched: bool


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (88.5 -> 89)."""
    # Trim float noise first so 88.49999999999999 still rounds as 88.5
    return int(Decimal(repr(round(value, 9))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def naics_alignment(opp_code: Optional[str], supplier_codes: Iterable[str]) -> NaicsAlignment:
    """Exact code 100, same 4-character prefix 70, no opportunity code 50, else 0."""
    if not opp_code:
        return NaicsAlignment(score=NAICS_NEUTRAL_SCORE, exact_match=False)

    codes = list(supplier_codes or [])
    if opp_code in codes:
        return NaicsAlignment(score=NAICS_EXACT_SCORE, exact_match=True)

    prefix = opp_code[:NAICS_PREFIX_LENGTH]
    if any(code.startswith(prefix) for code in codes):
        return NaicsAlignment(score=NAICS_RELATED_SCORE, exact_match=False, related_match=True)

    return NaicsAlignment(score=0, exact_match=False)


def set_aside_compliance(
    set_aside_code: Optional[str],
    certifications: Iterable[str]
) -> SetAsideCompliance:
    """
    Check supplier certifications against a set-aside code.

    Only substring presence is checked; certification expiry and
    authenticity are not validated.
    """
    if not set_aside_code:
        return SetAsideCompliance(score=OPEN_COMPETITION_SCORE, matched=False)

    acceptable = [c.lower() for c in SET_ASIDE_CERTIFICATIONS.get(set_aside_code, [])]
    held = [c.lower() for c in (certifications or [])]
    matched = any(want in cert for want in acceptable for cert in held)
    return SetAsideCompliance(score=100 if matched else 0, matched=matched)


def rating_score(rating: Union[str, float, None]) -> float:
    """Scale a 0-5 rating linearly to 0-100; unparseable ratings score 0."""
    return (parse_rating(rating) / MAX_RATING) * 100


def capability_overlap(description: Optional[str], capabilities: Iterable[str]) -> float:
    """Share of supplier capabilities mentioned by the opportunity description."""
    capabilities = [c for c in (capabilities or []) if c]
    if not description or not description.strip() or not capabilities:
        return CAPABILITY_NEUTRAL_SCORE

    text = description.lower()
    words = text.split()
    matches = 0
    for capability in capabilities:
        cap = capability.lower()
        if cap in text or any(word in cap or cap in word for word in words):
            matches += 1

    return min(matches / max(1, len(capabilities)) * 100, 100)


def gsa_bonus(has_schedule: bool) -> int:
    return GSA_HOLDER_SCORE if has_schedule else GSA_NON_HOLDER_SCORE
