# services/assessment.py
"""Combine the four RFQ analyses into one overall assessment."""

from typing import List, Optional

from models import (
    StructuralAssessment, FairnessAssessment, ComplianceAssessment, QualityAssessment,
    OverallAssessment, ImprovementPriority, ReadinessLevel, Severity
)
from config import (
    ASSESSMENT_WEIGHTS, EXCELLENT_THRESHOLD, GOOD_THRESHOLD,
    NEEDS_IMPROVEMENT_THRESHOLD, GOOD_MAX_CRITICAL_ISSUES
)
from services.scoring import round_half_up


class MissingAssessmentError(ValueError):
    """Raised when asked to aggregate an incomplete set of analyses."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Cannot compute overall assessment; missing: {', '.join(missing)}")


# (condition, message) lookup tables; order is significant
RECOMMENDED_ACTIONS = [
    (lambda s, f, c, q, n: n > 0, "Address all critical issues before proceeding"),
    (lambda s, f, c, q, n: c.compliance_score < 80, "Review and improve regulatory compliance"),
    (lambda s, f, c, q, n: f.bias_score < 70, "Review content for bias and fairness issues"),
    (lambda s, f, c, q, n: q.quality_score < 75, "Improve content quality and readability"),
]

STRENGTH_AREAS = [
    (lambda s, f, c, q: s.overall_score >= 80, "Well-structured requirements"),
    (lambda s, f, c, q: f.bias_score >= 80, "Fair and inclusive language"),
    (lambda s, f, c, q: c.compliance_score >= 80, "Good regulatory compliance"),
    (lambda s, f, c, q: q.quality_score >= 80, "High content quality"),
]

IMPROVEMENT_PRIORITIES = [
    (
        lambda s, f, c, q: s.overall_score < 70,
        ImprovementPriority(
            area="Basic structure and completeness",
            priority="high",
            impact="Essential for supplier understanding and response quality"
        )
    ),
    (
        lambda s, f, c, q: c.compliance_score < 70,
        ImprovementPriority(
            area="Regulatory compliance",
            priority="high",
            impact="Required for legal procurement process"
        )
    ),
    (
        lambda s, f, c, q: f.bias_score < 70,
        ImprovementPriority(
            area="Fairness and inclusivity",
            priority="medium",
            impact="Important for equal opportunity and competition"
        )
    ),
]


def compute_overall_assessment(
    structural: Optional[StructuralAssessment],
    fairness: Optional[FairnessAssessment],
    compliance: Optional[ComplianceAssessment],
    quality: Optional[QualityAssessment]
) -> OverallAssessment:
    """
    Weighted overall score, readiness level and prioritized actions.

    Raises:
        MissingAssessmentError: If any of the four analyses is absent.
    """
    missing = [
        name for name, value in (
            ("structural", structural),
            ("fairness", fairness),
            ("compliance", compliance),
            ("quality", quality)
        )
        if value is None
    ]
    if missing:
        raise MissingAssessmentError(missing)

    overall_score = round_half_up(
        structural.overall_score * ASSESSMENT_WEIGHTS["structural"] +
        fairness.bias_score * ASSESSMENT_WEIGHTS["fairness"] +
        compliance.compliance_score * ASSESSMENT_WEIGHTS["compliance"] +
        quality.quality_score * ASSESSMENT_WEIGHTS["quality"]
    )

    critical_issue_count = (
        sum(1 for i in structural.critical_issues if i.severity is Severity.CRITICAL) +
        len(compliance.regulatory_gaps) +
        sum(1 for i in fairness.potential_issues if i.severity is Severity.HIGH)
    )

    return OverallAssessment(
        overall_score=overall_score,
        readiness_level=readiness_level(overall_score, critical_issue_count),
        critical_issue_count=critical_issue_count,
        recommended_actions=[
            message for check, message in RECOMMENDED_ACTIONS
            if check(structural, fairness, compliance, quality, critical_issue_count)
        ],
        strength_areas=[
            message for check, message in STRENGTH_AREAS
            if check(structural, fairness, compliance, quality)
        ],
        improvement_priorities=[
            ImprovementPriority(p.area, p.priority, p.impact)
            for check, p in IMPROVEMENT_PRIORITIES
            if check(structural, fairness, compliance, quality)
        ]
    )


def readiness_level(overall_score: int, critical_issue_count: int) -> ReadinessLevel:
    """First matching band wins."""
    if overall_score >= EXCELLENT_THRESHOLD and critical_issue_count == 0:
        return ReadinessLevel.EXCELLENT
    if overall_score >= GOOD_THRESHOLD and critical_issue_count <= GOOD_MAX_CRITICAL_ISSUES:
        return ReadinessLevel.GOOD
    if overall_score >= NEEDS_IMPROVEMENT_THRESHOLD:
        return ReadinessLevel.NEEDS_IMPROVEMENT
    return ReadinessLevel.NOT_READY
