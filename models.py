# models.py
"""Data models for the Supplier Match Agent."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional

from config import MAX_RATING


class AssessmentParseError(ValueError):
    """Raised when an analysis payload does not have the expected shape."""


# ============ ENUMS ============

class ContractType(Enum):
    FIXED_PRICE = "fixed_price"
    COST_PLUS = "cost_plus"
    TIME_AND_MATERIALS = "time_and_materials"
    INDEFINITE_DELIVERY = "indefinite_delivery"


class OpportunityStatus(Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CLOSED = "closed"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ReadinessLevel(Enum):
    NOT_READY = "not_ready"
    NEEDS_IMPROVEMENT = "needs_improvement"
    GOOD = "good"
    EXCELLENT = "excellent"


# Free-text contract types as they appear in notices
_CONTRACT_TYPE_ALIASES = [
    ("time and materials", ContractType.TIME_AND_MATERIALS),
    ("time-and-materials", ContractType.TIME_AND_MATERIALS),
    ("t&m", ContractType.TIME_AND_MATERIALS),
    ("cost plus", ContractType.COST_PLUS),
    ("cost-plus", ContractType.COST_PLUS),
    ("indefinite", ContractType.INDEFINITE_DELIVERY),
    ("idiq", ContractType.INDEFINITE_DELIVERY),
    ("fixed price", ContractType.FIXED_PRICE),
    ("fixed-price", ContractType.FIXED_PRICE),
]


# ============ BOUNDARY PARSING ============

def parse_float(value: Any) -> Optional[float]:
    """Parse a loosely typed number, returning None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").lstrip("$")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_rating(value: Any) -> float:
    """Parse a supplier rating; anything unparseable is 0, result clamped to [0, 5]."""
    number = parse_float(value)
    if number is None:
        return 0.0
    return min(max(number, 0.0), MAX_RATING)


def parse_contract_type(value: Any) -> Optional[ContractType]:
    if value is None:
        return None
    if isinstance(value, ContractType):
        return value
    text = str(value).strip().lower()
    for member in ContractType:
        if text == member.value:
            return member
    for alias, member in _CONTRACT_TYPE_ALIASES:
        if alias in text:
            return member
    return None


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


_FALSE_TEXT = ("false", "0", "no", "n", "off")


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a loosely typed flag; text such as "false" or "0" is False."""
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        return text not in _FALSE_TEXT if text else default
    return bool(value)


def _string_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None]


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present key; accepts snake_case and camelCase records."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# ============ INPUT MODELS ============

@dataclass
class Opportunity:
    """A government contract notice."""
    id: str
    title: str
    description: str = ""
    naics_code: Optional[str] = None
    set_aside_code: Optional[str] = None
    estimated_value: Optional[float] = None
    response_deadline: Optional[datetime] = None
    contract_type: Optional[ContractType] = None
    status: OpportunityStatus = OpportunityStatus.ACTIVE

    def refresh_status(self, now: datetime) -> OpportunityStatus:
        """Expire an active opportunity once its response deadline has passed."""
        if (
            self.status is OpportunityStatus.ACTIVE
            and self.response_deadline is not None
            and now > self.response_deadline
        ):
            self.status = OpportunityStatus.EXPIRED
        return self.status

    @classmethod
    def from_dict(cls, data: dict) -> "Opportunity":
        """Create Opportunity from a raw record. Malformed optional fields become None."""
        naics = _first(data, "naics_code", "naicsCode")
        set_aside = _first(data, "set_aside_code", "setAsideCode")
        status = _first(data, "status", default=OpportunityStatus.ACTIVE.value)
        try:
            parsed_status = OpportunityStatus(status) if not isinstance(status, OpportunityStatus) else status
        except ValueError:
            parsed_status = OpportunityStatus.ACTIVE

        return cls(
            id=str(_first(data, "id", "notice_id", "noticeId", default="")),
            title=_first(data, "title", default=""),
            description=_first(data, "description", default=""),
            naics_code=(str(naics).strip() or None) if naics is not None else None,
            set_aside_code=(str(set_aside).strip() or None) if set_aside is not None else None,
            estimated_value=parse_float(_first(data, "estimated_value", "estimatedValue")),
            response_deadline=parse_datetime(_first(data, "response_deadline", "responseDeadline")),
            contract_type=parse_contract_type(_first(data, "contract_type", "contractType")),
            status=parsed_status
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "naics_code": self.naics_code,
            "set_aside_code": self.set_aside_code,
            "estimated_value": self.estimated_value,
            "response_deadline": self.response_deadline.isoformat() if self.response_deadline else None,
            "contract_type": self.contract_type.value if self.contract_type else None,
            "status": self.status.value
        }


@dataclass
class Supplier:
    """A vendor profile."""
    id: str
    name: str
    naics_codes: List[str] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)
    rating: float = 0.0
    gsa_schedule: bool = False
    is_active: bool = True
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Supplier":
        """Create Supplier from a raw record (rating may be decimal text)."""
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            naics_codes=_string_list(_first(data, "naics_codes", "naicsCodes")),
            certifications=_string_list(data.get("certifications")),
            capabilities=_string_list(data.get("capabilities")),
            rating=parse_rating(data.get("rating")),
            gsa_schedule=parse_bool(_first(data, "gsa_schedule", "gsaSchedule"), False),
            is_active=parse_bool(_first(data, "is_active", "isActive"), True),
            contact_email=_first(data, "contact_email", "contactEmail"),
            contact_phone=_first(data, "contact_phone", "contactPhone"),
            website=data.get("website")
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "naics_codes": self.naics_codes,
            "certifications": self.certifications,
            "capabilities": self.capabilities,
            "rating": self.rating,
            "gsa_schedule": self.gsa_schedule,
            "is_active": self.is_active,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "website": self.website
        }


@dataclass
class Requirement:
    category: str
    items: List[str]


@dataclass
class QuoteRequest:
    """Candidate RFQ document."""
    title: str
    description: str
    requirements: List[Requirement] = field(default_factory=list)
    deadline: Optional[datetime] = None
    attachments: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteRequest":
        return cls(
            title=data["title"],
            description=data["description"],
            requirements=[
                Requirement(category=r["category"], items=list(r.get("items", [])))
                for r in data.get("requirements", [])
            ],
            deadline=parse_datetime(data.get("deadline")),
            attachments=list(data.get("attachments") or [])
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "requirements": [
                {"category": r.category, "items": r.items} for r in self.requirements
            ],
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "attachments": len(self.attachments)
        }


# ============ MATCHING OUTPUT MODELS ============

@dataclass
class SupplierMatch:
    opportunity_id: str
    supplier_id: str
    supplier_name: str
    match_score: int
    reasoning: List[str]
    estimated_price: Optional[int] = None
    estimated_delivery_days: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SupplierMatch":
        """Rebuild a match from a stored snapshot."""
        return cls(
            opportunity_id=data["opportunity_id"],
            supplier_id=data["supplier_id"],
            supplier_name=data["supplier_name"],
            match_score=data["match_score"],
            reasoning=list(data.get("reasoning", [])),
            estimated_price=data.get("estimated_price"),
            estimated_delivery_days=data.get("estimated_delivery_days")
        )

    def to_dict(self) -> dict:
        return {
            "opportunity_id": self.opportunity_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "match_score": self.match_score,
            "reasoning": self.reasoning,
            "estimated_price": self.estimated_price,
            "estimated_delivery_days": self.estimated_delivery_days
        }


@dataclass
class PricingEstimate:
    category: str
    estimated_price: int
    confidence: str  # "Low", "Medium", "High"
    price_min: int
    price_max: int

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "estimated_price": self.estimated_price,
            "confidence": self.confidence,
            "price_range": {"min": self.price_min, "max": self.price_max}
        }


# ============ ASSESSMENT MODELS ============

def _score(data: dict, key: str) -> float:
    """Read a required 0-100 score from an analysis payload."""
    if key not in data:
        raise AssessmentParseError(f"missing required field '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AssessmentParseError(f"'{key}' must be a number, got {value!r}")
    if not 0 <= value <= 100:
        raise AssessmentParseError(f"'{key}' must be within 0-100, got {value}")
    return value


def _severity(value: Any) -> Severity:
    try:
        return Severity(str(value).lower())
    except ValueError:
        raise AssessmentParseError(f"unknown severity {value!r}") from None


def _list(data: dict, key: str) -> list:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise AssessmentParseError(f"'{key}' must be a list")
    return value


@dataclass
class Issue:
    category: str
    description: str
    severity: Severity
    suggestion: str = ""
    location: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, default_category: str = "") -> "Issue":
        if not isinstance(data, dict):
            raise AssessmentParseError(f"issue must be an object, got {data!r}")
        return cls(
            category=data.get("category") or data.get("type") or default_category,
            description=data.get("description", ""),
            severity=_severity(data.get("severity", "low")),
            suggestion=data.get("suggestion", ""),
            location=data.get("location")
        )

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "description": self.description,
            "severity": self.severity.value,
            "suggestion": self.suggestion,
            "location": self.location
        }


@dataclass
class StructuralAssessment:
    """Structural validation of an RFQ."""
    overall_score: float
    passes_validation: bool
    critical_issues: List[Issue] = field(default_factory=list)
    quality_metrics: Dict[str, float] = field(default_factory=dict)
    compliance_checks: Dict[str, bool] = field(default_factory=dict)
    improvements: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "StructuralAssessment":
        return cls(
            overall_score=_score(data, "overallScore"),
            passes_validation=bool(data.get("passesValidation", False)),
            critical_issues=[Issue.from_dict(i) for i in _list(data, "criticalIssues")],
            quality_metrics=dict(data.get("qualityMetrics") or {}),
            compliance_checks=dict(data.get("complianceChecks") or {}),
            improvements=_list(data, "improvements")
        )

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "passes_validation": self.passes_validation,
            "critical_issues": [i.to_dict() for i in self.critical_issues],
            "quality_metrics": self.quality_metrics,
            "compliance_checks": self.compliance_checks,
            "improvements": self.improvements
        }


@dataclass
class FairnessAssessment:
    """Bias and fairness review; bias_score is higher when less biased."""
    bias_score: float
    fairness_assessment: Dict[str, bool] = field(default_factory=dict)
    potential_issues: List[Issue] = field(default_factory=list)
    inclusivity_recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "FairnessAssessment":
        return cls(
            bias_score=_score(data, "biasScore"),
            fairness_assessment=dict(data.get("fairnessAssessment") or {}),
            potential_issues=[
                Issue.from_dict(i, default_category="bias")
                for i in _list(data, "potentialIssues")
            ],
            inclusivity_recommendations=_string_list(data.get("inclusivityRecommendations"))
        )

    def to_dict(self) -> dict:
        return {
            "bias_score": self.bias_score,
            "fairness_assessment": self.fairness_assessment,
            "potential_issues": [i.to_dict() for i in self.potential_issues],
            "inclusivity_recommendations": self.inclusivity_recommendations
        }


@dataclass
class RegulatoryGap:
    regulation: str
    requirement: str
    missing: str
    remedy: str = ""

    def to_dict(self) -> dict:
        return {
            "regulation": self.regulation,
            "requirement": self.requirement,
            "missing": self.missing,
            "remedy": self.remedy
        }


@dataclass
class ComplianceAssessment:
    """Regulatory (FAR) compliance review."""
    compliance_score: float
    required_elements: List[Dict[str, Any]] = field(default_factory=list)
    regulatory_gaps: List[RegulatoryGap] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ComplianceAssessment":
        gaps = []
        for gap in _list(data, "regulatoryGaps"):
            if not isinstance(gap, dict):
                raise AssessmentParseError(f"regulatory gap must be an object, got {gap!r}")
            gaps.append(RegulatoryGap(
                regulation=gap.get("regulation", ""),
                requirement=gap.get("requirement", ""),
                missing=gap.get("missing", ""),
                remedy=gap.get("remedy", "")
            ))
        return cls(
            compliance_score=_score(data, "complianceScore"),
            required_elements=_list(data, "requiredElements"),
            regulatory_gaps=gaps,
            recommendations=_string_list(data.get("recommendations"))
        )

    def to_dict(self) -> dict:
        return {
            "compliance_score": self.compliance_score,
            "required_elements": self.required_elements,
            "regulatory_gaps": [g.to_dict() for g in self.regulatory_gaps],
            "recommendations": self.recommendations
        }


@dataclass
class QualityAssessment:
    """Editorial quality review."""
    quality_score: float
    readability_score: float = 0
    grammar_issues: List[Dict[str, str]] = field(default_factory=list)
    consistency_issues: List[Dict[str, str]] = field(default_factory=list)
    improvement_areas: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "QualityAssessment":
        return cls(
            quality_score=_score(data, "qualityScore"),
            readability_score=_score(data, "readabilityScore") if "readabilityScore" in data else 0,
            grammar_issues=_list(data, "grammarIssues"),
            consistency_issues=_list(data, "consistencyIssues"),
            improvement_areas=_string_list(data.get("improvementAreas"))
        )

    def to_dict(self) -> dict:
        return {
            "quality_score": self.quality_score,
            "readability_score": self.readability_score,
            "grammar_issues": self.grammar_issues,
            "consistency_issues": self.consistency_issues,
            "improvement_areas": self.improvement_areas
        }


@dataclass
class LineItem:
    item: str
    quantity: int
    unit_price_cents: int
    total_cents: int


@dataclass
class SupplierResponse:
    """A supplier's priced reply to an RFQ (amounts in integer cents)."""
    line_items: List[LineItem]
    total_price_cents: int
    delivery_time_days: int
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SupplierResponse":
        return cls(
            line_items=[
                LineItem(
                    item=li["item"],
                    quantity=int(li["quantity"]),
                    unit_price_cents=int(li["unitPriceCents"]),
                    total_cents=int(li["totalCents"])
                )
                for li in data.get("lineItems", [])
            ],
            total_price_cents=int(data["totalPriceCents"]),
            delivery_time_days=int(data["deliveryTimeDays"]),
            notes=data.get("notes")
        )


@dataclass
class SupplierResponseAssessment:
    is_valid: bool
    validation_score: float
    missing_fields: List[str] = field(default_factory=list)
    pricing_issues: List[str] = field(default_factory=list)
    compliance_gaps: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)
    quality_indicators: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "SupplierResponseAssessment":
        completeness = data.get("completenessCheck") or {}
        pricing = data.get("pricingValidation") or {}
        compliance = data.get("complianceValidation") or {}
        return cls(
            is_valid=bool(data.get("isValid", False)),
            validation_score=_score(data, "validationScore"),
            missing_fields=_string_list(completeness.get("missingFields")),
            pricing_issues=_string_list(pricing.get("pricingIssues")),
            compliance_gaps=_string_list(compliance.get("complianceGaps")),
            risk_factors=_string_list(compliance.get("riskFactors")),
            quality_indicators=dict(data.get("qualityIndicators") or {})
        )

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "validation_score": self.validation_score,
            "missing_fields": self.missing_fields,
            "pricing_issues": self.pricing_issues,
            "compliance_gaps": self.compliance_gaps,
            "risk_factors": self.risk_factors,
            "quality_indicators": self.quality_indicators
        }


@dataclass
class ImprovementPriority:
    area: str
    priority: str  # "high", "medium", "low"
    impact: str

    def to_dict(self) -> dict:
        return {"area": self.area, "priority": self.priority, "impact": self.impact}


@dataclass
class OverallAssessment:
    """Combined verdict over the four analyses."""
    overall_score: int
    readiness_level: ReadinessLevel
    critical_issue_count: int
    recommended_actions: List[str]
    strength_areas: List[str]
    improvement_priorities: List[ImprovementPriority]

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "readiness_level": self.readiness_level.value,
            "critical_issue_count": self.critical_issue_count,
            "recommended_actions": self.recommended_actions,
            "strength_areas": self.strength_areas,
            "improvement_priorities": [p.to_dict() for p in self.improvement_priorities]
        }


@dataclass
class ComprehensiveValidation:
    structural: StructuralAssessment
    fairness: FairnessAssessment
    compliance: ComplianceAssessment
    quality: QualityAssessment
    overall: OverallAssessment

    def to_dict(self) -> dict:
        return {
            "structural": self.structural.to_dict(),
            "fairness": self.fairness.to_dict(),
            "compliance": self.compliance.to_dict(),
            "quality": self.quality.to_dict(),
            "overall": self.overall.to_dict()
        }
