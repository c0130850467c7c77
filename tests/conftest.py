"""Shared fixtures: sample opportunities and suppliers, a fake LLM, canned analysis payloads."""

import copy
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from models import Opportunity, Supplier, QuoteRequest, Requirement, ContractType
from services.observer import Observer
from services.memory import MemoryStore
from services.pricing import PricingEstimator


STRUCTURAL = {
    "overallScore": 90,
    "passesValidation": True,
    "criticalIssues": [],
    "qualityMetrics": {"completeness": 90, "clarity": 85, "compliance": 80, "consistency": 88, "professionalism": 92},
    "complianceChecks": {"hasRequiredSections": True, "hasEvaluationCriteria": True, "hasDeadlines": True},
    "improvements": []
}

FAIRNESS = {
    "biasScore": 85,
    "fairnessAssessment": {"hasInclusiveLanguage": True, "avoidsDiscriminatoryTerms": True},
    "potentialIssues": [],
    "inclusivityRecommendations": ["Add accessibility compliance requirements"]
}

COMPLIANCE = {
    "complianceScore": 85,
    "requiredElements": [],
    "regulatoryGaps": [],
    "recommendations": ["Include required FAR clauses for contract type"]
}

QUALITY = {
    "qualityScore": 85,
    "readabilityScore": 80,
    "grammarIssues": [],
    "consistencyIssues": [],
    "improvementAreas": ["Simplify complex sentences"]
}

SUPPLIER_RESPONSE = {
    "isValid": True,
    "validationScore": 82,
    "completenessCheck": {"hasAllRequiredFields": True, "missingFields": [], "completenessPercentage": 95},
    "pricingValidation": {"calculationsCorrect": False, "pricingIssues": ["Line total does not match"]},
    "complianceValidation": {"meetsRequirements": True, "complianceGaps": [], "riskFactors": ["Tight delivery"]},
    "qualityIndicators": {"professionalPresentation": 85, "technicalDetail": 80, "experienceRelevance": 90}
}


class FakeLLM:
    """Stands in for LLMClient; replies are keyed by the analysis name."""

    def __init__(self, responses=None, failures=None):
        self.responses = responses if responses is not None else default_responses()
        self.failures = failures or {}
        self.calls = []

    def complete_json(self, system, prompt, temperature=0.2, max_tokens=2000, name="llm_completion"):
        self.calls.append({
            "name": name,
            "system": system,
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens
        })
        if name in self.failures:
            raise self.failures[name]
        return copy.deepcopy(self.responses[name])


def default_responses():
    return {
        "validate_quote_request": STRUCTURAL,
        "validate_fairness_and_bias": FAIRNESS,
        "validate_regulatory_compliance": COMPLIANCE,
        "perform_quality_checks": QUALITY,
        "validate_supplier_response": SUPPLIER_RESPONSE
    }


def fake_groq_response(content, prompt_tokens=12, completion_tokens=30):
    """Object shaped like a Groq chat completion."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))] if content is not None else [],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens
        )
    )


class FakeGroq:
    """Minimal ``chat.completions.create`` double that records its kwargs."""

    def __init__(self, content):
        self.content = content
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        return fake_groq_response(self.content)


@pytest.fixture
def opportunity():
    return Opportunity(
        id="opp-1",
        title="Agency network modernization",
        description="",
        naics_code="541511",
        set_aside_code=None,
        estimated_value=100000,
        response_deadline=datetime.now() + timedelta(days=14),
        contract_type=ContractType.FIXED_PRICE
    )


@pytest.fixture
def supplier():
    return Supplier.from_dict({
        "id": "sup-1",
        "name": "Acme Federal IT",
        "naicsCodes": ["541511"],
        "certifications": [],
        "capabilities": [],
        "rating": "4.5",
        "gsaSchedule": True,
        "isActive": True
    })


@pytest.fixture
def suppliers():
    return [
        Supplier(id="s1", name="Exact GSA", naics_codes=["541511"], rating=4.5, gsa_schedule=True),
        Supplier(id="s2", name="Related", naics_codes=["541512"], rating=3.0),
        Supplier(id="s3", name="Unrelated", naics_codes=["337211"], rating=2.0),
        Supplier(id="s4", name="Inactive Exact", naics_codes=["541511"], rating=5.0,
                 gsa_schedule=True, is_active=False),
    ]


@pytest.fixture
def quote_request():
    return QuoteRequest(
        title="Network switch refresh",
        description="Replace access-layer switches across three field offices.",
        requirements=[
            Requirement(category="Hardware", items=["48-port PoE switches", "Rack mounting kits"]),
            Requirement(category="Services", items=["Installation", "Configuration backup"]),
        ],
        deadline=datetime(2026, 12, 1)
    )


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def observer():
    return Observer()


@pytest.fixture
def memory(tmp_path):
    return MemoryStore(str(tmp_path / "memory.db"))


@pytest.fixture
def fixed_estimator():
    return PricingEstimator(random_source=lambda: 1.0)
