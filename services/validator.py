# services/validator.py
"""LLM-backed RFQ analyses and the concurrent runner that combines them."""

import json
from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeoutError
from typing import List, Dict, Optional, Any, Iterable

from models import (
    QuoteRequest, Opportunity, Requirement, SupplierResponse,
    StructuralAssessment, FairnessAssessment, ComplianceAssessment, QualityAssessment,
    SupplierResponseAssessment, ComprehensiveValidation
)
from config import LLM_SETTINGS, ASSESSMENT_MAX_WORKERS, ASSESSMENT_TIMEOUT_SECONDS
from services.assessment import compute_overall_assessment, MissingAssessmentError
from services.observer import Observer, RunType


class ValidationServiceError(RuntimeError):
    """Raised when one analysis cannot be produced."""

    def __init__(self, analysis: str, cause: Exception):
        self.analysis = analysis
        super().__init__(f"Failed to {analysis}: {cause}")


ANALYSES = ("structural", "fairness", "compliance", "quality")


def format_requirements(requirements: List[Requirement]) -> str:
    """Render requirement groups as a category heading followed by bullets."""
    return "\n\n".join(
        f"{req.category}:\n" + "\n".join(f"- {item}" for item in req.items)
        for req in requirements
    )


def format_quote_request(quote_request: QuoteRequest) -> str:
    """Plain-text rendering of an RFQ for the editorial pass."""
    return (
        f"Title: {quote_request.title}\n"
        f"Description: {quote_request.description}\n\n"
        f"Requirements:\n{format_requirements(quote_request.requirements)}"
    )


def _dollars(cents: int) -> str:
    return f"${cents / 100:.2f}"


def _run(llm, kind: str, analysis: str, system: str, prompt: str) -> Dict[str, Any]:
    settings = LLM_SETTINGS[kind]
    return llm.complete_json(
        system, prompt,
        temperature=settings["temperature"],
        max_tokens=settings["max_tokens"],
        name=analysis.replace(" ", "_")
    )


def validate_quote_request(
    llm,
    quote_request: QuoteRequest,
    opportunity: Optional[Opportunity] = None
) -> StructuralAssessment:
    """Structural validation: completeness, clarity, required sections."""
    deadline = quote_request.deadline.strftime("%m/%d/%Y") if quote_request.deadline else "Not specified"
    context = ""
    if opportunity:
        value = opportunity.estimated_value
        context = f"""
Opportunity Context:
NAICS Code: {opportunity.naics_code or 'Not specified'}
Set-Aside: {opportunity.set_aside_code or 'Not specified'}
Estimated Value: {value if value is not None else 'Not specified'}
"""

    prompt = f"""Perform a comprehensive validation and quality assessment of this government contracting RFQ:

QUOTE REQUEST:
Title: {quote_request.title}
Description: {quote_request.description}

Requirements:
{format_requirements(quote_request.requirements)}

Deadline: {deadline}
Attachments: {len(quote_request.attachments)} files
{context}
Evaluate this RFQ for structure, clarity, compliance and effectiveness. Give actionable recommendations.

Return validation results in this JSON format:
{{
  "overallScore": 85,
  "passesValidation": true,
  "criticalIssues": [
    {{"category": "compliance", "description": "Missing evaluation criteria section",
      "severity": "critical", "suggestion": "Add detailed evaluation criteria",
      "location": "main document"}}
  ],
  "qualityMetrics": {{"completeness": 90, "clarity": 85, "compliance": 80, "consistency": 88, "professionalism": 92}},
  "complianceChecks": {{"hasRequiredSections": true, "hasEvaluationCriteria": false, "hasDeadlines": true,
    "hasContactInfo": true, "followsGovStandards": true, "hasAccessibilityCompliance": false}},
  "improvements": [
    {{"category": "clarity", "description": "Simplify technical language", "priority": "medium",
      "estimatedImpact": "Better supplier understanding", "implementationEffort": "low"}}
  ]
}}
"""
    system = (
        "You are an expert government procurement compliance reviewer and quality "
        "assurance specialist. Provide detailed, actionable validation feedback for RFQs."
    )
    try:
        return StructuralAssessment.from_dict(
            _run(llm, "structural", "validate quote request", system, prompt)
        )
    except Exception as e:
        raise ValidationServiceError("validate quote request", e) from e


def validate_fairness_and_bias(
    llm,
    quote_request: QuoteRequest,
    evaluation_criteria: Optional[List[Dict[str, Any]]] = None
) -> FairnessAssessment:
    """Bias review; the returned bias_score is higher when the RFQ is fairer."""
    criteria = ""
    if evaluation_criteria:
        criteria = "\nEvaluation Criteria:\n" + "\n".join(
            f"- {c['criterion']} (Weight: {c['weight']})" for c in evaluation_criteria
        ) + "\n"

    prompt = f"""Review this government contracting RFQ for potential bias, discrimination, and fairness issues:

RFQ CONTENT:
Title: {quote_request.title}
Description: {quote_request.description}

Requirements:
{format_requirements(quote_request.requirements)}
{criteria}
Look for biased or discriminatory language, requirements that unfairly exclude qualified
suppliers, missing accessibility considerations, and anything that limits fair competition.

Return assessment in this JSON format:
{{
  "biasScore": 85,
  "fairnessAssessment": {{"hasInclusiveLanguage": true, "avoidsDiscriminatoryTerms": true,
    "requirementsAreRelevant": true, "accessibilityConsidered": false}},
  "potentialIssues": [
    {{"type": "exclusion", "description": "Requirement may exclude small businesses",
      "suggestion": "Allow alternative qualification methods", "severity": "medium"}}
  ],
  "inclusivityRecommendations": ["Add accessibility compliance requirements"]
}}
"""
    system = (
        "You are an expert in fair and inclusive government procurement practices. "
        "Identify potential bias, discrimination, and accessibility issues in RFQs."
    )
    try:
        return FairnessAssessment.from_dict(
            _run(llm, "fairness", "validate fairness and bias", system, prompt)
        )
    except Exception as e:
        raise ValidationServiceError("validate fairness and bias", e) from e


def validate_regulatory_compliance(
    llm,
    quote_request: QuoteRequest,
    contract_type: str = "standard",
    estimated_value: Optional[float] = None
) -> ComplianceAssessment:
    """FAR compliance review."""
    prompt = f"""Validate this government RFQ for compliance with federal procurement regulations:

RFQ DETAILS:
Title: {quote_request.title}
Description: {quote_request.description}
Contract Type: {contract_type}
Estimated Value: {estimated_value if estimated_value is not None else 'Not specified'}

Requirements:
{format_requirements(quote_request.requirements)}

Check FAR requirements, small business participation, equal opportunity provisions,
required clauses and certifications, disclosure requirements and evaluation criteria standards.

Return compliance assessment in this JSON format:
{{
  "complianceScore": 85,
  "requiredElements": [
    {{"element": "Small Business Subcontracting Plan", "present": false, "required": true,
      "guidance": "Required for contracts over $750,000"}}
  ],
  "regulatoryGaps": [
    {{"regulation": "FAR 52.219-9", "requirement": "Small Business Subcontracting Plan",
      "missing": "Subcontracting plan requirements not specified",
      "remedy": "Add clause requiring subcontracting plan if applicable"}}
  ],
  "recommendations": ["Include required FAR clauses for contract type"]
}}
"""
    system = (
        "You are a government procurement regulation expert specializing in FAR "
        "compliance and federal contracting requirements."
    )
    try:
        return ComplianceAssessment.from_dict(
            _run(llm, "compliance", "validate regulatory compliance", system, prompt)
        )
    except Exception as e:
        raise ValidationServiceError("validate regulatory compliance", e) from e


def perform_quality_checks(
    llm,
    content: str,
    content_type: str = "quote_request",
    context: Optional[Dict[str, Any]] = None
) -> QualityAssessment:
    """Editorial pass over free text (grammar, readability, consistency)."""
    context_block = f"\nCONTEXT: {json.dumps(context, default=str)}\n" if context else ""
    prompt = f"""Perform quality checks on this {content_type.replace('_', ' ')} content:

CONTENT:
{content}
{context_block}
Analyze grammar and spelling, readability, terminology consistency, professional tone
and logical completeness.

Return quality assessment in this JSON format:
{{
  "qualityScore": 85,
  "readabilityScore": 80,
  "grammarIssues": [{{"issue": "Passive voice usage", "suggestion": "Use active voice", "location": "paragraph 2"}}],
  "consistencyIssues": [{{"issue": "Inconsistent terminology", "suggestion": "Use 'supplier' consistently"}}],
  "improvementAreas": ["Simplify complex sentences"]
}}
"""
    system = (
        "You are a professional editor and quality assurance specialist for "
        "government documents. Provide detailed quality feedback."
    )
    try:
        return QualityAssessment.from_dict(
            _run(llm, "quality", "perform quality checks", system, prompt)
        )
    except Exception as e:
        raise ValidationServiceError("perform quality checks", e) from e


def validate_supplier_response(
    llm,
    response: SupplierResponse,
    requirements: List[Requirement],
    supplier_capabilities: Iterable[str] = ()
) -> SupplierResponseAssessment:
    """Check a supplier's priced reply against the RFQ requirements."""
    line_items = "\n".join(
        f"- {li.item}: {li.quantity} x {_dollars(li.unit_price_cents)} = {_dollars(li.total_cents)}"
        for li in response.line_items
    )
    prompt = f"""Validate this supplier response to a government RFQ for completeness, accuracy, and compliance:

SUPPLIER RESPONSE:
Line Items:
{line_items}

Total Price: {_dollars(response.total_price_cents)}
Delivery Time: {response.delivery_time_days} days
Notes: {response.notes or 'None provided'}

ORIGINAL REQUIREMENTS:
{format_requirements(requirements)}

SUPPLIER CAPABILITIES:
{', '.join(supplier_capabilities)}

Return validation results in this JSON format:
{{
  "isValid": true,
  "validationScore": 85,
  "completenessCheck": {{"hasAllRequiredFields": true, "missingFields": [], "completenessPercentage": 90}},
  "pricingValidation": {{"calculationsCorrect": true, "pricingReasonable": true, "totalsMatch": true, "pricingIssues": []}},
  "complianceValidation": {{"meetsRequirements": true, "complianceGaps": [], "riskFactors": []}},
  "qualityIndicators": {{"professionalPresentation": 85, "technicalDetail": 80, "experienceRelevance": 90}}
}}
"""
    system = (
        "You are an expert procurement evaluation specialist. Validate supplier responses "
        "for accuracy, completeness, and compliance with government contracting standards."
    )
    try:
        return SupplierResponseAssessment.from_dict(
            _run(llm, "supplier_response", "validate supplier response", system, prompt)
        )
    except Exception as e:
        raise ValidationServiceError("validate supplier response", e) from e


def analysis_calls(llm, quote_request: QuoteRequest, opportunity: Optional[Opportunity] = None) -> Dict[str, Any]:
    """The four core analyses as zero-argument callables, keyed by name."""
    contract_type = "standard"
    estimated_value = None
    context = None
    if opportunity:
        if opportunity.contract_type:
            contract_type = opportunity.contract_type.value
        estimated_value = opportunity.estimated_value
        context = {
            "naics_code": opportunity.naics_code,
            "set_aside_code": opportunity.set_aside_code
        }

    return {
        "structural": lambda: validate_quote_request(llm, quote_request, opportunity),
        "fairness": lambda: validate_fairness_and_bias(llm, quote_request),
        "compliance": lambda: validate_regulatory_compliance(
            llm, quote_request, contract_type, estimated_value
        ),
        "quality": lambda: perform_quality_checks(
            llm, format_quote_request(quote_request), "quote_request", context
        )
    }


class AssessmentRunner:
    """
    Run the four RFQ analyses in parallel and aggregate them.

    Every analysis is awaited before aggregating. A failed or timed-out
    analysis is recorded in ``errors`` and leaves its slot empty, so the
    aggregator raises MissingAssessmentError.
    """

    def __init__(
        self,
        llm,
        max_workers: int = ASSESSMENT_MAX_WORKERS,
        timeout: float = ASSESSMENT_TIMEOUT_SECONDS,
        observer: Optional[Observer] = None
    ):
        self.llm = llm
        self.max_workers = max_workers
        self.timeout = timeout
        self.observer = observer
        self.errors: Dict[str, Exception] = {}

    def _traced(self, name: str, call):
        if not self.observer:
            return call()
        with self.observer.trace_run(name, RunType.LLM, tags=["analysis", name]) as run:
            result = call()
            run.outputs = result.to_dict()
            return result

    def _collect(self, name: str, future, results: Dict[str, Any]):
        try:
            results[name] = future.result()
        except Exception as e:
            self.errors[name] = e

    def run(self, quote_request: QuoteRequest, opportunity: Optional[Opportunity] = None) -> ComprehensiveValidation:
        self.errors = {}
        results: Dict[str, Any] = {name: None for name in ANALYSES}
        calls = analysis_calls(self.llm, quote_request, opportunity)

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                executor.submit(self._traced, name, calls[name]): name
                for name in ANALYSES
            }
            try:
                for future in as_completed(futures, timeout=self.timeout):
                    self._collect(futures[future], future, results)
            except FuturesTimeoutError:
                for future, name in futures.items():
                    if future.done():
                        if results[name] is None and name not in self.errors:
                            self._collect(name, future, results)
                    else:
                        future.cancel()
                        self.errors[name] = TimeoutError(f"{name} analysis timed out after {self.timeout}s")
        finally:
            executor.shutdown(wait=False)

        if self.observer:
            for name, error in self.errors.items():
                self.observer.log("analysis_error", name, {"message": str(error)}, status="error", error=error)

        try:
            overall = compute_overall_assessment(
                results["structural"], results["fairness"], results["compliance"], results["quality"]
            )
        except MissingAssessmentError as e:
            cause = next(iter(self.errors.values()), None)
            raise e from cause

        return ComprehensiveValidation(
            structural=results["structural"],
            fairness=results["fairness"],
            compliance=results["compliance"],
            quality=results["quality"],
            overall=overall
        )
