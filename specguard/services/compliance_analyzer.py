# ==============================================
# File: specguard/services/compliance_analyzer.py
# Description: AI-assisted compliance judgment over retrieved documents
# ==============================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from specguard.core.compliance_types import (
    STATUS_BLOCKING,
    ClarificationQuestion,
    ComplianceDocument,
    ComplianceStatus,
    RequirementBundle,
    Severity,
    Suggestion,
    Violation,
)
from specguard.core.oracle import LLMOracle, ReasoningOracle, StructuredRequest
from specguard.core.oracle_schemas import AnalyzerOutput
from specguard.logging_config import log_event

logger = logging.getLogger(__name__)


ANALYZER_SYSTEM_PROMPT = (
    "You are an expert compliance automation system. Your PRIMARY goal is to "
    "AUTO-GENERATE complete compliance specifications, NOT to ask questions or block users."
)

OPERATING_PRINCIPLES = """CRITICAL OPERATING PRINCIPLES:

1. **PREFER AUTO-GENERATION OVER QUESTIONS** - Derive missing controls from detected patterns
   - User mentions "email" → Auto-include GDPR consent, privacy policy, data export
   - User mentions "Stripe" → Auto-include PCI DSS, webhook verification, secure tokens
   - User mentions "authentication" → Auto-include bcrypt, session management, rate limiting
   - User mentions "health/medical" → Auto-include HIPAA encryption, audit logs, BAAs
   - User has encrypted fields → Auto-include encryption at rest/transit specs

2. **ONLY BLOCK FOR TRULY ILLEGAL PRACTICES:**
   - Sending credit cards through plain email/SMS (NOT through payment processor)
   - Claiming to provide medical diagnoses without FDA approval
   - Storing passwords in plaintext
   - Explicitly illegal activities

3. **DO NOT RE-ASK FOR WHAT IS ALREADY RESOLVED:**
   - Requirements listed as auto-detected will be included automatically
   - Only ask a question if the answer changes whether the project is lawful

4. **DEFAULT TO "COMPLIANT" STATUS:**
   - Return "compliant" when the auto-detected requirements cover the request
   - Only return "minor-issues" if there's a best practice they might want to add (but not required)
   - Only return "blocking-violations" for truly illegal practices

5. **VIOLATIONS SHOULD BE RARE:**
   - Only flag a violation if it's something we CAN'T auto-generate (like changing illegal behavior)
   - Focus on GENERATING solutions, not LISTING problems"""


@dataclass
class AnalysisResult:
    """Analyzer output translated into domain types."""
    overall_compliance: ComplianceStatus
    violations: List[Violation] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    summary: str = ""
    clarification_questions: List[ClarificationQuestion] = field(default_factory=list)


def format_bundles(bundles: Sequence[RequirementBundle]) -> str:
    if not bundles:
        return "(none)"
    return "\n".join(
        f"✓ {b.title} ({', '.join(b.frameworks)})\n  {len(b.specs)} specifications" for b in bundles
    )


def format_documents(documents: Sequence[ComplianceDocument]) -> str:
    if not documents:
        return "(no matching knowledge base entries)"
    return "\n\n".join(
        f"[{doc.id}] {doc.framework} - {doc.title}\n"
        f"Source: {doc.source}\n"
        f"Severity: {doc.severity.value}\n"
        f"Requirements: {doc.content}"
        for doc in documents
    )


def to_analysis_result(output: AnalyzerOutput) -> AnalysisResult:
    # The oracle only reports blocking status for categorically illegal
    # practices, so its violations carry the block flag exactly then.
    blocking = output.overall_compliance == STATUS_BLOCKING
    return AnalysisResult(
        overall_compliance=output.overall_compliance,
        violations=[
            Violation(
                code=v.code,
                framework=v.framework,
                title=v.title,
                description=v.description,
                severity=Severity(v.severity),
                source=v.source,
                coaching=v.coaching,
                required_actions=tuple(v.required_actions),
                block_generation=blocking,
            )
            for v in output.violations
        ],
        suggestions=[
            Suggestion(
                code=s.code,
                framework=s.framework,
                title=s.title,
                description=s.description,
                severity=Severity(s.severity),
                source=s.source,
                recommendation=s.recommendation,
                best_practice=s.best_practice,
            )
            for s in output.suggestions
        ],
        summary=output.summary,
        clarification_questions=[
            ClarificationQuestion(question=q.question, why=q.why, required=q.required)
            for q in output.additional_questions
        ],
    )


class AIComplianceAnalyzer:
    """
    Asks the reasoning oracle for an overall compliance judgment.

    analyze() returns None when the oracle is unavailable for any reason:
    transport errors, unparseable output and schema mismatches all collapse
    into that single signal.
    """

    def __init__(self, oracle: Optional[ReasoningOracle] = None):
        self.oracle = oracle or LLMOracle()

    def build_request(
        self,
        title: str,
        description: str,
        detected_bundles: Sequence[RequirementBundle],
        documents: Sequence[ComplianceDocument],
    ) -> StructuredRequest[AnalyzerOutput]:
        prompt = (
            f"Project Title: {title}\n"
            f"Project Description: {description}\n\n"
            "Auto-Detected Compliance Requirements (WILL BE INCLUDED AUTOMATICALLY):\n"
            f"{format_bundles(detected_bundles)}\n\n"
            "Relevant Compliance Knowledge Base:\n"
            f"{format_documents(documents)}\n\n"
            f"{OPERATING_PRINCIPLES}\n\n"
            "Your response should contain:\n"
            "- overallCompliance: \"compliant\" unless a practice above applies\n"
            "- violations: [] unless a truly illegal practice is detected\n"
            "- suggestions: [optional nice-to-have improvements]\n"
            "- summary: executive summary of compliance status\n"
            "- additionalQuestions: [] unless absolutely necessary\n\n"
            "Analyze and AUTO-GENERATE specifications:"
        )
        return StructuredRequest(
            name="compliance_analysis",
            prompt=prompt,
            response_model=AnalyzerOutput,
            system_prompt=ANALYZER_SYSTEM_PROMPT,
        )

    async def analyze(
        self,
        title: str,
        description: str,
        detected_bundles: Sequence[RequirementBundle],
        documents: Sequence[ComplianceDocument],
    ) -> Optional[AnalysisResult]:
        request = self.build_request(title, description, detected_bundles, documents)
        try:
            output = await self.oracle.generate_object(request)
            result = to_analysis_result(output)
        except Exception as e:
            log_event(logger, "analyzer_unavailable", "analyzer", {
                "error": str(e),
                "error_type": type(e).__name__,
            }, level="ERROR")
            return None

        log_event(logger, "analysis_complete", "analyzer", {
            "status": result.overall_compliance,
            "violations": len(result.violations),
            "suggestions": len(result.suggestions),
            "questions": len(result.clarification_questions),
        })
        return result
