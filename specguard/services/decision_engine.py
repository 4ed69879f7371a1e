"""
Compliance decision engine.

Runs one analysis through a fixed precedence:

    hard block > deterministic auto-approval > AI-assisted judgment > safe degradation

Deterministic rules are evaluated first and short-circuit the oracle entirely;
the oracle is only consulted when neither rule set resolved the request, and
its failure always produces a well-formed degraded verdict.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import List, Optional, Sequence

from specguard.core.auto_compliance import bundle_frameworks, detect_auto_compliance_requirements
from specguard.core.compliance_types import (
    STATUS_BLOCKING,
    STATUS_COMPLIANT,
    STATUS_MINOR_ISSUES,
    AutoCompliancePattern,
    ComplianceVerdict,
    CriticalViolationRule,
    RequirementBundle,
    Severity,
    Suggestion,
    Violation,
)
from specguard.core.critical_violations import detect_critical_violations, split_blocking
from specguard.core.oracle import LLMOracle, ReasoningOracle
from specguard.logging_config import log_event
from specguard.services.coaching_service import CoachingService
from specguard.services.compliance_analyzer import AIComplianceAnalyzer
from specguard.services.retrieval_service import ComplianceRetrievalService

logger = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    START = "start"
    CRITICAL_CHECK = "critical_check"
    BLOCKED = "blocked"
    AUTO_COMPLIANT = "auto_compliant"
    AI_ANALYSIS = "ai_analysis"
    AI_FALLBACK = "ai_fallback"
    DONE = "done"


BLOCKED_SUMMARY = (
    "CRITICAL COMPLIANCE VIOLATIONS DETECTED: Your project description contains practices "
    "that violate federal regulations. Review the violations below before proceeding. "
    "Generation has been blocked for your protection."
)

FALLBACK_CRITICAL_SUMMARY = (
    "CRITICAL COMPLIANCE VIOLATIONS DETECTED: AI analysis failed, but keyword detection found "
    "serious regulatory violations. Review the violations below before proceeding."
)

FALLBACK_GENERIC_SUMMARY = (
    "Compliance analysis is currently unavailable. Please proceed with caution and consider "
    "a manual compliance review."
)

FALLBACK_FRAMEWORKS = ["General"]

GENERIC_SECURITY_SUGGESTION = Suggestion(
    code="GENERAL-001",
    framework="General Security",
    title="Security Review Recommended",
    description=(
        "The compliance analysis system encountered an error. "
        "A manual security review is recommended."
    ),
    severity=Severity.MEDIUM,
    source="Best Practice",
    recommendation=(
        "Please review your project for data protection, authentication, "
        "and security requirements."
    ),
    best_practice=(
        "Consider GDPR for data handling, OWASP for security vulnerabilities, "
        "and SOC 2 for access controls."
    ),
)


def auto_compliant_summary(bundles: Sequence[RequirementBundle], frameworks: Sequence[str]) -> str:
    return (
        "✓ Compliance requirements auto-detected and will be built into specifications. "
        f"Detected: {', '.join(b.title for b in bundles)}. "
        f"All {', '.join(frameworks)} requirements will be included automatically "
        "in the generated specifications."
    )


def _unique(items: Sequence[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def escalate_if_unflagged(status: str, violations: List[Violation]) -> List[Violation]:
    """
    A blocking verdict must name at least one generation-blocking violation.

    When a blocking status is reached through violations that were detected
    as warnings, those violations become the blocking reason.
    """
    if status != STATUS_BLOCKING or any(v.block_generation for v in violations):
        return violations
    return [dataclasses.replace(v, block_generation=True) for v in violations]


class ComplianceDecisionEngine:
    """
    Orchestrates one compliance analysis.

    Collaborators are injectable so tests can count oracle calls; by default
    every stage shares a single LLMOracle.
    """

    def __init__(
        self,
        retrieval: Optional[ComplianceRetrievalService] = None,
        analyzer: Optional[AIComplianceAnalyzer] = None,
        oracle: Optional[ReasoningOracle] = None,
        critical_rules: Optional[Sequence[CriticalViolationRule]] = None,
        patterns: Optional[Sequence[AutoCompliancePattern]] = None,
    ):
        oracle = oracle or LLMOracle()
        self.retrieval = retrieval or ComplianceRetrievalService(oracle=oracle)
        self.analyzer = analyzer or AIComplianceAnalyzer(oracle=oracle)
        self.critical_rules = critical_rules
        self.patterns = patterns

    def _transition(self, state: AnalysisState, **details) -> AnalysisState:
        log_event(logger, "state_transition", "decision_engine", {"state": state.value, **details})
        return state

    async def analyze_compliance(self, title: str, description: str) -> ComplianceVerdict:
        """
        Produce a verdict for a project title and description.

        Never raises for oracle trouble: retrieval and analysis failures
        degrade into the fallback verdict.
        """
        self._transition(AnalysisState.START)

        # Step 1: critical violations
        self._transition(AnalysisState.CRITICAL_CHECK)
        critical = detect_critical_violations(title, description, self.critical_rules)
        blocking, deferred = split_blocking(critical)
        if blocking:
            verdict = ComplianceVerdict(
                overall_compliance=STATUS_BLOCKING,
                violations=blocking,
                summary=BLOCKED_SUMMARY,
                analyzed_frameworks=[v.framework for v in blocking],
            )
            return self._finish(AnalysisState.BLOCKED, verdict)

        # Step 2: deterministic auto-approval (deferred warnings are not carried here)
        bundles = detect_auto_compliance_requirements(title, description, self.patterns)
        if bundles:
            if deferred:
                logger.info(
                    "Auto-compliant verdict omits non-blocking violations: %s",
                    [v.code for v in deferred],
                )
            frameworks = bundle_frameworks(bundles)
            verdict = ComplianceVerdict(
                overall_compliance=STATUS_COMPLIANT,
                summary=auto_compliant_summary(bundles, frameworks),
                analyzed_frameworks=frameworks,
                auto_compliance_specs=bundles,
            )
            return self._finish(AnalysisState.AUTO_COMPLIANT, verdict)

        # Step 3: retrieval then analyzer
        self._transition(AnalysisState.AI_ANALYSIS, deferred=[v.code for v in deferred])
        retrieved = await self.retrieval.retrieve(description)
        result = await self.analyzer.analyze(title, description, bundles, retrieved.documents)

        if result is None:
            return self._finish(AnalysisState.AI_FALLBACK, self._fallback_verdict(deferred, bundles))

        violations = list(deferred) + result.violations
        status = result.overall_compliance if violations else STATUS_COMPLIANT
        verdict = ComplianceVerdict(
            overall_compliance=status,
            violations=escalate_if_unflagged(status, violations),
            suggestions=result.suggestions,
            summary=result.summary,
            analyzed_frameworks=list(retrieved.frameworks),
            auto_compliance_specs=bundles,
            clarification_questions=result.clarification_questions,
        )
        return self._finish(AnalysisState.DONE, verdict)

    def _fallback_verdict(
        self,
        deferred: List[Violation],
        bundles: List[RequirementBundle],
    ) -> ComplianceVerdict:
        if deferred:
            return ComplianceVerdict(
                overall_compliance=STATUS_BLOCKING,
                violations=escalate_if_unflagged(STATUS_BLOCKING, deferred),
                summary=FALLBACK_CRITICAL_SUMMARY,
                analyzed_frameworks=_unique([v.framework for v in deferred]),
            )
        return ComplianceVerdict(
            overall_compliance=STATUS_MINOR_ISSUES,
            suggestions=[GENERIC_SECURITY_SUGGESTION],
            summary=FALLBACK_GENERIC_SUMMARY,
            analyzed_frameworks=list(FALLBACK_FRAMEWORKS),
            auto_compliance_specs=bundles,
        )

    def _finish(self, state: AnalysisState, verdict: ComplianceVerdict) -> ComplianceVerdict:
        verdict.check_invariants()
        self._transition(
            state,
            status=verdict.overall_compliance,
            violations=[v.code for v in verdict.violations],
            frameworks=verdict.analyzed_frameworks,
        )
        if state != AnalysisState.DONE:
            self._transition(AnalysisState.DONE)
        return verdict


# ─────────────────────────────────────────────────────────────────────────────
# Caller conveniences
# ─────────────────────────────────────────────────────────────────────────────

_engine: Optional[ComplianceDecisionEngine] = None
_coaching: Optional[CoachingService] = None


def get_decision_engine() -> ComplianceDecisionEngine:
    global _engine
    if _engine is None:
        _engine = ComplianceDecisionEngine()
    return _engine


def get_coaching_service() -> CoachingService:
    global _coaching
    if _coaching is None:
        _coaching = CoachingService()
    return _coaching


async def analyze_compliance(title: str, description: str) -> ComplianceVerdict:
    return await get_decision_engine().analyze_compliance(title, description)


async def generate_coaching(violation: Violation) -> str:
    return await get_coaching_service().generate_coaching(violation)
