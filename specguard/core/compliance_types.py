# ==============================================
# File: specguard/core/compliance_types.py
# Description: Compliance decision data structures
# ==============================================

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple


ComplianceStatus = Literal["compliant", "minor-issues", "blocking-violations"]

STATUS_COMPLIANT: ComplianceStatus = "compliant"
STATUS_MINOR_ISSUES: ComplianceStatus = "minor-issues"
STATUS_BLOCKING: ComplianceStatus = "blocking-violations"


class Severity(str, Enum):
    """Severity of a catalog document, violation or suggestion"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchMode(str, Enum):
    """How a rule's keyword list is combined"""
    ALL = "all"
    ANY = "any"


@dataclass(frozen=True)
class ComplianceDocument:
    """Immutable knowledge base entry used as analyzer context"""
    id: str
    framework: str
    title: str
    content: str
    severity: Severity
    source: str


@dataclass(frozen=True)
class Violation:
    code: str
    framework: str
    title: str
    description: str
    severity: Severity
    source: str
    coaching: str
    required_actions: Tuple[str, ...] = ()
    block_generation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "framework": self.framework,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "source": self.source,
            "coaching": self.coaching,
            "requiredActions": list(self.required_actions),
            "blockGeneration": self.block_generation,
        }


@dataclass(frozen=True)
class Suggestion:
    """Non-blocking best-practice note"""
    code: str
    framework: str
    title: str
    description: str
    severity: Severity
    source: str
    recommendation: str
    best_practice: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "framework": self.framework,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "source": self.source,
            "recommendation": self.recommendation,
            "bestPractice": self.best_practice,
        }


@dataclass(frozen=True)
class ClarificationQuestion:
    question: str
    why: str
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"question": self.question, "why": self.why, "required": self.required}


@dataclass(frozen=True)
class RequirementBundle:
    """Pre-written specification clauses injected when a pattern is detected"""
    type: str
    title: str
    specs: Tuple[str, ...]
    frameworks: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "specs": list(self.specs),
            "frameworks": list(self.frameworks),
        }


# ----------------------------------------------
# Secondary checks (tagged predicates)
# ----------------------------------------------

PredicateKind = Literal["present_without"]


@dataclass(frozen=True)
class SecondaryCheck:
    """
    Named predicate over normalized text.

    present_without: every `require_all` term is present, at least one
    `require_any` term is present (when given), and no `unless_any` term is.
    """
    kind: PredicateKind
    require_all: Tuple[str, ...] = ()
    require_any: Tuple[str, ...] = ()
    unless_any: Tuple[str, ...] = ()

    def evaluate(self, text: str) -> bool:
        return PREDICATE_EVALUATORS[self.kind](self, text)


def _present_without(check: SecondaryCheck, text: str) -> bool:
    if not all(term in text for term in check.require_all):
        return False
    if check.require_any and not any(term in text for term in check.require_any):
        return False
    return not any(term in text for term in check.unless_any)


PREDICATE_EVALUATORS: Dict[str, Callable[[SecondaryCheck, str], bool]] = {
    "present_without": _present_without,
}


@dataclass(frozen=True)
class CriticalViolationRule:
    keywords: Tuple[str, ...]
    match_mode: MatchMode
    violation: Violation
    secondary_check: Optional[SecondaryCheck] = None


@dataclass(frozen=True)
class AutoCompliancePattern:
    keywords: Tuple[str, ...]
    match_mode: MatchMode
    requirements: Tuple[RequirementBundle, ...]


# ----------------------------------------------
# Verdict
# ----------------------------------------------

@dataclass
class ComplianceVerdict:
    """
    The engine's single output for one analysis.

    Callers must not generate a specification when overall_compliance is
    "blocking-violations".
    """
    overall_compliance: ComplianceStatus
    violations: List[Violation] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    summary: str = ""
    analyzed_frameworks: List[str] = field(default_factory=list)
    auto_compliance_specs: List[RequirementBundle] = field(default_factory=list)
    clarification_questions: List[ClarificationQuestion] = field(default_factory=list)

    @property
    def blocks_generation(self) -> bool:
        return self.overall_compliance == STATUS_BLOCKING

    def check_invariants(self) -> None:
        if self.overall_compliance == STATUS_BLOCKING:
            if not self.violations:
                raise ValueError("blocking verdict without violations")
            if not any(v.block_generation for v in self.violations):
                raise ValueError("blocking verdict without a generation-blocking violation")
        if self.overall_compliance == STATUS_COMPLIANT and self.auto_compliance_specs and self.violations:
            raise ValueError("auto-compliant verdict must not carry violations")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallCompliance": self.overall_compliance,
            "violations": [v.to_dict() for v in self.violations],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "summary": self.summary,
            "analyzedFrameworks": list(self.analyzed_frameworks),
            "autoComplianceSpecs": [b.to_dict() for b in self.auto_compliance_specs],
            "clarificationQuestions": [q.to_dict() for q in self.clarification_questions],
        }
