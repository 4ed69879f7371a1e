# ==============================================
# File: specguard/core/critical_violations.py
# Description: Deterministic critical violation detection
# ==============================================

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from specguard.core.compliance_types import CriticalViolationRule, Violation
from specguard.core.matching import keywords_match, normalize_text
from specguard.rules import get_critical_rules

logger = logging.getLogger(__name__)


def rule_matches(rule: CriticalViolationRule, text: str) -> bool:
    """
    A rule's secondary check, when present, is the whole condition; the
    keyword list is only consulted for rules without one.
    """
    if rule.secondary_check is not None:
        return rule.secondary_check.evaluate(text)
    return keywords_match(rule.keywords, rule.match_mode, text)


def detect_critical_violations(
    title: str,
    description: str,
    rules: Optional[Sequence[CriticalViolationRule]] = None,
) -> List[Violation]:
    """
    Evaluate the critical violation rules against a project description.

    Returns the matching violations in catalog order, one per rule at most.
    """
    if rules is None:
        rules = get_critical_rules()

    text = normalize_text(title, description)
    detected: List[Violation] = []
    for rule in rules:
        if rule_matches(rule, text):
            detected.append(rule.violation)

    if detected:
        logger.info(
            "Critical violations detected: %s",
            [(v.code, v.block_generation) for v in detected],
        )
    return detected


def split_blocking(violations: Sequence[Violation]) -> tuple[List[Violation], List[Violation]]:
    """Partition into (blocking, deferred) preserving order."""
    blocking = [v for v in violations if v.block_generation]
    deferred = [v for v in violations if not v.block_generation]
    return blocking, deferred
