from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from specguard.core.compliance_types import AutoCompliancePattern, RequirementBundle
from specguard.core.matching import keywords_match, normalize_text
from specguard.rules import get_auto_compliance_patterns

logger = logging.getLogger(__name__)


def detect_auto_compliance_requirements(
    title: str,
    description: str,
    patterns: Optional[Sequence[AutoCompliancePattern]] = None,
) -> List[RequirementBundle]:
    """
    Collect the requirement bundles of every pattern found in the text.

    Bundles are returned in catalog-then-bundle order. Two patterns that
    carry the same control both contribute it.
    """
    if patterns is None:
        patterns = get_auto_compliance_patterns()

    text = normalize_text(title, description)
    detected: List[RequirementBundle] = []
    for pattern in patterns:
        if keywords_match(pattern.keywords, pattern.match_mode, text):
            detected.extend(pattern.requirements)

    logger.debug("Auto-detected requirements: %s", [b.type for b in detected])
    return detected


def bundle_frameworks(bundles: Sequence[RequirementBundle]) -> List[str]:
    """Union of bundle frameworks in first-seen order."""
    seen: List[str] = []
    for bundle in bundles:
        for framework in bundle.frameworks:
            if framework not in seen:
                seen.append(framework)
    return seen
