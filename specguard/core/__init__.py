"""
Core compliance types, deterministic rule evaluation and LLM access.
"""

from .compliance_types import (
    ComplianceVerdict,
    RequirementBundle,
    Suggestion,
    Violation,
)

__all__ = [
    "ComplianceVerdict",
    "RequirementBundle",
    "Suggestion",
    "Violation",
]
