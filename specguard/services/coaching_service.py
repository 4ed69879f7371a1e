import logging
from typing import Optional, Protocol, Union

from specguard.config import settings
from specguard.core.compliance_types import Severity
from specguard.core.oracle import LLMOracle, ReasoningOracle

logger = logging.getLogger(__name__)


class CoachingSubject(Protocol):
    """Anything that names a violation: a Violation or an HTTP coaching request."""
    code: str
    title: str
    description: str
    severity: Union[Severity, str]


def build_coaching_prompt(violation: CoachingSubject) -> str:
    severity = violation.severity.value if isinstance(violation.severity, Severity) else violation.severity
    return f"""You are a compliance coach. Provide detailed, supportive guidance for this violation:

Code: {violation.code}
Title: {violation.title}
Description: {violation.description}
Severity: {severity}

Provide:
1. Why this matters (business and legal impact)
2. Step-by-step guidance to fix it
3. Examples of compliant implementations
4. Common mistakes to avoid

Keep it practical, clear, and encouraging."""


class CoachingService:
    """
    Expands a violation into free-text remediation guidance.

    Unlike the analyzer there is no fallback here: oracle errors reach the
    caller unchanged.
    """

    def __init__(self, oracle: Optional[ReasoningOracle] = None, max_tokens: Optional[int] = None):
        self.oracle = oracle or LLMOracle()
        self.max_tokens = max_tokens or settings.coaching_max_tokens

    async def generate_coaching(self, violation: CoachingSubject) -> str:
        logger.info(f"Generating coaching for {violation.code}")
        return await self.oracle.generate_text(
            build_coaching_prompt(violation),
            max_tokens=self.max_tokens,
        )
