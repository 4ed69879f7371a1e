import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

from specguard.core.compliance_types import ComplianceDocument
from specguard.core.oracle import LLMOracle, ReasoningOracle, StructuredRequest
from specguard.core.oracle_schemas import RetrievalClassification
from specguard.logging_config import log_event
from specguard.rules import get_knowledge_base

logger = logging.getLogger(__name__)

RetrievalMethod = Literal["oracle", "keyword_fallback"]

# Generic terms that make the whole knowledge base relevant in fallback mode
FALLBACK_GENERIC_TERMS = ("data", "security", "user")
FALLBACK_DEFAULT_SLICE = 4
FALLBACK_FRAMEWORKS = ("General Security", "Data Protection")

KNOWN_FRAMEWORKS_HINT = "GDPR, HIPAA, SOC 2, PCI DSS, OWASP, ISO 27001, NIST, WCAG"


@dataclass
class RetrievalResult:
    """Knowledge base entries relevant to one project description."""
    documents: List[ComplianceDocument]
    frameworks: List[str]
    method: RetrievalMethod
    keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": [d.id for d in self.documents],
            "frameworks": list(self.frameworks),
            "method": self.method,
            "keywords": list(self.keywords),
        }


class ComplianceRetrievalService:
    """
    Narrows the compliance knowledge base to documents relevant to a project.

    The oracle classifies the description into frameworks and keywords; if
    it is unreachable or answers out of schema, a substring heuristic over
    the raw description takes over. The heuristic never fails and never
    returns an empty document set.
    """

    def __init__(
        self,
        oracle: Optional[ReasoningOracle] = None,
        documents: Optional[Sequence[ComplianceDocument]] = None,
    ):
        self.oracle = oracle or LLMOracle()
        self.documents = list(documents) if documents is not None else list(get_knowledge_base())

    def _classification_request(self, description: str) -> StructuredRequest[RetrievalClassification]:
        prompt = (
            "Analyze this project description and identify relevant compliance frameworks and keywords:\n\n"
            f"Project: {description}\n\n"
            f"Consider frameworks like {KNOWN_FRAMEWORKS_HINT}."
        )
        return StructuredRequest(
            name="retrieval_classification",
            prompt=prompt,
            response_model=RetrievalClassification,
            system_prompt="You are a compliance classifier. Respond with valid JSON only.",
        )

    def filter_documents(self, frameworks: Sequence[str], keywords: Sequence[str]) -> List[ComplianceDocument]:
        """Keep documents whose framework contains a requested framework, or whose title/content contains a keyword."""
        wanted_frameworks = [f.lower() for f in frameworks if f and f.strip()]
        wanted_keywords = [k.lower() for k in keywords if k and k.strip()]

        relevant: List[ComplianceDocument] = []
        for doc in self.documents:
            framework = doc.framework.lower()
            title = doc.title.lower()
            content = doc.content.lower()
            if any(f in framework for f in wanted_frameworks) or any(
                k in content or k in title for k in wanted_keywords
            ):
                relevant.append(doc)
        return relevant

    def keyword_fallback(self, description: str) -> RetrievalResult:
        """Degradation floor: always returns at least one document and framework."""
        text = (description or "").lower()
        generic_hit = any(term in text for term in FALLBACK_GENERIC_TERMS)

        relevant = [doc for doc in self.documents if generic_hit or doc.framework.lower() in text]
        if not relevant:
            relevant = self.documents[:FALLBACK_DEFAULT_SLICE]

        return RetrievalResult(
            documents=relevant,
            frameworks=list(FALLBACK_FRAMEWORKS),
            method="keyword_fallback",
        )

    async def retrieve(self, description: str) -> RetrievalResult:
        """
        Main entry point: classify, then filter the knowledge base.

        Args:
            description: Raw project description

        Returns:
            RetrievalResult with the filtered documents and the frameworks
            the analysis should be reported against
        """
        try:
            classification = await self.oracle.generate_object(self._classification_request(description))
            # Blank entries are neither filters nor reportable frameworks
            frameworks = [f.strip() for f in classification.relevant_frameworks if f and f.strip()]
            keywords = [k.strip() for k in classification.keywords if k and k.strip()]
            result = RetrievalResult(
                documents=self.filter_documents(frameworks, keywords),
                frameworks=frameworks,
                method="oracle",
                keywords=keywords,
            )
        except Exception as e:
            # OracleError is the contract, but any oracle failure lands on the floor
            log_event(logger, "retrieval_fallback", "retrieval", {
                "error": str(e),
                "error_type": type(e).__name__,
            }, level="WARNING")
            return self.keyword_fallback(description)

        log_event(logger, "retrieval_complete", "retrieval", result.to_dict())
        return result
