import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from specguard.core.oracle import OracleError
from specguard.core.oracle_schemas import AnalyzerOutput, RetrievalClassification


class StubOracle:
    """
    In-memory ReasoningOracle.

    `responses` maps a StructuredRequest name to the model to return, or to
    an exception to raise. `fail=True` makes every call raise OracleError.
    """

    def __init__(self, responses=None, text="Coaching text", fail=False):
        self.responses = dict(responses or {})
        self.text = text
        self.fail = fail
        self.object_calls = []
        self.text_calls = []

    @property
    def call_count(self):
        return len(self.object_calls) + len(self.text_calls)

    async def generate_object(self, request):
        self.object_calls.append(request)
        if self.fail:
            raise OracleError("oracle unavailable", request_name=request.name)
        response = self.responses.get(request.name)
        if response is None:
            raise OracleError(f"no stubbed response for {request.name}", request_name=request.name)
        if isinstance(response, Exception):
            raise response
        return response

    async def generate_text(self, prompt, system_prompt="", max_tokens=1000):
        self.text_calls.append({"prompt": prompt, "system_prompt": system_prompt, "max_tokens": max_tokens})
        if self.fail:
            raise RuntimeError("oracle unavailable")
        return self.text


def classification(frameworks, keywords):
    return RetrievalClassification.model_validate({"relevantFrameworks": frameworks, "keywords": keywords})


def analyzer_output(status="compliant", violations=None, suggestions=None, summary="All good.", questions=None):
    return AnalyzerOutput.model_validate({
        "overallCompliance": status,
        "violations": violations or [],
        "suggestions": suggestions or [],
        "summary": summary,
        "additionalQuestions": questions or [],
    })


def analyzer_violation(code="OWASP-101", framework="OWASP", severity="high"):
    return {
        "code": code,
        "framework": framework,
        "title": "Plaintext passwords",
        "description": "Passwords are stored without hashing.",
        "severity": severity,
        "source": "OWASP ASVS 2.4",
        "coaching": "Hash passwords with bcrypt or argon2.",
        "requiredActions": ["Hash passwords before storage"],
    }


@pytest.fixture
def stub_oracle():
    return StubOracle(responses={
        "retrieval_classification": classification(["HIPAA"], ["encryption"]),
        "compliance_analysis": analyzer_output(),
    })


@pytest.fixture
def failing_oracle():
    return StubOracle(fail=True)
