import asyncio

from conftest import StubOracle, analyzer_output, analyzer_violation
from specguard.core.compliance_types import Severity
from specguard.core.oracle import OracleError
from specguard.rules import get_auto_compliance_patterns, get_knowledge_base
from specguard.services.compliance_analyzer import AIComplianceAnalyzer


def _analyze(oracle, bundles=(), documents=None):
    analyzer = AIComplianceAnalyzer(oracle=oracle)
    docs = list(get_knowledge_base()[:2]) if documents is None else documents
    return asyncio.run(analyzer.analyze("Vault", "Store secrets for teams", list(bundles), docs))


def test_prompt_carries_documents_bundles_and_principles():
    oracle = StubOracle(responses={"compliance_analysis": analyzer_output()})
    bundles = get_auto_compliance_patterns()[0].requirements
    _analyze(oracle, bundles=bundles)

    request = oracle.object_calls[0]
    assert request.name == "compliance_analysis"
    assert "Project Title: Vault" in request.prompt
    assert "[GDPR-001] GDPR - Personal Data Collection Consent" in request.prompt
    assert "Severity: high" in request.prompt or "Severity: medium" in request.prompt
    assert "Secure Authentication System" in request.prompt
    assert "ONLY BLOCK FOR TRULY ILLEGAL PRACTICES" in request.prompt
    assert "AUTO-GENERATE" in request.system_prompt


def test_empty_documents_are_stated():
    oracle = StubOracle(responses={"compliance_analysis": analyzer_output()})
    _analyze(oracle, documents=[])
    assert "no matching knowledge base entries" in oracle.object_calls[0].prompt


def test_success_converts_to_domain_types():
    output = analyzer_output(
        status="minor-issues",
        violations=[analyzer_violation(severity="medium")],
        suggestions=[{
            "code": "SOC2-101",
            "framework": "SOC 2",
            "title": "Audit logging",
            "description": "Add audit logs",
            "severity": "low",
            "source": "SOC 2 CC7.2",
            "recommendation": "Log admin actions",
            "bestPractice": "Ship logs to a SIEM",
        }],
        questions=[{"question": "Is data exported?", "why": "Transfers", "required": False}],
    )
    result = _analyze(StubOracle(responses={"compliance_analysis": output}))

    assert result.overall_compliance == "minor-issues"
    [violation] = result.violations
    assert violation.severity == Severity.MEDIUM
    assert violation.required_actions == ("Hash passwords before storage",)
    assert violation.block_generation is False
    assert result.suggestions[0].best_practice == "Ship logs to a SIEM"
    assert result.clarification_questions[0].question == "Is data exported?"


def test_blocking_status_flags_its_violations():
    output = analyzer_output(status="blocking-violations", violations=[analyzer_violation()])
    result = _analyze(StubOracle(responses={"compliance_analysis": output}))
    assert all(v.block_generation for v in result.violations)


def test_oracle_error_returns_none(failing_oracle):
    assert _analyze(failing_oracle) is None


def test_unexpected_exception_returns_none():
    oracle = StubOracle(responses={"compliance_analysis": TimeoutError("slow")})
    assert _analyze(oracle) is None


def test_schema_mismatch_error_returns_none():
    oracle = StubOracle(responses={"compliance_analysis": OracleError("bad shape", request_name="compliance_analysis")})
    assert _analyze(oracle) is None
