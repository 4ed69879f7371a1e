"""
Output schemas the reasoning oracle must satisfy.

Field names follow the wire format the prompts ask for (camelCase); unknown
keys are rejected so a drifting response is a failure, never a partial
success.
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class _OracleModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class RetrievalClassification(_OracleModel):
    relevant_frameworks: List[str] = Field(
        ...,
        alias="relevantFrameworks",
        description="Compliance frameworks relevant to this project",
    )
    keywords: List[str] = Field(
        ...,
        description="Key compliance-related keywords found",
    )


class AnalyzerViolation(_OracleModel):
    code: str = Field(..., description="Compliance code like GDPR-001")
    framework: str = Field(..., description="Compliance framework name")
    title: str = Field(..., description="Violation title")
    description: str = Field(..., description="Detailed description of the violation")
    severity: Literal["high", "medium", "low"]
    source: str = Field(..., description="Legal source reference")
    coaching: str = Field(..., description="Specific coaching on how to fix this issue")
    required_actions: List[str] = Field(
        ...,
        alias="requiredActions",
        description="Step-by-step actions to resolve",
    )


class AnalyzerSuggestion(_OracleModel):
    code: str
    framework: str
    title: str
    description: str
    severity: Literal["low", "medium"]
    source: str
    recommendation: str
    best_practice: str = Field(..., alias="bestPractice")


class AnalyzerQuestion(_OracleModel):
    question: str = Field(..., description="Question to ask user for clarification")
    why: str = Field(..., description="Why this information is needed for compliance")
    required: bool = Field(..., description="Whether this is critical to proceed")


class AnalyzerOutput(_OracleModel):
    overall_compliance: Literal["compliant", "minor-issues", "blocking-violations"] = Field(
        ...,
        alias="overallCompliance",
    )
    violations: List[AnalyzerViolation]
    suggestions: List[AnalyzerSuggestion]
    summary: str = Field(..., description="Executive summary of compliance status")
    additional_questions: List[AnalyzerQuestion] = Field(
        ...,
        alias="additionalQuestions",
        description="Questions to ask user ONLY if absolutely necessary for compliance - keep to minimum",
    )
