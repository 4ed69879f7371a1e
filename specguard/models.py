"""
Pydantic models for API requests and responses

Request/response schemas for the compliance HTTP endpoints. The verdict
itself is returned as ComplianceVerdict.to_dict() and described here by
VerdictResponse for the OpenAPI schema.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List, Literal


# ==================== Request Models ====================

class ComplianceRequest(BaseModel):
    """
    Project to analyze before specification generation.

    workspaceId/userId are only used to attribute the audit event.
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Project title"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=20000,
        description="Free-text project description"
    )
    workspaceId: Optional[str] = Field(
        default=None,
        description="Workspace the analysis belongs to (audit only)"
    )
    userId: Optional[str] = Field(
        default=None,
        description="User who requested the analysis (audit only)"
    )

    @field_validator('title', 'description')
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Validate field is not just whitespace"""
        if not v.strip():
            raise ValueError('Field cannot be empty or whitespace only')
        return v.strip()

    class Config:
        """Pydantic configuration"""
        json_schema_extra = {
            "example": {
                "title": "Login Portal",
                "description": "Users can log in with email and password",
                "workspaceId": "ws_123",
                "userId": "user_456"
            }
        }


class CoachingRequest(BaseModel):
    """Violation to expand into remediation guidance"""

    code: str = Field(..., min_length=1, description="Violation code, e.g. PCI-DSS-BLOCK-001")
    title: str = Field(..., min_length=1, description="Violation title")
    description: str = Field(..., min_length=1, description="Violation description")
    severity: Literal["high", "medium", "low"] = Field(..., description="Violation severity")


# ==================== Response Models ====================

class VerdictResponse(BaseModel):
    """Compliance verdict as returned to the spec-generation pipeline"""

    overallCompliance: Literal["compliant", "minor-issues", "blocking-violations"]
    violations: List[Dict[str, Any]] = Field(default=[])
    suggestions: List[Dict[str, Any]] = Field(default=[])
    summary: str = Field(..., description="Executive summary of compliance status")
    analyzedFrameworks: List[str] = Field(default=[])
    autoComplianceSpecs: List[Dict[str, Any]] = Field(default=[])
    clarificationQuestions: List[Dict[str, Any]] = Field(default=[])


class CoachingResponse(BaseModel):
    coaching: str = Field(..., description="Free-text guidance for the violation")


class ErrorResponse(BaseModel):
    """
    Error response model.
    """

    error: str = Field(
        ...,
        description="High-level error message"
    )
    error_type: str = Field(
        ...,
        description="Error category (e.g., oracle_unavailable, unexpected_error)"
    )
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional structured error details"
    )
