"""
API request/response schemas using Pydantic.

These define the contract between API and the frontend. Field names on the
wire are camelCase where the frontend sends camelCase.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """
    Body of every 4xx/5xx response.
    """
    error: str


class StatusResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    """
    Health check response.
    """
    status: str
    timestamp: str
    services: Dict[str, str] = Field(default_factory=dict)
    caches: Dict[str, Dict[str, float]] = Field(default_factory=dict)


class QuestionRequest(BaseModel):
    """
    Request for /api/sonar.
    """
    question: Optional[str] = None


class AnswerResponse(BaseModel):
    answer: str


class RequirementDescriptionsRequest(BaseModel):
    """
    Request for /api/requirement-descriptions.
    """
    model_config = ConfigDict(populate_by_name=True)

    requirements: Optional[List[str]] = None
    grant_title: Optional[str] = Field(default=None, alias="grantTitle")


class RequirementDescriptionsResponse(BaseModel):
    descriptions: List[str]


class ExplainGrantRequest(BaseModel):
    """
    Request for /api/explain-grant.
    """
    title: Optional[str] = None
    requirements: Optional[List[str]] = Field(default_factory=list)


class ExplainGrantResponse(BaseModel):
    criteria: List[str]
    unique: str


class ContactRequest(BaseModel):
    """
    Contact form submission.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    contact_type: Optional[str] = Field(default=None, alias="contactType")
    subject: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
