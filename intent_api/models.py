"""
Pydantic models for API request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from glance_operator.models import GlanceAPISpec


class GlanceAPICreateRequest(BaseModel):
    """Request to submit a GlanceAPI specification."""
    name: str = Field(
        ...,
        min_length=3,
        max_length=40,
        pattern=r"^[a-z][a-z0-9-]*[a-z0-9]$",
        description="Instance name (lowercase, alphanumeric with hyphens)",
        examples=["glance", "glance-edge"],
    )
    namespace: Optional[str] = Field(
        default=None,
        description="Target namespace (defaults to the API's DEFAULT_NAMESPACE)",
    )
    spec: GlanceAPISpec


class GlanceAPICondition(BaseModel):
    type: str
    status: str
    reason: str = ""
    message: str = ""
    lastTransitionTime: Optional[str] = None


class GlanceAPIResponse(BaseModel):
    """Specification plus the convergence state recorded by the operator."""
    name: str
    namespace: str
    spec: GlanceAPISpec
    phase: str = "Pending"
    message: Optional[str] = None
    lastUpdated: Optional[str] = None
    configHash: Optional[str] = None
    dbSyncHash: Optional[str] = None
    deploymentHash: Optional[str] = None
    conditions: List[GlanceAPICondition] = []


class GlanceAPIListResponse(BaseModel):
    items: List[GlanceAPIResponse]
    total: int


class ErrorResponse(BaseModel):
    detail: str
    code: str = "UNKNOWN_ERROR"
