from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    # Validated by the service so an empty question is a 400, not a 422.
    question: Optional[str] = None
    history: List[Dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    capabilities: Dict[str, bool]


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Dict[str, Any] | None = None
