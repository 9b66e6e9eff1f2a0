"""Contains schemas shared by every router."""

from pydantic import BaseModel, Field
from typing import Annotated, Optional


class HealthResponse(BaseModel):
    status: Annotated[str, Field(default="OK")]
    timestamp: Annotated[str, Field()]


class ErrorResponse(BaseModel):
    """Default error body returned by every endpoint."""

    error: Annotated[str, Field()]
    details: Annotated[Optional[str], Field(default=None)]
