"""
Base Pydantic schemas with common patterns.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# range of the Integer columns (int4 on Postgres)
DB_INT_MIN = -(2**31)
DB_INT_MAX = 2**31 - 1


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)


class OkResponse(BaseModel):
    """Outcome envelope shared by checkout and error responses."""

    ok: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    code: Optional[str] = Field(None, description="Machine-readable error code")


class MessageResponse(BaseModel):
    """Success response schema."""

    message: str = Field(..., description="Success message")
