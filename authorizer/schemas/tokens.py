from __future__ import annotations

from pydantic import BaseModel, Field


class TokenValidationRequest(BaseModel):
    token: str = Field(min_length=1)


class TokenValidationResponse(BaseModel):
    valid: bool
