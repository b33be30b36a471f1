"""Pydantic schemas for declarative retry policy documents."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ExponentialDefinition(BaseModel):
    """Growth parameters of an exponential policy."""

    model_config = ConfigDict(extra="forbid")

    max_interval: float = Field(default=2000.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1)
    jitter: Literal["none", "full", "equal"] = "none"


class PolicyDefinition(BaseModel):
    """Schema for one named retry policy."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=128)
    max_attempts: int = Field(..., ge=0)
    backoff_policy: Literal["none", "fixed", "exponential"] | None = None
    backoff: float | None = Field(default=None, ge=0)
    exponential: ExponentialDefinition | None = None
    retryable_errors: list[str] = Field(default_factory=list)
    retry_if: str | None = None
    use_original_error: bool = False
    log_on_exhaustion: bool = True


class PolicyDocument(BaseModel):
    """Schema for a whole policy file."""

    policies: list[PolicyDefinition] = Field(..., min_length=1)
