"""
Validation models for rule-based candidate scoring.
"""
from typing import List
from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    """Outcome of scoring a single candidate. Issues keep the order rules fired in."""
    is_valid: bool
    confidence: float = Field(..., ge=0, le=1, description="Clamped confidence from 0 to 1")
    issues: List[str] = Field(default_factory=list)
