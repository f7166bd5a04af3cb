"""
marketplace/models/verification.py

Age/ID verification summary and the 21+ check result.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict


VerificationStatus = Literal["none", "pending", "approved", "rejected"]


class VerificationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    verification_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class VerificationCheck(BaseModel):
    """Outcome of require_21_plus; failure carries the HTTP-facing fields."""
    model_config = ConfigDict(frozen=True)

    ok: bool
    verification_status: VerificationStatus
    status: Optional[int] = None
    code: Optional[str] = None
    message: Optional[str] = None
    redirect_to: Optional[str] = None
