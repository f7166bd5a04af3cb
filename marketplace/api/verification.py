"""
Verification status API.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from marketplace.core.auth import Identity, get_current_identity
from marketplace.features.verification.service import get_user_verification_status, require_21_plus
from marketplace.models.verification import VerificationCheck, VerificationSummary

router = APIRouter(prefix="/verification", tags=["verification"])


class VerificationStatusResponse(BaseModel):
    summary: VerificationSummary
    check: VerificationCheck


@router.get("/status", response_model=VerificationStatusResponse)
def verification_status(identity: Identity = Depends(get_current_identity)):
    summary = get_user_verification_status(identity.user_id)
    return VerificationStatusResponse(summary=summary, check=require_21_plus(summary))
