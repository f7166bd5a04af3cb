"""
marketplace/features/verification/service.py

Age/ID verification status (most recent attempt wins) and the 21+ check.
"""

from typing import Optional

from marketplace.features.access.store import AccessStore, get_primary_store
from marketplace.models.records import VerificationRecord
from marketplace.models.verification import VerificationCheck, VerificationStatus, VerificationSummary


ID_VERIFICATION_REQUIRED = "ID_VERIFICATION_REQUIRED"
ID_VERIFICATION_REQUIRED_MESSAGE = "21+ verification is required to access gated products."
DEFAULT_VERIFY_PATH = "/verify-age"

_KNOWN_STATUSES = {"pending", "approved", "rejected"}


def normalize_verification_status(raw: Optional[str]) -> VerificationStatus:
    """
    Map a stored status onto the four-state model.

    "verified" is a legacy spelling of "approved"; anything unrecognised is
    still under review and reads as "pending".
    """
    if raw is None:
        return "none"
    value = raw.strip().lower()
    if value == "verified":
        return "approved"
    if value in _KNOWN_STATUSES:
        return value  # type: ignore[return-value]
    return "pending"


def summarize_verification(record: Optional[VerificationRecord]) -> VerificationSummary:
    if record is None:
        return VerificationSummary(status="none")
    return VerificationSummary(
        status=normalize_verification_status(record.status),
        verification_id=record.id,
        reviewed_at=record.reviewed_at,
    )


def get_user_verification_status(user_id: Optional[str], store: Optional[AccessStore] = None) -> VerificationSummary:
    if not user_id:
        return VerificationSummary(status="none")
    store = store or get_primary_store()
    return summarize_verification(store.fetch_latest_verification(user_id))


def require_21_plus(summary: VerificationSummary, redirect_to: str = DEFAULT_VERIFY_PATH) -> VerificationCheck:
    if summary.status == "approved":
        return VerificationCheck(ok=True, verification_status=summary.status)
    return VerificationCheck(
        ok=False,
        verification_status=summary.status,
        status=403,
        code=ID_VERIFICATION_REQUIRED,
        message=ID_VERIFICATION_REQUIRED_MESSAGE,
        redirect_to=redirect_to,
    )
