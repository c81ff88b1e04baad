"""
Admin surfaces for OTP and session operations
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies.auth import require_admin
from ..models import OTPChallenge
from ..security.access import AccessContext
from ..services.session_service import revoke_session_by_id

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/otp-challenges")
def list_otp_challenges(
    limit: int = Query(50, ge=1, le=200),
    access: AccessContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Most recent challenges, newest first. Hashes are never returned."""
    challenges = (
        db.query(OTPChallenge)
        .order_by(OTPChallenge.created_at.desc())
        .limit(limit)
        .all()
    )
    return {"success": True, "challenges": [c.to_dict() for c in challenges]}


@router.post("/sessions/{session_id}/revoke")
def revoke_session(
    session_id: str,
    access: AccessContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    auth_session = revoke_session_by_id(db, session_id)
    if auth_session is None:
        raise HTTPException(status_code=404, detail="NOT_FOUND")
    return {"success": True, "sessionId": auth_session.id, "revoked": auth_session.revoked}
