"""
Signed-in user surfaces
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies.auth import require_user, require_agent
from ..security.access import AccessContext
from ..services.identity_service import get_profile

router = APIRouter(tags=["account"])


def _profile_body(db: Session, access: AccessContext):
    profile = get_profile(db, access.profile_id) if access.profile_id else None
    return {
        "success": True,
        "capability": access.capability.value,
        "profile": profile.to_dict() if profile else None,
    }


@router.get("/account/me")
def account_me(access: AccessContext = Depends(require_user), db: Session = Depends(get_db)):
    return _profile_body(db, access)


@router.get("/agent/me")
def agent_me(access: AccessContext = Depends(require_agent), db: Session = Depends(get_db)):
    return _profile_body(db, access)
