"""
Find-or-create profiles for verified phones.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Profile, ProfileRole
from ..utils.phone import normalize_phone, get_phone_last4

logger = logging.getLogger(__name__)


def resolve_profile(
    db: Session,
    phone: str,
    full_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Profile, bool]:
    """
    Load the profile for a verified phone, creating it on first login.

    The phone is stored in E.164 form. New profiles get role
    "user"; existing roles are never touched here. full_name is only
    written when the profile has none.

    Returns:
        (profile, created)
    """
    now = now or datetime.utcnow()
    storage_phone = normalize_phone(phone)
    full_name = (full_name or "").strip() or None

    profile = db.query(Profile).filter(Profile.phone == storage_phone).first()
    created = False

    if profile is None:
        profile = Profile(
            phone=storage_phone,
            full_name=full_name,
            role=ProfileRole.USER,
            phone_verified=True,
            verified_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(profile)
        try:
            db.flush()
            created = True
            logger.info(f"[Identity] Created profile {profile.id} for ***{get_phone_last4(storage_phone)}")
        except IntegrityError:
            # Lost a race with a concurrent first login for the same phone
            db.rollback()
            profile = db.query(Profile).filter(Profile.phone == storage_phone).one()

    if not created:
        profile.phone_verified = True
        profile.verified_at = now
        if full_name and not profile.full_name:
            profile.full_name = full_name

    db.commit()
    return profile, created


def get_profile(db: Session, profile_id: str) -> Optional[Profile]:
    return db.query(Profile).filter(Profile.id == profile_id).first()
