"""
Phone OTP auth endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.env import is_production_env
from ..db import get_db
from ..errors import AuthError, RateLimited, ServerMisconfigured, SessionInvalid
from ..models import OTPContext
from ..security.cookies import set_session_cookie, clear_session_cookie
from ..services.auth.audit import AuditService
from ..services.identity_service import resolve_profile, get_profile
from ..services.otp_service import OTPService
from ..services.session_service import issue_session, peek_session, validate_session, revoke_latest_session
from ..utils.phone import get_phone_last4
from ..utils.request_info import get_client_ip, get_user_agent, get_request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class SendOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional so that malformed input still gets the uniform success response
    phone: Optional[str] = None
    profile_id: Optional[str] = Field(None, alias="profileId")
    context: Optional[str] = OTPContext.LOGIN


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str
    otp: str
    full_name: Optional[str] = Field(None, alias="fullName")


@router.post("/send-otp")
async def send_otp(payload: SendOTPRequest, request: Request, db: Session = Depends(get_db)):
    """
    Request an OTP. Always answers {"success": true}; invalid phones,
    rate limits and misconfiguration are only visible in server logs.
    """
    body = {"success": True}
    ip = get_client_ip(request)
    try:
        result = await OTPService.send_otp(
            db,
            payload.phone or "",
            ip=ip,
            user_agent=get_user_agent(request),
            profile_id=payload.profile_id,
            context=payload.context or OTPContext.LOGIN,
            request_id=get_request_id(request),
        )
        if settings.DEV_RETURN_OTP and not is_production_env():
            body["debugOtp"] = result.code
    except ServerMisconfigured as e:
        logger.error(f"[OTP] send-otp refused: {e.message}")
    except RateLimited:
        pass
    except AuthError as e:
        logger.info(f"[OTP] send-otp rejected: {e.code}")
    except Exception as e:
        logger.error(f"[OTP] send-otp failed: {e}", exc_info=True)
        AuditService.log_otp_send("error", ip=ip, request_id=get_request_id(request), reason=type(e).__name__)
    return body


@router.post("/verify-otp")
async def verify_otp(
    payload: VerifyOTPRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Verify an OTP, find or create the profile, and start a session."""
    ip = get_client_ip(request)
    user_agent = get_user_agent(request)
    request_id = get_request_id(request)

    challenge = OTPService.verify_otp(db, payload.phone, payload.otp, ip=ip, request_id=request_id)

    profile, created = resolve_profile(db, challenge.phone, full_name=payload.full_name)
    challenge.profile_id = profile.id
    db.commit()

    _, cookie_value = issue_session(db, profile, ip=ip, user_agent=user_agent)
    set_session_cookie(response, cookie_value)

    AuditService.log_otp_verify(
        "success",
        phone_last4=get_phone_last4(challenge.phone),
        ip=ip,
        request_id=request_id,
        profile_id=profile.id,
        is_new_profile=created,
    )
    return {"success": True, "userId": profile.id, "role": profile.role}


@router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Revoke the caller's session (if any) and clear the cookie."""
    payload = peek_session(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if payload:
        revoke_latest_session(db, payload["profileId"])
    clear_session_cookie(response)
    return {"success": True}


@router.get("/session")
def get_session(request: Request, db: Session = Depends(get_db)):
    """Current session and profile, checked against the database."""
    info = validate_session(db, request.cookies.get(settings.SESSION_COOKIE_NAME))
    profile = get_profile(db, info.profile_id)
    if profile is None:
        raise SessionInvalid(SessionInvalid.MISSING)
    return {"success": True, "session": info.to_dict(), "profile": profile.to_dict()}
