"""
Authentication dependencies for role-based access control
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import SessionInvalid, Forbidden
from ..security.access import AccessContext, Capability, resolve_access
from ..services.auth.audit import AuditService


def get_access_context(request: Request, db: Session = Depends(get_db)) -> AccessContext:
    """Resolve (once per request) who is calling."""
    cached = getattr(request.state, "access_context", None)
    if cached is not None:
        return cached
    context = resolve_access(db, request)
    request.state.access_context = context
    return context


def require_capability(*allowed: Capability):
    """
    Dependency factory to require one of the given capabilities.

    Usage:
        @router.get("/endpoint")
        async def endpoint(access: AccessContext = Depends(require_capability(Capability.AGENT))):
            ...

    Internal service calls pass every guard. Guests get 401, authenticated
    callers without the capability get 403.
    """
    def capability_checker(
        request: Request,
        access: AccessContext = Depends(get_access_context),
    ) -> AccessContext:
        if access.is_internal:
            return access
        if access.capability == Capability.GUEST:
            raise SessionInvalid(access.guest_reason or SessionInvalid.MISSING)
        if access.capability not in allowed:
            AuditService.log_access_denied(
                request.url.path,
                required="|".join(c.value for c in allowed),
                actual=access.capability.value,
                profile_id=access.profile_id,
            )
            raise Forbidden(f"{access.capability.value} may not access {request.url.path}")
        return access

    return capability_checker


require_user = require_capability(Capability.USER, Capability.AGENT, Capability.ADMIN)
require_agent = require_capability(Capability.AGENT)
require_admin = require_capability(Capability.ADMIN)
