from fastapi import Depends

from auth.principal import Principal
from auth.services.auth_service import get_current_principal
from core.config_loader import settings
from core.errors import ForbiddenError


def _has_any_role(principal: Principal, *roles: str) -> bool:
    return any(principal.has_role(r) for r in roles)


def require_hr_viewer(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not _has_any_role(principal, settings.ADMIN_ROLE, settings.EDITOR_ROLE, settings.VIEWER_ROLE):
        raise ForbiddenError()
    return principal


def require_hr_editor(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not _has_any_role(principal, settings.ADMIN_ROLE, settings.EDITOR_ROLE):
        raise ForbiddenError()
    return principal


def require_hr_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.has_role(settings.ADMIN_ROLE):
        raise ForbiddenError("HR admin role required.")
    return principal
