"""Caller identity from the headers set by the upstream auth layer."""

from fastapi import Depends, Header

from purchasing.errors import Forbidden, Unauthorized
from purchasing.principal import Principal, Role

_ROLES = {role.value for role in Role}


def current_principal(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Principal:
    if not x_user_id:
        raise Unauthorized("Missing user identity")

    role = (x_user_role or Role.CUSTOMER.value).lower()
    if role not in _ROLES:
        raise Unauthorized(f"Unknown role {role}")
    return Principal(user_id=x_user_id, role=role, email=x_user_email)


def require_admin(principal: Principal = Depends(current_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden("Administrator role required")
    return principal
