"""Request identity.

Tokens are issued and checked by the upstream auth proxy, which forwards the
caller's identity in ``X-User-Id`` and ``X-User-Role``.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str = "user"
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def current_user(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default="user"),
    x_user_email: str | None = Header(default=None),
) -> CurrentUser:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return CurrentUser(user_id=x_user_id, role=x_user_role.lower(), email=x_user_email)


async def require_admin(user: CurrentUser = Depends(current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
