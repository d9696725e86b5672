from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.domain.chat.service import ChatRouter
from app.settings import settings


def get_chat_router(request: Request) -> ChatRouter:
    router = getattr(request.app.state, "chat_router", None)
    if router is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="chat_unavailable")
    return router


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_admin_token:
        return x_admin_token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1]
    return None


async def require_admin(
    X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
    token = settings.obs_admin_token
    if not token:
        # Fail closed: if no token is configured, no admin access is allowed.
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
    provided = _resolve_token(X_Admin_Token, authorization)
    if provided != token:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


async def require_metrics_access(
    X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
    if settings.obs_metrics_public:
        return
    await require_admin(X_Admin_Token=X_Admin_Token, authorization=authorization)


ChatRouterDep = Depends(get_chat_router)
