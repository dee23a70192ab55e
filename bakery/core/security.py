from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from bakery.core.config import get_settings


class Actor(BaseModel):
    id: str
    is_admin: bool = False


ANONYMOUS = Actor(id="anonymous", is_admin=False)


def _auth_error(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _extract_api_key(authorization: str | None, x_api_key: str | None) -> str | None:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _auth_error("invalid authorization header")
        return token.strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def get_actor(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> Actor:
    settings = get_settings()
    if not settings.auth_enabled:
        return Actor(id=settings.admin_actor_id, is_admin=True)

    api_key = _extract_api_key(authorization, x_api_key)
    if not api_key:
        return ANONYMOUS
    if hmac.compare_digest(api_key, settings.admin_api_key):
        return Actor(id=settings.admin_actor_id, is_admin=True)
    raise _auth_error("invalid api key")


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor is ANONYMOUS:
        raise _auth_error("missing api key")
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="admin role required")
    return actor
