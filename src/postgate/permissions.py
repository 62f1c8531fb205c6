# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from fastapi import HTTPException, Request

from postgate.auth.session import COOKIE_NAME, is_production, session_ttl_seconds, unsign_token


@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str


def session_token_from_request(request: Request) -> Optional[str]:
    return unsign_token(request.cookies.get(COOKIE_NAME, ""))


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    """Resolve cookie -> session -> user. Anything that does not resolve is anonymous."""
    token = session_token_from_request(request)
    user_id = request.app.state.sessions.resolve(token)
    if user_id is None:
        return None
    # The session only references the user; a user that no longer resolves is anonymous.
    u = request.app.state.users.get(user_id)
    if u is None:
        return None
    return CurrentUser(id=u.id, email=u.email)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    return getattr(request.state, "user", None)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    loc = f"/login?next={quote(next_url, safe='/')}"
    raise HTTPException(status_code=303, headers={"Location": loc})


def require_user_api(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=401, detail="Not authenticated")


def safe_next(next_url: Optional[str], default: str = "/posts") -> str:
    """Only local absolute paths are accepted as post-login targets."""
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return default
    return n


def cookie_settings() -> dict:
    override = os.getenv("POSTGATE_COOKIE_SECURE")
    if override is not None and override.strip():
        secure = override.strip().lower() in {"1", "true", "yes", "y"}
    else:
        secure = is_production()
    return {
        "httponly": True,
        "samesite": "lax",
        "secure": secure,
        "max_age": session_ttl_seconds(),
        "path": "/",
    }
