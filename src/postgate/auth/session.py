# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Dict, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

COOKIE_NAME = os.getenv("POSTGATE_COOKIE_NAME", "postgate_session")
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days
TOKEN_BYTES = 32

DEV_SECRET = "dev-secret-change-me"


def session_ttl_seconds() -> int:
    return int(os.getenv("POSTGATE_SESSION_TTL", str(DEFAULT_TTL_SECONDS)))


def is_production() -> bool:
    return os.getenv("POSTGATE_ENV", "development").strip().lower() == "production"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    token: str
    user_id: int
    expires_at: datetime

    def __repr__(self) -> str:
        return f"Session(user_id={self.user_id!r}, expires_at={self.expires_at.isoformat()})"


class SessionStore:
    """Process-wide, in-memory map of session token -> Session.

    Nothing is persisted: a restart drops every session. A user may hold
    several sessions at once (one per login); there is no per-user index.
    """

    def __init__(
        self,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ttl = ttl if ttl is not None else timedelta(seconds=session_ttl_seconds())
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}

    def create(self, user_id: int) -> str:
        now = self._clock()
        with self._lock:
            self._purge_locked(now)
            token = secrets.token_urlsafe(TOKEN_BYTES)
            while token in self._sessions:
                token = secrets.token_urlsafe(TOKEN_BYTES)
            self._sessions[token] = Session(token=token, user_id=user_id, expires_at=now + self.ttl)
        return token

    def resolve(self, token: Optional[str]) -> Optional[int]:
        """Return the user id behind a live token, or None.

        Unknown and expired tokens are indistinguishable to the caller.
        """
        if not token:
            return None
        now = self._clock()
        with self._lock:
            sess = self._sessions.get(token)
            if sess is None:
                return None
            if now >= sess.expires_at:
                return None
            return sess.user_id

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def get(self, token: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(token)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def count(self) -> int:
        """Number of live (unexpired) sessions."""
        now = self._clock()
        with self._lock:
            return sum(1 for s in self._sessions.values() if now < s.expires_at)

    def _purge_locked(self, now: datetime) -> int:
        expired = [t for t, s in self._sessions.items() if now >= s.expires_at]
        for t in expired:
            del self._sessions[t]
        return len(expired)


# ------------------ Cookie codec ------------------


def _secret() -> str:
    secret = os.getenv("POSTGATE_SECRET_KEY") or os.getenv("SECRET_KEY")
    if secret:
        return secret
    if is_production():
        raise RuntimeError("Missing POSTGATE_SECRET_KEY (or SECRET_KEY) in environment")
    _warn_dev_secret()
    return DEV_SECRET


@lru_cache(maxsize=1)
def _warn_dev_secret() -> None:
    logger.warning("POSTGATE_SECRET_KEY not set; using the development secret")


def _serializer() -> URLSafeTimedSerializer:
    salt = os.getenv("POSTGATE_SESSION_SALT", "postgate.session.v1")
    return URLSafeTimedSerializer(secret_key=_secret(), salt=salt)


def sign_token(token: str) -> str:
    return _serializer().dumps(token)


def unsign_token(value: str, *, max_age: Optional[int] = None) -> Optional[str]:
    if not value:
        return None
    s = _serializer()
    try:
        token = s.loads(value, max_age=max_age if max_age is not None else session_ttl_seconds())
    except (BadSignature, BadTimeSignature):
        return None
    if not isinstance(token, str) or not token:
        return None
    return token
