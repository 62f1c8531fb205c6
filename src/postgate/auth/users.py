# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from postgate.auth.errors import DuplicateEmailError

logger = logging.getLogger(__name__)

USERS_FILENAME = "users.yml"


class StoreError(Exception):
    """Raised when a store cannot read or write its backing file."""


def normalize_email(email: str) -> str:
    # Emails are case-insensitive keys: stored and looked up lower-cased.
    return (email or "").strip().lower()


@dataclass(frozen=True)
class User:
    id: int
    email: str
    password_hash: str
    created_at: str = ""

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"

    def public(self) -> dict:
        return {"id": self.id, "email": self.email, "created_at": self.created_at}


def atomic_write_yaml(path: Path, payload: dict) -> None:
    """Write YAML to a temp file in the same directory, then replace the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            yaml.safe_dump(payload, fh, sort_keys=False, allow_unicode=True)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class UserStore:
    """Credential store backed by a YAML file.

    Lookups are served from memory. ``create`` is serialized by a lock and
    only becomes visible once the file has been written, so a failed write
    never leaves a half-created user behind.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._by_id: Dict[int, User] = {}
        self._by_email: Dict[str, User] = {}
        self._next_id = 1
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise StoreError(f"Cannot read {self.path}") from exc
        if not isinstance(raw, dict):
            raw = {}
        items = raw.get("users") or []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                uid = int(item["id"])
            except (KeyError, TypeError, ValueError):
                continue
            email = normalize_email(str(item.get("email") or ""))
            if not email:
                continue
            user = User(
                id=uid,
                email=email,
                password_hash=str(item.get("password_hash") or ""),
                created_at=str(item.get("created_at") or ""),
            )
            self._by_id[uid] = user
            self._by_email[email] = user
        self._next_id = max(int(raw.get("next_id") or 1), max(self._by_id, default=0) + 1)

    def _payload(self, users: List[User], next_id: int) -> dict:
        return {
            "version": 1,
            "next_id": next_id,
            "users": [
                {
                    "id": u.id,
                    "email": u.email,
                    "password_hash": u.password_hash,
                    "created_at": u.created_at,
                }
                for u in users
            ],
        }

    def find_by_email(self, email: str) -> Optional[User]:
        e = normalize_email(email)
        if not e:
            return None
        with self._lock:
            return self._by_email.get(e)

    def get(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._by_id.get(user_id)

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)

    def create(self, email: str, password_hash: str) -> User:
        e = normalize_email(email)
        if not e or not password_hash:
            raise ValueError("email and password_hash are required")
        with self._lock:
            # Uniqueness is enforced here, at write time, not only by callers.
            if e in self._by_email:
                raise DuplicateEmailError()
            user = User(
                id=self._next_id,
                email=e,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            )
            users = sorted(self._by_id.values(), key=lambda u: u.id) + [user]
            try:
                self._write(self._payload(users, user.id + 1))
            except OSError as exc:
                raise StoreError(f"Cannot write {self.path}") from exc
            self._by_id[user.id] = user
            self._by_email[e] = user
            self._next_id = user.id + 1
        logger.info("Created user id=%s", user.id)
        return user

    def _write(self, payload: dict) -> None:
        atomic_write_yaml(self.path, payload)
