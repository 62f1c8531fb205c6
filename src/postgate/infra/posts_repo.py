# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from postgate.auth.users import StoreError, atomic_write_yaml

POSTS_FILENAME = "posts.yml"


@dataclass(frozen=True)
class Post:
    id: int
    title: str
    body: str
    author_id: Optional[int]
    created_at: str
    updated_at: str = ""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class PostStore:
    """Posts keyed by integer id, persisted to a YAML file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._posts: Dict[int, Post] = {}
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
            return
        for item in raw.get("posts") or []:
            if not isinstance(item, dict) or "id" not in item:
                continue
            author = item.get("author_id")
            p = Post(
                id=int(item["id"]),
                title=str(item.get("title") or ""),
                body=str(item.get("body") or ""),
                author_id=int(author) if author is not None else None,
                created_at=str(item.get("created_at") or ""),
                updated_at=str(item.get("updated_at") or ""),
            )
            self._posts[p.id] = p
        self._next_id = max(int(raw.get("next_id") or 1), max(self._posts, default=0) + 1)

    def _flush(self, posts: Dict[int, Post], next_id: int) -> None:
        payload = {
            "version": 1,
            "next_id": next_id,
            "posts": [asdict(p) for p in sorted(posts.values(), key=lambda p: p.id)],
        }
        try:
            atomic_write_yaml(self.path, payload)
        except OSError as exc:
            raise StoreError(f"Cannot write {self.path}") from exc

    def list(self) -> List[Post]:
        with self._lock:
            posts = list(self._posts.values())
        # Newest first; ids break ties within the same second.
        return sorted(posts, key=lambda p: (p.created_at, p.id), reverse=True)

    def get(self, post_id: int) -> Optional[Post]:
        with self._lock:
            return self._posts.get(post_id)

    def create(self, title: str, body: str, author_id: Optional[int]) -> Post:
        with self._lock:
            p = Post(id=self._next_id, title=title, body=body, author_id=author_id, created_at=_now_iso())
            posts = {**self._posts, p.id: p}
            self._flush(posts, p.id + 1)
            self._posts = posts
            self._next_id = p.id + 1
            return p

    def update(self, post_id: int, title: str, body: str) -> Optional[Post]:
        with self._lock:
            old = self._posts.get(post_id)
            if old is None:
                return None
            p = Post(
                id=old.id,
                title=title,
                body=body,
                author_id=old.author_id,
                created_at=old.created_at,
                updated_at=_now_iso(),
            )
            posts = {**self._posts, p.id: p}
            self._flush(posts, self._next_id)
            self._posts = posts
            return p

    def delete(self, post_id: int) -> bool:
        with self._lock:
            if post_id not in self._posts:
                return False
            posts = {k: v for k, v in self._posts.items() if k != post_id}
            self._flush(posts, self._next_id)
            self._posts = posts
            return True
