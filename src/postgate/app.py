# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from postgate.auth.errors import AuthError
from postgate.auth.service import AuthService
from postgate.auth.session import COOKIE_NAME, SessionStore, sign_token
from postgate.auth.users import USERS_FILENAME, UserStore
from postgate.infra.posts_repo import POSTS_FILENAME, PostStore
from postgate.permissions import (
    CurrentUser,
    cookie_settings,
    current_user_optional,
    load_user_from_request,
    require_user,
    require_user_api,
    safe_next,
    session_token_from_request,
)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _data_dir() -> Path:
    return Path(os.getenv("POSTGATE_DATA_DIR", "data")).resolve()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the identity of the current request."""
    base_ctx = {"current_user": current_user_optional(request), "error": ""}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _login_redirect(token: str, url: str) -> RedirectResponse:
    resp = RedirectResponse(url=url, status_code=303)
    resp.set_cookie(COOKIE_NAME, sign_token(token), **cookie_settings())
    return resp


def _auth(request: Request) -> AuthService:
    return request.app.state.auth


def _posts(request: Request) -> PostStore:
    return request.app.state.posts


def create_app(
    *,
    data_dir: Optional[Path] = None,
    sessions: Optional[SessionStore] = None,
) -> FastAPI:
    data = Path(data_dir) if data_dir is not None else _data_dir()
    data.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="postgate")
    app.state.users = UserStore(data / USERS_FILENAME)
    app.state.sessions = sessions if sessions is not None else SessionStore()
    app.state.posts = PostStore(data / POSTS_FILENAME)
    app.state.auth = AuthService(app.state.users, app.state.sessions)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        request.state.user = load_user_from_request(request)
        return await call_next(request)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # ------------------ Misc ------------------

    @app.get("/")
    def root():
        return RedirectResponse(url="/posts", status_code=303)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    # ------------------ Auth ------------------

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request):
        if current_user_optional(request):
            return RedirectResponse(url="/posts", status_code=303)
        return _render(request, "auth/register.html", {"email": ""})

    @app.post("/register")
    def register_post(request: Request, email: str = Form(""), password: str = Form("")):
        try:
            result = _auth(request).register(email, password)
        except AuthError as e:
            return _render(request, "auth/register.html", {"email": email, "error": e.message})
        return _login_redirect(result.token, "/posts")

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request, next: str = "/posts"):
        if current_user_optional(request):
            return RedirectResponse(url=safe_next(next), status_code=303)
        return _render(request, "auth/login.html", {"email": "", "next": safe_next(next)})

    @app.post("/login")
    def login_post(
        request: Request,
        email: str = Form(""),
        password: str = Form(""),
        next: str = Form("/posts"),
    ):
        try:
            result = _auth(request).login(email, password)
        except AuthError as e:
            return _render(request, "auth/login.html", {"email": email, "next": safe_next(next), "error": e.message})
        return _login_redirect(result.token, safe_next(next))

    @app.post("/logout")
    def logout_post(request: Request):
        _auth(request).logout(session_token_from_request(request))
        resp = RedirectResponse(url="/login", status_code=303)
        settings = cookie_settings()
        resp.delete_cookie(
            COOKIE_NAME,
            path=settings["path"],
            secure=settings["secure"],
            httponly=settings["httponly"],
            samesite=settings["samesite"],
        )
        return resp

    @app.get("/api/session")
    def api_session(user: CurrentUser = Depends(require_user_api)):
        return JSONResponse({"user_id": user.id, "email": user.email})

    # ------------------ Posts ------------------

    @app.get("/posts", response_class=HTMLResponse)
    def posts_index(request: Request):
        return _render(request, "posts/index.html", {"posts": _posts(request).list()})

    @app.get("/posts/new", response_class=HTMLResponse)
    def posts_new(request: Request, user: CurrentUser = Depends(require_user)):
        return _render(request, "posts/form.html", {"post": None, "title": "", "body": ""})

    @app.post("/posts")
    def posts_create(
        request: Request,
        title: str = Form(""),
        body: str = Form(""),
        user: CurrentUser = Depends(require_user),
    ):
        t = title.strip()
        if not t:
            return _render(
                request, "posts/form.html", {"post": None, "title": title, "body": body, "error": "Title is required"}
            )
        p = _posts(request).create(t, body, user.id)
        return RedirectResponse(url=f"/posts/{p.id}", status_code=303)

    @app.get("/posts/{post_id}", response_class=HTMLResponse)
    def posts_show(request: Request, post_id: int, user: CurrentUser = Depends(require_user)):
        post = _posts(request).get(post_id)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        author = request.app.state.users.get(post.author_id) if post.author_id is not None else None
        return _render(request, "posts/show.html", {"post": post, "author": author})

    @app.get("/posts/{post_id}/edit", response_class=HTMLResponse)
    def posts_edit_get(request: Request, post_id: int, user: CurrentUser = Depends(require_user)):
        post = _posts(request).get(post_id)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        return _render(request, "posts/form.html", {"post": post, "title": post.title, "body": post.body})

    @app.post("/posts/{post_id}/edit")
    def posts_edit_post(
        request: Request,
        post_id: int,
        title: str = Form(""),
        body: str = Form(""),
        user: CurrentUser = Depends(require_user),
    ):
        store = _posts(request)
        post = store.get(post_id)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        t = title.strip()
        if not t:
            return _render(
                request, "posts/form.html", {"post": post, "title": title, "body": body, "error": "Title is required"}
            )
        store.update(post_id, t, body)
        return RedirectResponse(url=f"/posts/{post_id}", status_code=303)

    @app.post("/posts/{post_id}/delete")
    def posts_delete(request: Request, post_id: int, user: CurrentUser = Depends(require_user)):
        if not _posts(request).delete(post_id):
            raise HTTPException(status_code=404, detail="Post not found")
        return RedirectResponse(url="/posts", status_code=303)


app = create_app()
