# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Register / login / logout.

A client is either anonymous or authenticated as one user. Each successful
register or login opens a new session; logout closes the current one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from postgate.auth.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    LoginFailedError,
    RegistrationFailedError,
    ValidationError,
)
from postgate.auth.passwords import hash_password, verify_password
from postgate.auth.session import SessionStore
from postgate.auth.users import StoreError, UserStore, normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class AuthResult:
    user_id: int
    token: str


def validate_email_address(email: str) -> str:
    e = normalize_email(email)
    try:
        validate_email(e, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Enter a valid email address") from None
    return e


class AuthService:
    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    def register(self, email: str, password: str) -> AuthResult:
        if not (email or "").strip() or not password:
            raise ValidationError("Email and password required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        e = validate_email_address(email)

        try:
            if self.users.find_by_email(e) is not None:
                raise DuplicateEmailError()
            # Hashing is slow; no store lock is held here.
            password_hash = hash_password(password)
            user = self.users.create(e, password_hash)
        except DuplicateEmailError:
            logger.info("Registration rejected: email already registered")
            raise
        except StoreError:
            logger.exception("Registration failed while writing the user store")
            raise RegistrationFailedError() from None

        token = self.sessions.create(user.id)
        logger.info("Registered user id=%s", user.id)
        return AuthResult(user_id=user.id, token=token)

    def login(self, email: str, password: str) -> AuthResult:
        if not (email or "").strip() or not password:
            raise ValidationError("Email and password required")

        try:
            user = self.users.find_by_email(email)
        except StoreError:
            logger.exception("Login failed while reading the user store")
            raise LoginFailedError() from None

        if user is None or not verify_password(user.password_hash, password):
            logger.info("Rejected login attempt")
            raise InvalidCredentialsError()

        token = self.sessions.create(user.id)
        logger.info("User id=%s logged in", user.id)
        return AuthResult(user_id=user.id, token=token)

    def logout(self, token: Optional[str]) -> None:
        self.sessions.destroy(token)
