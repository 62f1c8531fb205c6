# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Auth-domain errors.

Every error carries the message shown to the user; handlers re-render the
form with it instead of failing the request.
"""

from __future__ import annotations


class AuthError(Exception):
    default_message = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    default_message = "Invalid input"


class DuplicateEmailError(AuthError):
    default_message = "Email already registered"


class InvalidCredentialsError(AuthError):
    # Same message for unknown email and wrong password.
    default_message = "Invalid email or password"


class RegistrationFailedError(AuthError):
    default_message = "Registration failed"


class LoginFailedError(AuthError):
    default_message = "Login failed"
