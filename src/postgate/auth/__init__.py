# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- User store persisted in data/users.yml
- In-memory session store and signed session cookies (itsdangerous)
- Register/login/logout transitions (AuthService)
"""
