#!/usr/bin/env python3
from __future__ import annotations

import os
from getpass import getpass
from pathlib import Path

from postgate.auth.errors import DuplicateEmailError, ValidationError
from postgate.auth.passwords import hash_password
from postgate.auth.service import MIN_PASSWORD_LENGTH, validate_email_address
from postgate.auth.users import USERS_FILENAME, UserStore

USERS_PATH = Path(os.getenv("POSTGATE_DATA_DIR", "data")).resolve() / USERS_FILENAME


def main() -> None:
    store = UserStore(USERS_PATH)

    try:
        email = validate_email_address(input("Email: "))
    except ValidationError as e:
        raise SystemExit(e.message)
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if len(pw1) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        user = store.create(email, hash_password(pw1))
    except DuplicateEmailError:
        raise SystemExit("Email already registered")
    print(f"OK -> user {user.id} in {USERS_PATH}")


if __name__ == "__main__":
    main()
