"""Account registration, login and logout."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from passlib.context import CryptContext

from .database import DataStore
from .errors import InvalidInputError, InvalidTokenError
from .models import Snapshot, User
from .sessions import issue_token, revoke_token

logger = logging.getLogger("parley.auth")

_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_MIN_PASSWORD_LENGTH = 6
_MAX_NAME_LENGTH = 50
_MAX_HANDLE_LENGTH = 20

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class AuthResult:
    token: str
    auth_user_id: int


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


def normalise_email(email: str) -> str:
    value = email.strip().lower()
    if not _EMAIL_PATTERN.fullmatch(value):
        raise InvalidInputError("Email address is invalid")
    return value


def normalise_name(value: str, label: str) -> str:
    cleaned = value.strip()
    if not 1 <= len(cleaned) <= _MAX_NAME_LENGTH:
        raise InvalidInputError(f"{label} must be between 1 and {_MAX_NAME_LENGTH} characters")
    return cleaned


def derive_handle(snapshot: Snapshot, name_first: str, name_last: str) -> str:
    """Lower-cased alphanumeric concatenation of both names.

    Truncated to 20 characters; collisions get the smallest free numeric
    suffix starting from 0 (``janedoe``, ``janedoe0``, ``janedoe1`` ...).
    """

    base = "".join(ch for ch in (name_first + name_last).lower() if ch.isalnum())
    base = base[:_MAX_HANDLE_LENGTH]
    if not base:
        raise InvalidInputError("Names must contain at least one letter or digit")
    taken = {user.handle for user in snapshot.users}
    if base not in taken:
        return base

    suffix = 0
    while f"{base}{suffix}" in taken:
        suffix += 1
    return f"{base}{suffix}"


class AuthService:
    """Creates accounts and issues session tokens stored on each user."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    def register(self, email: str, password: str, name_first: str, name_last: str) -> AuthResult:
        normalised_email = normalise_email(email)
        if len(password) < _MIN_PASSWORD_LENGTH:
            raise InvalidInputError(f"Password must be at least {_MIN_PASSWORD_LENGTH} characters")
        first = normalise_name(name_first, "First name")
        last = normalise_name(name_last, "Last name")
        password_hash = hash_password(password)

        with self._store.transaction() as snapshot:
            if snapshot.get_user_by_email(normalised_email) is not None:
                raise InvalidInputError("A user with that email already exists")

            user = User(
                id=len(snapshot.users),
                email=normalised_email,
                name_first=first,
                name_last=last,
                handle=derive_handle(snapshot, first, last),
                password_hash=password_hash,
                is_global_owner=not snapshot.users,
            )
            token = issue_token(user)
            snapshot.users.append(user)

        logger.info("Registered user %s with handle %s", user.id, user.handle)
        return AuthResult(token=token, auth_user_id=user.id)

    def login(self, email: str, password: str) -> AuthResult:
        with self._store.transaction() as snapshot:
            user = snapshot.get_user_by_email(email)
            if user is None or not verify_password(password, user.password_hash):
                logger.warning("Failed login attempt for %s", email)
                raise InvalidInputError("Incorrect email or password")
            token = issue_token(user)

        logger.info("User %s logged in", user.id)
        return AuthResult(token=token, auth_user_id=user.id)

    def logout(self, token: Optional[str]) -> None:
        with self._store.transaction() as snapshot:
            if not revoke_token(snapshot, token):
                raise InvalidTokenError()


__all__ = ["AuthResult", "AuthService", "derive_handle", "hash_password", "verify_password"]
