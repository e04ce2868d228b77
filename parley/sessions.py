"""Session token handling backed by the users held in the data store."""

from __future__ import annotations

import secrets
from typing import Optional

from .errors import InvalidTokenError
from .models import Snapshot, User


def issue_token(user: User) -> str:
    """Create a new session token for ``user``; earlier sessions stay valid."""

    token = secrets.token_urlsafe(32)
    user.session_tokens.append(token)
    return token


def resolve(snapshot: Snapshot, token: Optional[str]) -> Optional[int]:
    """Return the id of the user currently holding ``token``."""

    if not token:
        return None
    provided = token.encode("utf-8")
    for user in snapshot.users:
        for candidate in user.session_tokens:
            if secrets.compare_digest(candidate.encode("utf-8"), provided):
                return user.id
    return None


def require_user_id(snapshot: Snapshot, token: Optional[str]) -> int:
    user_id = resolve(snapshot, token)
    if user_id is None:
        raise InvalidTokenError()
    return user_id


def revoke_token(snapshot: Snapshot, token: Optional[str]) -> bool:
    if not token:
        return False
    for user in snapshot.users:
        if token in user.session_tokens:
            user.session_tokens.remove(token)
            return True
    return False


def is_valid_user_id(snapshot: Snapshot, user_id: Optional[int]) -> bool:
    if user_id is None:
        return False
    return snapshot.get_user(user_id) is not None


def handle_of(snapshot: Snapshot, user_id: int) -> str:
    user = snapshot.get_user(user_id)
    if user is None:
        raise KeyError(f"Unknown user {user_id}")
    return user.handle


__all__ = [
    "handle_of",
    "is_valid_user_id",
    "issue_token",
    "require_user_id",
    "resolve",
    "revoke_token",
]
