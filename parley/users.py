"""User listing and profile edits."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .auth import normalise_email, normalise_name
from .database import DataStore
from .errors import InvalidInputError, UnknownUserError
from .models import Snapshot, User
from .sessions import require_user_id

logger = logging.getLogger("parley.users")

_HANDLE_PATTERN = re.compile(r"^[A-Za-z0-9]{3,20}$")


def _current_user(snapshot: Snapshot, token: Optional[str]) -> User:
    user_id = require_user_id(snapshot, token)
    user = snapshot.get_user(user_id)
    assert user is not None
    return user


class UserService:
    """Reads and edits account profiles.

    Handle changes never touch existing DM names, which are fixed at creation.
    """

    def __init__(self, store: DataStore) -> None:
        self._store = store

    def list_all(self, token: Optional[str]) -> List[User]:
        with self._store.reading() as snapshot:
            require_user_id(snapshot, token)
            return list(snapshot.users)

    def profile(self, token: Optional[str], user_id: int) -> User:
        with self._store.reading() as snapshot:
            require_user_id(snapshot, token)
            user = snapshot.get_user(user_id)
            if user is None:
                raise UnknownUserError()
            return user

    def set_name(self, token: Optional[str], name_first: str, name_last: str) -> None:
        first = normalise_name(name_first, "First name")
        last = normalise_name(name_last, "Last name")
        with self._store.transaction() as snapshot:
            user = _current_user(snapshot, token)
            user.name_first = first
            user.name_last = last
        logger.info("User %s changed their name", user.id)

    def set_email(self, token: Optional[str], email: str) -> None:
        normalised = normalise_email(email)
        with self._store.transaction() as snapshot:
            user = _current_user(snapshot, token)
            holder = snapshot.get_user_by_email(normalised)
            if holder is not None and holder.id != user.id:
                raise InvalidInputError("A user with that email already exists")
            user.email = normalised
        logger.info("User %s changed their email", user.id)

    def set_handle(self, token: Optional[str], handle: str) -> None:
        cleaned = handle.strip()
        if not _HANDLE_PATTERN.fullmatch(cleaned):
            raise InvalidInputError("Handle must be 3 to 20 letters or digits")
        with self._store.transaction() as snapshot:
            user = _current_user(snapshot, token)
            if any(other.handle == cleaned and other.id != user.id for other in snapshot.users):
                raise InvalidInputError("That handle is already in use")
            user.handle = cleaned
        logger.info("User %s changed handle to %s", user.id, cleaned)


__all__ = ["UserService"]
