"""Direct-message group management and message-history paging."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .database import DataStore
from .errors import (
    DuplicateMemberError,
    OutOfRangeStartError,
    UnknownDmError,
    UnknownUserError,
)
from .membership import ensure_member, ensure_owner, is_member
from .models import Dm, Message, Snapshot, User
from .sessions import handle_of, is_valid_user_id, require_user_id

logger = logging.getLogger("parley.dms")

PAGE_SIZE = 50
NO_MORE_PAGES = -1
NAME_SEPARATOR = ", "


@dataclass(frozen=True)
class DmSummary:
    dm_id: int
    name: str


@dataclass(frozen=True)
class DmDetails:
    name: str
    owner_members: List[User]
    all_members: List[User]


@dataclass(frozen=True)
class MessagePage:
    """A window of at most ``PAGE_SIZE`` messages.

    ``end`` is the offset to request next, or ``NO_MORE_PAGES`` once the
    window reaches the end of the log.
    """

    messages: List[Message]
    start: int
    end: int


def derive_dm_name(snapshot: Snapshot, creator_id: int, member_ids: Iterable[int]) -> str:
    """Sorted, comma-joined handles of every participant.

    The result depends only on the participant set, never on invitation order.
    """

    handles = [handle_of(snapshot, creator_id)]
    handles.extend(handle_of(snapshot, user_id) for user_id in member_ids)
    return NAME_SEPARATOR.join(sorted(handles))


def _require_dm(snapshot: Snapshot, dm_id: int) -> Dm:
    dm = snapshot.get_dm(dm_id)
    if dm is None:
        raise UnknownDmError()
    return dm


def _validate_member_ids(snapshot: Snapshot, creator_id: int, member_ids: List[int]) -> None:
    for user_id in member_ids:
        if not is_valid_user_id(snapshot, user_id):
            raise UnknownUserError(f"Invalid user id {user_id} in user_ids")

    seen = {creator_id}
    for user_id in member_ids:
        if user_id in seen:
            raise DuplicateMemberError()
        seen.add(user_id)


def window(messages: List[Message], start: int) -> MessagePage:
    if start + PAGE_SIZE >= len(messages):
        return MessagePage(messages=list(messages[start:]), start=start, end=NO_MORE_PAGES)
    end = start + PAGE_SIZE
    return MessagePage(messages=list(messages[start:end]), start=start, end=end)


class DmManager:
    """Validates and applies DM operations against a :class:`DataStore`."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    def create(self, token: Optional[str], member_ids: Iterable[int]) -> int:
        requested = [int(user_id) for user_id in member_ids]

        with self._store.transaction() as snapshot:
            creator_id = require_user_id(snapshot, token)
            _validate_member_ids(snapshot, creator_id, requested)

            dm = Dm(
                id=snapshot.allocate_dm_id(),
                name=derive_dm_name(snapshot, creator_id, requested),
                owner_members=[creator_id],
                all_members=[creator_id, *requested],
                messages=[],
            )
            snapshot.dms.append(dm)

        logger.info("User %s created dm %s with %s member(s)", creator_id, dm.id, len(dm.all_members))
        return dm.id

    def list(self, token: Optional[str]) -> List[DmSummary]:
        with self._store.reading() as snapshot:
            user_id = require_user_id(snapshot, token)
            return [
                DmSummary(dm_id=dm.id, name=dm.name)
                for dm in snapshot.dms
                if is_member(dm, user_id)
            ]

    def details(self, token: Optional[str], dm_id: int) -> DmDetails:
        with self._store.reading() as snapshot:
            user_id = require_user_id(snapshot, token)
            dm = _require_dm(snapshot, dm_id)
            ensure_member(dm, user_id)

            return DmDetails(
                name=dm.name,
                owner_members=self._users(snapshot, dm.owner_members),
                all_members=self._users(snapshot, dm.all_members),
            )

    def delete(self, token: Optional[str], dm_id: int) -> None:
        with self._store.transaction() as snapshot:
            user_id = require_user_id(snapshot, token)
            dm = _require_dm(snapshot, dm_id)
            ensure_owner(dm, user_id)
            ensure_member(dm, user_id)
            snapshot.dms.remove(dm)

        logger.info("User %s removed dm %s", user_id, dm_id)

    def leave(self, token: Optional[str], dm_id: int) -> None:
        with self._store.transaction() as snapshot:
            user_id = require_user_id(snapshot, token)
            dm = _require_dm(snapshot, dm_id)
            ensure_member(dm, user_id)
            dm.all_members.remove(user_id)

        logger.info("User %s left dm %s", user_id, dm_id)

    def page_messages(self, user_id: Optional[int], dm_id: int, start: int) -> MessagePage:
        with self._store.reading() as snapshot:
            dm = _require_dm(snapshot, dm_id)
            if not is_valid_user_id(snapshot, user_id):
                raise UnknownUserError()
            if start < 0 or start > len(dm.messages):
                raise OutOfRangeStartError()
            ensure_member(dm, user_id)
            return window(dm.messages, start)

    @staticmethod
    def _users(snapshot: Snapshot, user_ids: Iterable[int]) -> List[User]:
        users: List[User] = []
        for user_id in user_ids:
            user = snapshot.get_user(user_id)
            if user is None:
                raise RuntimeError(f"Dm member {user_id} is missing from the store")
            users.append(user)
        return users


__all__ = [
    "DmDetails",
    "DmManager",
    "DmSummary",
    "MessagePage",
    "NO_MORE_PAGES",
    "PAGE_SIZE",
    "derive_dm_name",
    "window",
]
