"""Owner and member predicates for direct-message groups."""

from __future__ import annotations

from .errors import NotMemberError, NotOwnerError
from .models import Dm


def is_member(dm: Dm, user_id: int) -> bool:
    return user_id in dm.all_members


def is_owner(dm: Dm, user_id: int) -> bool:
    """Only the first recorded owner may act as owner."""

    return bool(dm.owner_members) and dm.owner_members[0] == user_id


def ensure_member(dm: Dm, user_id: int) -> None:
    if not is_member(dm, user_id):
        raise NotMemberError()


def ensure_owner(dm: Dm, user_id: int) -> None:
    if not is_owner(dm, user_id):
        raise NotOwnerError()


__all__ = ["ensure_member", "ensure_owner", "is_member", "is_owner"]
