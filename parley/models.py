"""Domain models held in the Parley data store."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List


@dataclass
class User:
    """Represents a registered account."""

    id: int
    email: str
    name_first: str
    name_last: str
    handle: str
    password_hash: str
    is_global_owner: bool = False
    session_tokens: List[str] = field(default_factory=list)

    def to_profile(self) -> Dict[str, object]:
        """Public view of the user, without credentials."""

        return {
            "user_id": self.id,
            "email": self.email,
            "name_first": self.name_first,
            "name_last": self.name_last,
            "handle": self.handle,
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "User":
        return User(
            id=int(data["id"]),
            email=str(data["email"]),
            name_first=str(data["name_first"]),
            name_last=str(data["name_last"]),
            handle=str(data["handle"]),
            password_hash=str(data["password_hash"]),
            is_global_owner=bool(data.get("is_global_owner", False)),
            session_tokens=[str(token) for token in data.get("session_tokens", [])],
        )


@dataclass
class Message:
    """A single entry in a DM's message log."""

    id: int
    author_id: int
    body: str
    sent_at: int

    def to_payload(self) -> Dict[str, object]:
        return {
            "message_id": self.id,
            "author_id": self.author_id,
            "body": self.body,
            "sent_at": self.sent_at,
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "Message":
        return Message(
            id=int(data["id"]),
            author_id=int(data["author_id"]),
            body=str(data["body"]),
            sent_at=int(data["sent_at"]),
        )


@dataclass
class Dm:
    """A direct-message group.

    Members are stored as user ids; ``owner_members`` is recorded once at
    creation and is not reconciled when members leave.
    """

    id: int
    name: str
    owner_members: List[int]
    all_members: List[int]
    messages: List[Message] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "Dm":
        return Dm(
            id=int(data["id"]),
            name=str(data["name"]),
            owner_members=[int(uid) for uid in data["owner_members"]],
            all_members=[int(uid) for uid in data["all_members"]],
            messages=[Message.from_dict(item) for item in data.get("messages", [])],
        )


@dataclass
class Snapshot:
    """The complete state of the store, including its id sequences."""

    users: List[User] = field(default_factory=list)
    dms: List[Dm] = field(default_factory=list)
    next_dm_id: int = 0
    next_message_id: int = 0

    def allocate_dm_id(self) -> int:
        value = self.next_dm_id
        self.next_dm_id += 1
        return value

    def allocate_message_id(self) -> int:
        value = self.next_message_id
        self.next_message_id += 1
        return value

    def get_user(self, user_id: int) -> User | None:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def get_user_by_email(self, email: str) -> User | None:
        normalized = email.strip().lower()
        for user in self.users:
            if user.email == normalized:
                return user
        return None

    def get_dm(self, dm_id: int) -> Dm | None:
        for dm in self.dms:
            if dm.id == dm_id:
                return dm
        return None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "Snapshot":
        return Snapshot(
            users=[User.from_dict(item) for item in data.get("users", [])],
            dms=[Dm.from_dict(item) for item in data.get("dms", [])],
            next_dm_id=int(data.get("next_dm_id", 0)),
            next_message_id=int(data.get("next_message_id", 0)),
        )


__all__ = ["Dm", "Message", "Snapshot", "User"]
