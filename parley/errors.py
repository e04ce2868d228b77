"""Error taxonomy shared by the DM core and the HTTP layer."""
from __future__ import annotations

from typing import Dict


class ParleyError(Exception):
    """Base class for caller-recoverable validation failures."""

    code = "PARLEY_ERROR"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, str]:
        return {"error": self.code, "detail": self.message}


class InvalidTokenError(ParleyError):
    code = "INVALID_TOKEN"
    status_code = 403
    default_message = "Token is invalid"


class UnknownUserError(ParleyError):
    code = "UNKNOWN_USER"
    default_message = "Invalid user id"


class DuplicateMemberError(ParleyError):
    code = "DUPLICATE_MEMBER"
    default_message = "Duplicate user id values entered"


class UnknownDmError(ParleyError):
    code = "UNKNOWN_DM"
    default_message = "dm_id is invalid"


class NotMemberError(ParleyError):
    code = "NOT_MEMBER"
    status_code = 403
    default_message = "User is not a member of the dm"


class NotOwnerError(ParleyError):
    code = "NOT_OWNER"
    status_code = 403
    default_message = "User is not the owner of the dm"


class OutOfRangeStartError(ParleyError):
    code = "OUT_OF_RANGE_START"
    default_message = "start is greater than the number of messages"


class InvalidMessageError(ParleyError):
    code = "INVALID_MESSAGE"
    default_message = "Message must be between 1 and 1000 characters"


class InvalidInputError(ParleyError):
    code = "INVALID_INPUT"


__all__ = [
    "DuplicateMemberError",
    "InvalidInputError",
    "InvalidMessageError",
    "InvalidTokenError",
    "NotMemberError",
    "NotOwnerError",
    "OutOfRangeStartError",
    "ParleyError",
    "UnknownDmError",
    "UnknownUserError",
]
