"""Appending messages to a DM's log."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .database import DataStore
from .errors import InvalidMessageError, UnknownDmError
from .membership import ensure_member
from .models import Message
from .sessions import require_user_id

logger = logging.getLogger("parley.messages")

MIN_MESSAGE_LENGTH = 1
MAX_MESSAGE_LENGTH = 1000


class MessageSender:
    def __init__(self, store: DataStore, *, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    def send_dm_message(self, token: Optional[str], dm_id: int, body: str) -> int:
        """Append ``body`` to the DM log and return its system-wide message id."""

        with self._store.transaction() as snapshot:
            user_id = require_user_id(snapshot, token)
            dm = snapshot.get_dm(dm_id)
            if dm is None:
                raise UnknownDmError()
            if not MIN_MESSAGE_LENGTH <= len(body) <= MAX_MESSAGE_LENGTH:
                raise InvalidMessageError()
            ensure_member(dm, user_id)

            message = Message(
                id=snapshot.allocate_message_id(),
                author_id=user_id,
                body=body,
                sent_at=int(self._clock()),
            )
            dm.messages.append(message)

        logger.info("User %s sent message %s to dm %s", user_id, message.id, dm_id)
        return message.id


__all__ = ["MAX_MESSAGE_LENGTH", "MessageSender"]
