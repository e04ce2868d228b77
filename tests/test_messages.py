from __future__ import annotations

import pytest

from parley.auth import AuthService
from parley.database import DataStore
from parley.dms import DmManager
from parley.errors import InvalidMessageError, InvalidTokenError, NotMemberError, UnknownDmError
from parley.messages import MAX_MESSAGE_LENGTH, MessageSender


@pytest.fixture()
def store() -> DataStore:
    return DataStore()


def test_message_ids_are_unique_across_dms(store: DataStore) -> None:
    owner = AuthService(store).register("owner@example.com", "password", "Dm", "Owner")
    manager = DmManager(store)
    first_dm = manager.create(owner.token, [])
    second_dm = manager.create(owner.token, [])
    sender = MessageSender(store, clock=lambda: 1_700_000_123.9)

    ids = [
        sender.send_dm_message(owner.token, first_dm, "one"),
        sender.send_dm_message(owner.token, second_dm, "two"),
        sender.send_dm_message(owner.token, first_dm, "three"),
    ]

    assert ids == [0, 1, 2]
    logged = store.load().get_dm(first_dm).messages
    assert [(message.id, message.body) for message in logged] == [(0, "one"), (2, "three")]
    assert logged[0].author_id == owner.auth_user_id
    assert logged[0].sent_at == 1_700_000_123


def test_send_validation_order(store: DataStore) -> None:
    auth = AuthService(store)
    owner = auth.register("owner@example.com", "password", "Dm", "Owner")
    outsider = auth.register("outsider@example.com", "password", "Out", "Sider")
    dm_id = DmManager(store).create(owner.token, [])
    sender = MessageSender(store)

    with pytest.raises(InvalidTokenError):
        sender.send_dm_message("nope", dm_id + 1, "")
    with pytest.raises(UnknownDmError):
        sender.send_dm_message(outsider.token, dm_id + 1, "")
    with pytest.raises(InvalidMessageError):
        sender.send_dm_message(outsider.token, dm_id, "")
    with pytest.raises(InvalidMessageError):
        sender.send_dm_message(owner.token, dm_id, "x" * (MAX_MESSAGE_LENGTH + 1))
    with pytest.raises(NotMemberError):
        sender.send_dm_message(outsider.token, dm_id, "hello")

    assert store.load().get_dm(dm_id).messages == []
    assert store.load().next_message_id == 0
