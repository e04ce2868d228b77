from __future__ import annotations

import itertools
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from parley.auth import AuthService
from parley.database import DataStore
from parley.dms import NO_MORE_PAGES, PAGE_SIZE, DmManager
from parley.errors import (
    DuplicateMemberError,
    InvalidTokenError,
    NotMemberError,
    NotOwnerError,
    OutOfRangeStartError,
    UnknownDmError,
    UnknownUserError,
)
from parley.messages import MessageSender


@pytest.fixture()
def store() -> DataStore:
    return DataStore()


@pytest.fixture()
def manager(store: DataStore) -> DmManager:
    return DmManager(store)


@pytest.fixture()
def users(store: DataStore) -> dict:
    auth = AuthService(store)
    cleo = auth.register("cleo@example.com", "password1", "Cleo", "Chen")
    bob = auth.register("bob@example.com", "password2", "Bob", "Brown")
    amy = auth.register("amy@example.com", "password3", "Amy", "Adams")
    return {"cleo": cleo, "bob": bob, "amy": amy}


def _send_many(store: DataStore, token: str, dm_id: int, count: int) -> list[int]:
    sender = MessageSender(store, clock=lambda: 1_700_000_000.0)
    return [sender.send_dm_message(token, dm_id, f"message {index}") for index in range(count)]


def test_name_is_sorted_handles_independent_of_order(manager: DmManager, users: dict) -> None:
    cleo = users["cleo"]
    member_ids = [users["bob"].auth_user_id, users["amy"].auth_user_id]

    names = set()
    for ordering in itertools.permutations(member_ids):
        dm_id = manager.create(cleo.token, list(ordering))
        names.add(manager.details(cleo.token, dm_id).name)

    assert names == {"amyadams, bobbrown, cleochen"}


def test_create_records_creator_as_sole_owner(manager: DmManager, users: dict) -> None:
    cleo, bob, amy = users["cleo"], users["bob"], users["amy"]
    dm_id = manager.create(cleo.token, [amy.auth_user_id, bob.auth_user_id])

    details = manager.details(cleo.token, dm_id)
    assert [user.id for user in details.owner_members] == [cleo.auth_user_id]
    assert [user.id for user in details.all_members] == [
        cleo.auth_user_id,
        amy.auth_user_id,
        bob.auth_user_id,
    ]


def test_create_without_members_is_allowed(manager: DmManager, users: dict) -> None:
    dm_id = manager.create(users["amy"].token, [])
    assert manager.details(users["amy"].token, dm_id).name == "amyadams"


@pytest.mark.parametrize("position", [0, 1, 2])
def test_duplicate_member_rejected_wherever_it_appears(
    manager: DmManager, users: dict, position: int
) -> None:
    bob_id = users["bob"].auth_user_id
    amy_id = users["amy"].auth_user_id
    member_ids = [amy_id, bob_id]
    member_ids.insert(position, bob_id)

    with pytest.raises(DuplicateMemberError):
        manager.create(users["cleo"].token, member_ids)


def test_creator_listed_as_member_counts_as_duplicate(manager: DmManager, users: dict) -> None:
    cleo = users["cleo"]
    with pytest.raises(DuplicateMemberError):
        manager.create(cleo.token, [users["bob"].auth_user_id, cleo.auth_user_id])


def test_create_rejects_unknown_member_before_duplicates(manager: DmManager, users: dict) -> None:
    bob_id = users["bob"].auth_user_id
    with pytest.raises(UnknownUserError):
        manager.create(users["cleo"].token, [bob_id, bob_id, 999])


def test_create_rejects_invalid_token(manager: DmManager, users: dict) -> None:
    with pytest.raises(InvalidTokenError):
        manager.create("not-a-token", [users["bob"].auth_user_id])
    with pytest.raises(InvalidTokenError):
        manager.create(None, [])


def test_failed_create_does_not_consume_an_id(manager: DmManager, users: dict) -> None:
    with pytest.raises(UnknownUserError):
        manager.create(users["cleo"].token, [42])
    assert manager.create(users["cleo"].token, []) == 0


def test_dm_ids_increase_and_are_never_reused(manager: DmManager, users: dict) -> None:
    token = users["cleo"].token
    first = manager.create(token, [])
    second = manager.create(token, [])
    manager.delete(token, second)
    third = manager.create(token, [])

    assert (first, second, third) == (0, 1, 2)


def test_list_only_includes_dms_the_user_belongs_to(manager: DmManager, users: dict) -> None:
    cleo, bob, amy = users["cleo"], users["bob"], users["amy"]
    with_bob = manager.create(cleo.token, [bob.auth_user_id])
    manager.create(cleo.token, [amy.auth_user_id])
    bobs_own = manager.create(bob.token, [])

    listing = manager.list(bob.token)
    assert [summary.dm_id for summary in listing] == [with_bob, bobs_own]
    assert listing[0].name == "bobbrown, cleochen"

    with pytest.raises(InvalidTokenError):
        manager.list("expired")


def test_details_requires_membership(manager: DmManager, users: dict) -> None:
    dm_id = manager.create(users["cleo"].token, [users["bob"].auth_user_id])

    with pytest.raises(NotMemberError):
        manager.details(users["amy"].token, dm_id)
    with pytest.raises(UnknownDmError):
        manager.details(users["cleo"].token, dm_id + 1)
    with pytest.raises(InvalidTokenError):
        manager.details("bogus", dm_id + 1)


def test_leave_removes_member_but_keeps_dm(manager: DmManager, users: dict) -> None:
    cleo, bob, amy = users["cleo"], users["bob"], users["amy"]
    dm_id = manager.create(cleo.token, [bob.auth_user_id, amy.auth_user_id])

    manager.leave(bob.token, dm_id)

    member_ids = [user.id for user in manager.details(cleo.token, dm_id).all_members]
    assert bob.auth_user_id not in member_ids
    assert manager.list(bob.token) == []
    assert [summary.dm_id for summary in manager.list(amy.token)] == [dm_id]
    with pytest.raises(NotMemberError):
        manager.leave(bob.token, dm_id)


def test_leave_failures_leave_store_unchanged(
    manager: DmManager, users: dict, store: DataStore
) -> None:
    cleo, bob = users["cleo"], users["bob"]
    dm_id = manager.create(cleo.token, [bob.auth_user_id])
    before = store.load()

    with pytest.raises(InvalidTokenError):
        manager.leave("not-a-token", dm_id)
    with pytest.raises(InvalidTokenError):
        manager.leave(None, dm_id + 1)
    with pytest.raises(UnknownDmError):
        manager.leave(bob.token, dm_id + 1)
    with pytest.raises(NotMemberError):
        manager.leave(users["amy"].token, dm_id)

    assert store.load() == before


def test_delete_failures_leave_store_unchanged(
    manager: DmManager, users: dict, store: DataStore
) -> None:
    cleo, bob, amy = users["cleo"], users["bob"], users["amy"]
    dm_id = manager.create(cleo.token, [bob.auth_user_id])
    before = store.load()

    with pytest.raises(InvalidTokenError):
        manager.delete("not-a-token", dm_id)
    with pytest.raises(InvalidTokenError):
        manager.delete(None, dm_id + 1)
    with pytest.raises(UnknownDmError):
        manager.delete(cleo.token, dm_id + 1)
    with pytest.raises(NotOwnerError):
        manager.delete(amy.token, dm_id)

    assert store.load() == before
    assert [summary.dm_id for summary in manager.list(cleo.token)] == [dm_id]


def test_name_is_not_recomputed_after_leave(manager: DmManager, users: dict) -> None:
    cleo, bob = users["cleo"], users["bob"]
    dm_id = manager.create(cleo.token, [bob.auth_user_id])
    manager.leave(bob.token, dm_id)
    assert manager.details(cleo.token, dm_id).name == "bobbrown, cleochen"


def test_owner_leaving_leaves_ownership_unreconciled(manager: DmManager, users: dict) -> None:
    cleo, bob = users["cleo"], users["bob"]
    dm_id = manager.create(cleo.token, [bob.auth_user_id])

    manager.leave(cleo.token, dm_id)

    details = manager.details(bob.token, dm_id)
    assert [user.id for user in details.owner_members] == [cleo.auth_user_id]
    assert [user.id for user in details.all_members] == [bob.auth_user_id]
    with pytest.raises(NotMemberError):
        manager.delete(cleo.token, dm_id)
    with pytest.raises(NotOwnerError):
        manager.delete(bob.token, dm_id)


def test_delete_by_non_owner_fails_and_owner_succeeds(
    manager: DmManager, users: dict, store: DataStore
) -> None:
    cleo, bob, amy = users["cleo"], users["bob"], users["amy"]
    dm_id = manager.create(cleo.token, [bob.auth_user_id])

    with pytest.raises(NotOwnerError):
        manager.delete(bob.token, dm_id)
    with pytest.raises(NotOwnerError):
        manager.delete(amy.token, dm_id)

    manager.delete(cleo.token, dm_id)

    with pytest.raises(UnknownDmError):
        manager.details(cleo.token, dm_id)
    with pytest.raises(UnknownDmError):
        manager.page_messages(cleo.auth_user_id, dm_id, 0)
    assert store.load().dms == []


def test_page_of_empty_log(manager: DmManager, users: dict) -> None:
    cleo = users["cleo"]
    dm_id = manager.create(cleo.token, [])

    page = manager.page_messages(cleo.auth_user_id, dm_id, 0)
    assert page.messages == []
    assert (page.start, page.end) == (0, NO_MORE_PAGES)


def test_page_start_equal_to_length_is_empty(manager: DmManager, users: dict, store: DataStore) -> None:
    cleo = users["cleo"]
    dm_id = manager.create(cleo.token, [])
    _send_many(store, cleo.token, dm_id, 7)

    page = manager.page_messages(cleo.auth_user_id, dm_id, 7)
    assert page.messages == []
    assert page.end == NO_MORE_PAGES

    with pytest.raises(OutOfRangeStartError):
        manager.page_messages(cleo.auth_user_id, dm_id, 8)
    with pytest.raises(OutOfRangeStartError):
        manager.page_messages(cleo.auth_user_id, dm_id, -1)


def test_exactly_fifty_messages_fit_in_one_page(manager: DmManager, users: dict, store: DataStore) -> None:
    cleo = users["cleo"]
    dm_id = manager.create(cleo.token, [])
    _send_many(store, cleo.token, dm_id, PAGE_SIZE)

    page = manager.page_messages(cleo.auth_user_id, dm_id, 0)
    assert len(page.messages) == PAGE_SIZE
    assert page.end == NO_MORE_PAGES


def test_paging_enumerates_every_message_once_in_order(
    manager: DmManager, users: dict, store: DataStore
) -> None:
    cleo = users["cleo"]
    dm_id = manager.create(cleo.token, [])
    sent = _send_many(store, cleo.token, dm_id, 123)

    seen: list[int] = []
    start = 0
    while True:
        page = manager.page_messages(cleo.auth_user_id, dm_id, start)
        assert len(page.messages) <= PAGE_SIZE
        seen.extend(message.id for message in page.messages)
        if page.end == NO_MORE_PAGES:
            break
        assert page.end == start + PAGE_SIZE
        start = page.end

    assert seen == sent


def test_page_check_order(manager: DmManager, users: dict) -> None:
    cleo, amy = users["cleo"], users["amy"]
    dm_id = manager.create(cleo.token, [])

    with pytest.raises(UnknownDmError):
        manager.page_messages(None, dm_id + 5, 99)
    with pytest.raises(UnknownUserError):
        manager.page_messages(None, dm_id, 99)
    with pytest.raises(OutOfRangeStartError):
        manager.page_messages(amy.auth_user_id, dm_id, 99)
    with pytest.raises(NotMemberError):
        manager.page_messages(amy.auth_user_id, dm_id, 0)


def test_end_to_end_scenario(manager: DmManager, users: dict) -> None:
    a, b, c = users["cleo"], users["bob"], users["amy"]

    dm_id = manager.create(a.token, [b.auth_user_id, c.auth_user_id])
    assert dm_id == 0

    listing = manager.list(a.token)
    assert [(summary.dm_id, summary.name) for summary in listing] == [
        (0, "amyadams, bobbrown, cleochen")
    ]

    page = manager.page_messages(a.auth_user_id, 0, 0)
    assert (page.messages, page.start, page.end) == ([], 0, -1)

    manager.leave(b.token, 0)
    assert b.auth_user_id not in [user.id for user in manager.details(a.token, 0).all_members]

    with pytest.raises(NotOwnerError):
        manager.delete(c.token, 0)

    manager.delete(a.token, 0)
    with pytest.raises(UnknownDmError):
        manager.details(a.token, 0)
