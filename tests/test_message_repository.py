from datetime import datetime, timedelta, timezone

import pytest

from exchange_chat.repositories.message_repository import MessageRepository
from exchange_chat.repositories.storage import decode_cursor, encode_cursor, utc_now_ms
from exchange_chat.utils.conversation_key import derive_key, participants_of
from exchange_chat.utils.errors import ValidationError


KEY = derive_key("u1", "u2")


async def _append(repo, sender, receiver, text, item_id=None):
    return await repo.append(
        conversation_key=derive_key(sender, receiver, item_id),
        participants=participants_of(sender, receiver),
        sender_id=sender,
        receiver_id=receiver,
        text=text,
        item_id=item_id,
    )


async def test_append_sets_defaults(message_repo, clock):
    saved = await _append(message_repo, "u1", "u2", "hello")
    assert saved["is_read"] is False
    assert saved["conversation_key"] == KEY
    assert saved["participants"] == ["u1", "u2"]
    assert isinstance(saved["_id"], str)
    assert saved["created_at"] == clock.now.replace(tzinfo=timezone.utc)


async def test_thread_orders_by_created_at(message_repo, clock):
    base = clock.now
    clock.set(base + timedelta(seconds=2))
    await _append(message_repo, "u1", "u2", "second")
    clock.set(base)
    await _append(message_repo, "u2", "u1", "first")
    clock.set(base + timedelta(seconds=5))
    await _append(message_repo, "u1", "u2", "third")

    thread = await message_repo.get_thread(KEY)
    assert [m["text"] for m in thread] == ["first", "second", "third"]


async def test_thread_ties_fall_back_to_insertion_order(message_repo, clock):
    for text in ["a", "b", "c", "d"]:
        await _append(message_repo, "u1", "u2", text)

    thread = await message_repo.get_thread(KEY)
    assert [m["text"] for m in thread] == ["a", "b", "c", "d"]


async def test_thread_for_unknown_key_is_empty(message_repo):
    assert await message_repo.get_thread("nobody|noone|general") == []


async def test_thread_is_restricted_to_participants(message_repo, clock):
    await _append(message_repo, "u1", "u2", "private")
    assert len(await message_repo.get_thread(KEY, participant="u2")) == 1
    assert await message_repo.get_thread(KEY, participant="u3") == []


async def test_iter_thread_is_restartable(message_repo, clock):
    for text in ["x", "y"]:
        clock.advance(seconds=1)
        await _append(message_repo, "u1", "u2", text)

    first = [m["text"] async for m in message_repo.iter_thread(KEY)]
    second = [m["text"] async for m in message_repo.iter_thread(KEY)]
    assert first == second == ["x", "y"]


async def test_thread_pages_cover_everything_once(message_repo, clock):
    texts = [f"m{i}" for i in range(7)]
    for i, text in enumerate(texts):
        # pairs share a timestamp so page boundaries land inside ties
        if i % 2 == 0:
            clock.advance(milliseconds=1)
        await _append(message_repo, "u1", "u2", text)

    seen = []
    cursor = None
    while True:
        page, cursor = await message_repo.get_thread_page(KEY, limit=3, cursor=cursor)
        seen.extend(m["text"] for m in page)
        if cursor is None:
            break
    assert seen == texts


async def test_pages_already_returned_do_not_shift(message_repo, clock):
    for text in ["a", "b"]:
        clock.advance(seconds=1)
        await _append(message_repo, "u1", "u2", text)
    page, cursor = await message_repo.get_thread_page(KEY, limit=2)
    assert [m["text"] for m in page] == ["a", "b"]

    clock.advance(seconds=1)
    await _append(message_repo, "u2", "u1", "c")
    rest, _ = await message_repo.get_thread_page(KEY, limit=2, cursor=cursor)
    assert [m["text"] for m in rest] == ["c"]


async def test_malformed_cursor_is_rejected(message_repo):
    with pytest.raises(ValidationError):
        await message_repo.get_thread_page(KEY, cursor="not-a-cursor")


def test_cursor_round_trip_is_exact():
    ts = datetime(2024, 1, 2, 3, 4, 5, 678000)
    cursor = encode_cursor(ts, "65a1b2c3d4e5f60718293a4b")
    decoded_ts, oid = decode_cursor(cursor)
    assert decoded_ts == ts
    assert str(oid) == "65a1b2c3d4e5f60718293a4b"


def test_store_clock_has_millisecond_precision():
    now = utc_now_ms()
    assert now.tzinfo is None
    assert now.microsecond % 1000 == 0


async def test_unread_counts_only_incoming_unread(message_repo, clock):
    await _append(message_repo, "u1", "u2", "one")
    await _append(message_repo, "u1", "u2", "two")
    await _append(message_repo, "u2", "u1", "reply")

    assert await message_repo.count_unread("u2") == 2
    assert await message_repo.count_unread("u1") == 1
    assert await message_repo.count_unread("u3") == 0


async def test_mark_read_is_idempotent(message_repo, clock):
    await _append(message_repo, "u1", "u2", "one")
    await _append(message_repo, "u1", "u2", "two")

    assert await message_repo.mark_read("u2", "u1") == 2
    assert await message_repo.mark_read("u2", "u1") == 0
    assert await message_repo.count_unread("u2") == 0


async def test_mark_read_only_touches_messages_from_peer(message_repo, clock):
    await _append(message_repo, "u1", "u2", "from u1")
    await _append(message_repo, "u3", "u2", "from u3")
    await _append(message_repo, "u2", "u1", "u2 to u1")

    assert await message_repo.mark_read("u2", "u1") == 1
    assert await message_repo.count_unread("u2") == 1
    # u2's own outgoing message is untouched
    assert await message_repo.count_unread("u1") == 1


async def test_mark_read_can_be_narrowed_to_one_conversation(message_repo, clock):
    await _append(message_repo, "u1", "u2", "general")
    await _append(message_repo, "u1", "u2", "about the bike", item_id="bike")

    updated = await message_repo.mark_read("u2", "u1", conversation_key=derive_key("u1", "u2", "bike"))
    assert updated == 1
    assert await message_repo.count_unread("u2") == 1


async def test_mark_read_never_reverts(message_repo, clock):
    await _append(message_repo, "u1", "u2", "one")
    await message_repo.mark_read("u2", "u1")
    await _append(message_repo, "u1", "u2", "two")

    thread = await message_repo.get_thread(KEY)
    assert [m["is_read"] for m in thread] == [True, False]


async def test_ensure_indexes_can_run_on_every_startup(message_repo, clock):
    await message_repo.ensure_indexes()
    await message_repo.ensure_indexes()
    await _append(message_repo, "u1", "u2", "still writable")
    assert len(await message_repo.get_thread(KEY)) == 1


class _RecordingCollection:

    def __init__(self) -> None:
        self.indexes = {}

    async def create_index(self, keys, name=None):
        self.indexes[name] = list(keys)
        return name


class _RecordingDatabase:

    def __init__(self) -> None:
        self.messages = _RecordingCollection()

    def __getitem__(self, name):
        return self.messages


async def test_inbox_index_covers_the_inbox_sort():
    db = _RecordingDatabase()
    await MessageRepository(db).ensure_indexes()
    assert db.messages.indexes["participant_activity"] == [("participants", 1), ("created_at", 1), ("_id", 1)]
    assert db.messages.indexes["conversation_order"] == [("conversation_key", 1), ("created_at", 1), ("_id", 1)]
    assert db.messages.indexes["receiver_unread"] == [("receiver_id", 1), ("is_read", 1)]
