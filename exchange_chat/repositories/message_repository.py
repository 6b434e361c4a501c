import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from exchange_chat.models.message import MessageDocument
from exchange_chat.repositories.storage import (
    decode_cursor,
    encode_cursor,
    normalize,
    storage_errors,
    utc_now_ms,
)


logger = logging.getLogger(__name__)

THREAD_SORT = [("created_at", ASCENDING), ("_id", ASCENDING)]

INDEXES = {
    "conversation_order": [("conversation_key", ASCENDING), ("created_at", ASCENDING), ("_id", ASCENDING)],
    # the inbox $sort on (created_at, _id) runs off this per participant
    "participant_activity": [("participants", ASCENDING), ("created_at", ASCENDING), ("_id", ASCENDING)],
    "receiver_unread": [("receiver_id", ASCENDING), ("is_read", ASCENDING)],
    "receiver_sender_unread": [("receiver_id", ASCENDING), ("sender_id", ASCENDING), ("is_read", ASCENDING)],
}


class MessageRepository:
    """
    Append-only message log.

    Messages are inserted once and never deleted; the only mutation is the
    forward-only ``is_read`` transition. Thread order is ``(created_at, _id)``.
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        with storage_errors("ensure_indexes"):
            for name, keys in INDEXES.items():
                await self.collection.create_index(keys, name=name)

    async def append(
        self,
        conversation_key: str,
        participants: Tuple[str, str],
        sender_id: str,
        receiver_id: str,
        text: str,
        item_id: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> MessageDocument:
        doc: Dict[str, Any] = {
            "conversation_key": conversation_key,
            "participants": list(participants),
            "sender_id": sender_id,
            "sender_name": sender_name,
            "receiver_id": receiver_id,
            "item_id": item_id,
            "text": text,
            "is_read": False,
            "created_at": utc_now_ms(),
        }
        with storage_errors("append"):
            result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return normalize(doc)

    def _thread_query(self, conversation_key: str, participant: Optional[str]) -> Dict[str, Any]:
        query: Dict[str, Any] = {"conversation_key": conversation_key}
        if participant is not None:
            query["participants"] = participant
        return query

    async def iter_thread(self, conversation_key: str, participant: Optional[str] = None) -> AsyncIterator[MessageDocument]:
        """Yield the thread oldest first. Restartable: every call opens a new cursor."""
        query = self._thread_query(conversation_key, participant)
        with storage_errors("get_thread"):
            async for doc in self.collection.find(query).sort(THREAD_SORT):
                yield normalize(doc)

    async def get_thread(self, conversation_key: str, participant: Optional[str] = None) -> List[MessageDocument]:
        return [doc async for doc in self.iter_thread(conversation_key, participant)]

    async def get_thread_page(
        self,
        conversation_key: str,
        limit: int = 50,
        cursor: Optional[str] = None,
        participant: Optional[str] = None,
    ) -> Tuple[List[MessageDocument], Optional[str]]:
        query = self._thread_query(conversation_key, participant)
        if cursor:
            ts, oid = decode_cursor(cursor)
            query["$or"] = [
                {"created_at": {"$gt": ts}},
                {"created_at": ts, "_id": {"$gt": oid}},
            ]
        items: List[Dict[str, Any]] = []
        with storage_errors("get_thread_page"):
            async for doc in self.collection.find(query).sort(THREAD_SORT).limit(limit):
                items.append(doc)
        next_cursor = None
        if len(items) == limit:
            last = items[-1]
            next_cursor = encode_cursor(last["created_at"], last["_id"])
        return [normalize(it) for it in items], next_cursor

    async def count_unread(self, user_id: str) -> int:
        with storage_errors("unread_count"):
            return await self.collection.count_documents({"receiver_id": user_id, "is_read": False})

    async def mark_read(self, receiver_id: str, sender_id: str, conversation_key: Optional[str] = None) -> int:
        # filtering on is_read=False keeps the transition forward-only and idempotent
        query: Dict[str, Any] = {"receiver_id": receiver_id, "sender_id": sender_id, "is_read": False}
        if conversation_key:
            query["conversation_key"] = conversation_key
        with storage_errors("mark_thread_read"):
            result = await self.collection.update_many(query, {"$set": {"is_read": True}})
        modified = result.modified_count or 0
        logger.debug("Marked %d message(s) from %s to %s as read", modified, sender_id, receiver_id)
        return modified
