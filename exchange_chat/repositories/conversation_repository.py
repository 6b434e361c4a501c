from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from exchange_chat.models.conversation import ConversationSummary
from exchange_chat.repositories.storage import as_utc, storage_errors


class ConversationRepository:
    """
    Inbox view over the message log.

    There is no conversations collection: each summary is reduced from the
    messages themselves, so it cannot drift from the log.
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def _aggregate(self, pipeline: List[Dict[str, Any]], operation: str) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        with storage_errors(operation):
            async for row in self.collection.aggregate(pipeline):
                rows.append(row)
        return rows

    async def _latest_per_conversation(self, user_id: str) -> List[Dict[str, Any]]:
        # newest-first sort, then $first per group == max(created_at, _id)
        pipeline = [
            {"$match": {"participants": user_id}},
            {"$sort": {"created_at": DESCENDING, "_id": DESCENDING}},
            {
                "$group": {
                    "_id": "$conversation_key",
                    "message_id": {"$first": "$_id"},
                    "sender_id": {"$first": "$sender_id"},
                    "receiver_id": {"$first": "$receiver_id"},
                    "item_id": {"$first": "$item_id"},
                    "text": {"$first": "$text"},
                    "created_at": {"$first": "$created_at"},
                }
            },
        ]
        return await self._aggregate(pipeline, "list_conversations")

    async def _unread_per_conversation(self, user_id: str) -> Dict[str, int]:
        pipeline = [
            {"$match": {"receiver_id": user_id, "is_read": False}},
            {"$group": {"_id": "$conversation_key", "count": {"$sum": 1}}},
        ]
        rows = await self._aggregate(pipeline, "list_conversations")
        return {row["_id"]: row["count"] for row in rows}

    async def _peer_names(self, user_id: str) -> Dict[str, Optional[str]]:
        # latest display name each peer used when writing to this user
        pipeline = [
            {"$match": {"receiver_id": user_id, "sender_name": {"$ne": None}}},
            {"$sort": {"created_at": DESCENDING, "_id": DESCENDING}},
            {"$group": {"_id": "$sender_id", "name": {"$first": "$sender_name"}}},
        ]
        rows = await self._aggregate(pipeline, "list_conversations")
        return {row["_id"]: row["name"] for row in rows}

    async def list_for_user(self, user_id: str) -> List[ConversationSummary]:
        latest = await self._latest_per_conversation(user_id)
        if not latest:
            return []
        unread = await self._unread_per_conversation(user_id)
        names = await self._peer_names(user_id)

        latest.sort(key=lambda row: (row["created_at"], row["message_id"]), reverse=True)
        summaries: List[ConversationSummary] = []
        for row in latest:
            other = row["receiver_id"] if row["sender_id"] == user_id else row["sender_id"]
            summaries.append(
                ConversationSummary(
                    conversation_key=row["_id"],
                    other_participant_id=other,
                    other_participant_name=names.get(other),
                    item_id=row.get("item_id"),
                    last_message_id=str(row["message_id"]),
                    last_message_text=row["text"],
                    last_message_time=as_utc(row["created_at"]),
                    last_sender_id=row["sender_id"],
                    unread_count=unread.get(row["_id"], 0),
                )
            )
        return summaries
