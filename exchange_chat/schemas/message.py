from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SendMessageRequest(BaseModel):

    receiver_id: str = Field(min_length=1)
    text: str
    item_id: Optional[str] = None


class MarkReadRequest(BaseModel):

    peer_id: str = Field(min_length=1)
    conversation_key: Optional[str] = None


class MessagePublic(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    conversation_key: str
    sender_id: str
    sender_name: Optional[str] = None
    receiver_id: str
    item_id: Optional[str] = None
    text: str
    is_read: bool
    created_at: datetime


class ThreadPage(BaseModel):

    items: List[MessagePublic]
    next_cursor: Optional[str] = None


class ConversationSummaryPublic(BaseModel):

    conversation_key: str
    other_participant_id: str
    other_participant_name: Optional[str] = None
    item_id: Optional[str] = None
    last_message_id: str
    last_message_text: str
    last_message_time: datetime
    last_sender_id: str
    unread_count: int = 0


class ConversationList(BaseModel):

    items: List[ConversationSummaryPublic]


class UnreadCount(BaseModel):

    count: int


class MarkReadResult(BaseModel):

    updated: int
