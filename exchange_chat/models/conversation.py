from datetime import datetime
from typing import Optional, TypedDict


class ConversationSummary(TypedDict):
    conversation_key: str
    other_participant_id: str
    other_participant_name: Optional[str]
    item_id: Optional[str]
    last_message_id: str
    last_message_text: str
    last_message_time: datetime
    last_sender_id: str
    unread_count: int
