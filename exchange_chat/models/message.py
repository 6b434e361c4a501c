from datetime import datetime
from typing import List, Optional, TypedDict


class MessageDocument(TypedDict, total=False):
    # ObjectId in the store, hex str once read back
    _id: str
    conversation_key: str
    # sorted [user_a, user_b], indexed for inbox membership
    participants: List[str]
    sender_id: str
    sender_name: Optional[str]
    receiver_id: str
    item_id: Optional[str]
    text: str
    # forward-only: False -> True
    is_read: bool
    created_at: datetime
