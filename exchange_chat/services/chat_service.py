import logging
from typing import AsyncIterator, List, Optional, Tuple

from exchange_chat.config import get_settings
from exchange_chat.models.conversation import ConversationSummary
from exchange_chat.models.message import MessageDocument
from exchange_chat.repositories.conversation_repository import ConversationRepository
from exchange_chat.repositories.message_repository import MessageRepository
from exchange_chat.utils.conversation_key import derive_key, participants_of
from exchange_chat.utils.errors import ValidationError


logger = logging.getLogger(__name__)


class ChatService:
    """
    Messaging core: send, read threads, build the inbox, track unread state.

    Every view is recomputed from the message log on demand; the service
    keeps no state of its own beyond its repositories.
    """

    def __init__(
        self,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        max_length: Optional[int] = None,
    ) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._max_length = max_length or get_settings().message_max_length

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        text: str,
        item_id: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> MessageDocument:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Cannot send an empty message")
        text = text.strip()
        if len(text) > self._max_length:
            raise ValidationError(f"Message exceeds {self._max_length} characters")
        item_id = item_id or None
        participants = participants_of(sender_id, receiver_id)
        key = derive_key(sender_id, receiver_id, item_id)
        saved = await self._message_repo.append(
            conversation_key=key,
            participants=participants,
            sender_id=sender_id,
            receiver_id=receiver_id,
            text=text,
            item_id=item_id,
            sender_name=sender_name,
        )
        logger.debug("Stored message %s in %s", saved["_id"], key)
        return saved

    async def get_thread(self, conversation_key: str, participant: Optional[str] = None) -> List[MessageDocument]:
        return await self._message_repo.get_thread(conversation_key, participant=participant)

    def iter_thread(self, conversation_key: str, participant: Optional[str] = None) -> AsyncIterator[MessageDocument]:
        return self._message_repo.iter_thread(conversation_key, participant=participant)

    async def get_thread_page(
        self,
        conversation_key: str,
        limit: int = 50,
        cursor: Optional[str] = None,
        participant: Optional[str] = None,
    ) -> Tuple[List[MessageDocument], Optional[str]]:
        return await self._message_repo.get_thread_page(conversation_key, limit=limit, cursor=cursor, participant=participant)

    async def get_thread_between(self, user_id: str, peer_id: str, item_id: Optional[str] = None) -> List[MessageDocument]:
        return await self.get_thread(derive_key(user_id, peer_id, item_id))

    async def list_conversations(self, user_id: str) -> List[ConversationSummary]:
        return await self._conversation_repo.list_for_user(user_id)

    async def unread_count(self, user_id: str) -> int:
        return await self._message_repo.count_unread(user_id)

    async def mark_thread_read(self, user_id: str, other_participant_id: str, conversation_key: Optional[str] = None) -> int:
        """
        Mark every unread message from ``other_participant_id`` to ``user_id`` as read.

        Narrowed to one conversation when ``conversation_key`` is given. An
        unknown peer is not an error; it simply has nothing to mark.
        """
        return await self._message_repo.mark_read(user_id, other_participant_id, conversation_key=conversation_key)
