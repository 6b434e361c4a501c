from typing import List, Optional

from fastapi import APIRouter, Depends, status

from exchange_chat.schemas.message import (
    MarkReadRequest,
    MarkReadResult,
    MessagePublic,
    SendMessageRequest,
    UnreadCount,
)
from exchange_chat.services.chat_service import ChatService
from exchange_chat.utils.conversation_key import derive_key
from exchange_chat.utils.dependencies import get_chat_service, get_current_user
from exchange_chat.utils.http_errors import translate_errors


router = APIRouter(prefix="/messages", tags=["chat"])


@router.post("", response_model=MessagePublic, status_code=status.HTTP_201_CREATED)
async def send_message(body: SendMessageRequest, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    with translate_errors():
        return await service.send_message(
            sender_id=current_user["_id"],
            receiver_id=body.receiver_id,
            text=body.text,
            item_id=body.item_id,
            sender_name=current_user.get("name"),
        )


@router.get("/unread_count", response_model=UnreadCount)
async def unread_count(current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    with translate_errors():
        count = await service.unread_count(current_user["_id"])
    return {"count": count}


@router.post("/mark_read", response_model=MarkReadResult)
async def mark_read(body: MarkReadRequest, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    with translate_errors():
        updated = await service.mark_thread_read(current_user["_id"], body.peer_id, conversation_key=body.conversation_key)
    return {"updated": updated}


@router.get("/with/{peer_id}", response_model=List[MessagePublic])
async def thread_with(peer_id: str, item_id: Optional[str] = None, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    # opening a thread: read the history, then mark what the peer sent in it as read
    user_id = current_user["_id"]
    with translate_errors():
        messages = await service.get_thread_between(user_id, peer_id, item_id)
        await service.mark_thread_read(user_id, peer_id, conversation_key=derive_key(user_id, peer_id, item_id))
    return messages
