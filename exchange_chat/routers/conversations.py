from typing import Optional

from fastapi import APIRouter, Depends, Query

from exchange_chat.config import get_settings
from exchange_chat.schemas.message import ConversationList, ThreadPage
from exchange_chat.services.chat_service import ChatService
from exchange_chat.utils.dependencies import get_chat_service, get_current_user
from exchange_chat.utils.http_errors import translate_errors


router = APIRouter(prefix="/conversations", tags=["chat"])


@router.get("", response_model=ConversationList)
async def list_conversations(current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    with translate_errors():
        items = await service.list_conversations(current_user["_id"])
    return {"items": items}


@router.get("/{conversation_key:path}/messages", response_model=ThreadPage)
async def list_messages(conversation_key: str, limit: Optional[int] = Query(None, ge=1, le=200), cursor: Optional[str] = None, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    limit = limit or get_settings().thread_page_size
    with translate_errors():
        messages, next_cursor = await service.get_thread_page(
            conversation_key, limit=limit, cursor=cursor, participant=current_user["_id"]
        )
    return {"items": messages, "next_cursor": next_cursor}
