from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from exchange_chat.database.connection import mongo_db_dependency
from exchange_chat.repositories.conversation_repository import ConversationRepository
from exchange_chat.repositories.message_repository import MessageRepository
from exchange_chat.services.chat_service import ChatService
from exchange_chat.utils.security import AuthNotConfigured, decode_access_token


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    """Resolve the caller from a bearer token issued by the identity service."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        payload = decode_access_token(credentials.credentials)
    except AuthNotConfigured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Authentication is not configured")
    except jwt.PyJWTError:
        raise unauthorized
    sub = payload.get("sub")
    if not sub:
        raise unauthorized
    return {"_id": str(sub), "name": payload.get("name")}


def get_chat_service(db = Depends(mongo_db_dependency)) -> ChatService:
    msg_repo = MessageRepository(db)
    convo_repo = ConversationRepository(db)
    return ChatService(msg_repo, convo_repo)
