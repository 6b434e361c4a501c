from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorDatabase

from exchange_chat.database.connection import close_mongo_connection, connect_to_mongo, use_database
from exchange_chat.repositories.message_repository import MessageRepository
from exchange_chat.routers.chat import router as chat_router
from exchange_chat.routers.conversations import router as conversations_router
from exchange_chat.utils.logger import setup_logger
from exchange_chat.utils.security import signing_key


def create_app(database: Optional[AsyncIOMotorDatabase] = None) -> FastAPI:
    """Build the app. Passing ``database`` skips the MongoDB connection (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # refuse to start without a signing secret
        signing_key()
        if database is not None:
            use_database(database)
            db = database
        else:
            db = await connect_to_mongo()
        await MessageRepository(db).ensure_indexes()
        try:
            yield
        finally:
            await close_mongo_connection()

    setup_logger()
    app = FastAPI(title="Exchange Chat", lifespan=lifespan)
    app.include_router(chat_router)
    app.include_router(conversations_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
