import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.core.config import MONGODB_URL, DATABASE_NAME

logger = logging.getLogger(__name__)


class MongoDB:
    def __init__(self, url: str = MONGODB_URL, database_name: str = DATABASE_NAME):
        self.url = url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None

    async def connect(self):
        self.client = AsyncIOMotorClient(self.url)
        logger.info(f"MongoDB client created for database '{self.database_name}'")
        await self.ensure_indexes()

    async def ensure_indexes(self):
        db = self.get_database()
        # registration checks first, the index settles concurrent sign-ups
        await db.users.create_index("username", unique=True)
        await db.users.create_index("id", unique=True)
        await db.sessions.create_index("id", unique=True)

    async def disconnect(self):
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info("MongoDB connection closed")

    def get_database(self) -> AsyncIOMotorDatabase:
        if self.client is None:
            raise RuntimeError("MongoDB is not connected")
        return self.client[self.database_name]


mongodb = MongoDB()
