import logging
import secrets
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from pymongo import ReturnDocument
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.core.database import mongodb

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}
DECIMAL_KEYS = ("quantity", "price_per_unit")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def to_decimal_string(value: Any) -> str:
    """Inventory amounts are stored as decimal strings with two places ("50.00")."""
    if isinstance(value, str):
        return value
    return str(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def prepare_inventory(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    for key in DECIMAL_KEYS:
        if data.get(key) is not None:
            data[key] = to_decimal_string(data[key])
    return data


class MongoStorage:
    """
    CRUD verbs for every collection the API touches.

    Documents are keyed by a string `id` (uuid4); Mongo's own `_id` is never
    returned. Update methods return the updated document or None when nothing
    matched.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        await self.db[collection].insert_one(dict(doc))
        return doc

    async def _find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self.db[collection].find_one(query, NO_ID)

    async def _find_many(self, collection: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        cursor = self.db[collection].find(query, NO_ID).sort("created_at", 1)
        return await cursor.to_list(length=None)

    async def _update(self, collection: str, item_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not changes:
            return await self._find_one(collection, {"id": item_id})
        return await self.db[collection].find_one_and_update(
            {"id": item_id},
            {"$set": changes},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )

    async def _delete(self, collection: str, item_id: str) -> bool:
        result = await self.db[collection].delete_one({"id": item_id})
        return result.deleted_count > 0

    # Users

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one("users", {"id": user_id})

    async def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return await self._find_one("users", {"username": username})

    async def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {"role": "farmer", **data, "id": new_id(), "created_at": utcnow()}
        return await self._insert("users", doc)

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update("users", user_id, changes)

    # Sessions

    async def create_session(self, user_id: str, expires_at: datetime) -> str:
        session_id = secrets.token_urlsafe(32)
        await self.db.sessions.insert_one({"id": session_id, "user_id": user_id, "expires_at": expires_at})
        return session_id

    async def get_session_user_id(self, session_id: str) -> Optional[str]:
        session = await self._find_one("sessions", {"id": session_id, "expires_at": {"$gt": utcnow()}})
        return session["user_id"] if session else None

    async def delete_session(self, session_id: str) -> None:
        await self.db.sessions.delete_one({"id": session_id})

    # Fields

    async def list_fields(self, user_id: str) -> List[Dict[str, Any]]:
        return await self._find_many("fields", {"user_id": user_id})

    async def get_field(self, field_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one("fields", {"id": field_id})

    async def create_field(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**data, "id": new_id(), "user_id": user_id, "created_at": utcnow()}
        return await self._insert("fields", doc)

    async def update_field(self, field_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update("fields", field_id, changes)

    async def delete_field(self, field_id: str) -> bool:
        deleted = await self._delete("fields", field_id)
        if deleted:
            await self.db.fertilizers.delete_many({"field_id": field_id})
        return deleted

    # Livestock

    async def list_livestock(self, user_id: str) -> List[Dict[str, Any]]:
        return await self._find_many("livestock", {"user_id": user_id})

    async def get_livestock(self, livestock_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one("livestock", {"id": livestock_id})

    async def create_livestock(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**data, "id": new_id(), "user_id": user_id, "created_at": utcnow()}
        return await self._insert("livestock", doc)

    async def update_livestock(self, livestock_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update("livestock", livestock_id, changes)

    async def delete_livestock(self, livestock_id: str) -> bool:
        deleted = await self._delete("livestock", livestock_id)
        if deleted:
            await self.db.feeds.delete_many({"livestock_id": livestock_id})
        return deleted

    # Chat

    async def list_chat_messages(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        cursor = self.db.chat_messages.find({"user_id": user_id}, NO_ID).sort("created_at", -1).limit(limit)
        messages = await cursor.to_list(length=limit)
        messages.reverse()
        return messages

    async def create_chat_message(self, user_id: str, role: str, content: str) -> Dict[str, Any]:
        doc = {"id": new_id(), "user_id": user_id, "role": role, "content": content, "created_at": utcnow()}
        return await self._insert("chat_messages", doc)

    async def clear_chat_messages(self, user_id: str) -> int:
        result = await self.db.chat_messages.delete_many({"user_id": user_id})
        return result.deleted_count

    # Feed inventory

    async def list_feeds(self, livestock_id: str) -> List[Dict[str, Any]]:
        return await self._find_many("feeds", {"livestock_id": livestock_id})

    async def get_feed(self, feed_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one("feeds", {"id": feed_id})

    async def create_feed(self, livestock_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**prepare_inventory(data), "id": new_id(), "livestock_id": livestock_id, "created_at": utcnow()}
        return await self._insert("feeds", doc)

    async def update_feed(self, feed_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update("feeds", feed_id, prepare_inventory(changes))

    async def delete_feed(self, feed_id: str) -> bool:
        return await self._delete("feeds", feed_id)

    # Fertilizer inventory

    async def list_fertilizers(self, field_id: str) -> List[Dict[str, Any]]:
        return await self._find_many("fertilizers", {"field_id": field_id})

    async def get_fertilizer(self, fertilizer_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one("fertilizers", {"id": fertilizer_id})

    async def create_fertilizer(self, field_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**prepare_inventory(data), "id": new_id(), "field_id": field_id, "created_at": utcnow()}
        return await self._insert("fertilizers", doc)

    async def update_fertilizer(self, fertilizer_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update("fertilizers", fertilizer_id, prepare_inventory(changes))

    async def delete_fertilizer(self, fertilizer_id: str) -> bool:
        return await self._delete("fertilizers", fertilizer_id)


def get_storage() -> MongoStorage:
    """FastAPI dependency; tests override it with an in-memory store."""
    return MongoStorage(mongodb.get_database())
