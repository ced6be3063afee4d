"""
Pytest configuration and fixtures for AgriAI tests.
"""

import copy
import os
import pytest
from datetime import datetime
from typing import Any, Dict, List, Optional
from unittest.mock import patch

# Set test environment before importing app modules
os.environ["APP_ENV"] = "test"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["OPENWEATHER_API_KEY"] = "test-weather-key"
os.environ["PROMPT_RESPONSE_FORMAT"] = "json"

from fastapi.testclient import TestClient

from app.main import app
from app.services.database_service import get_storage, new_id, prepare_inventory, utcnow


class InMemoryStorage:
    """
    Drop-in replacement for MongoStorage backed by dicts.

    Failure injection for the rebalancing paths:
    * failing_feed_ids: update_feed raises for these ids
    * vanished_feed_ids: update_feed returns None for these ids
    * fail_list_feeds: list_feeds raises
    * fail_livestock_update_on_call: the n-th update_livestock call (1-based) raises
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: {} for name in ("users", "sessions", "fields", "livestock", "chat_messages", "feeds", "fertilizers")
        }
        self.calls: List[str] = []
        self.failing_feed_ids = set()
        self.vanished_feed_ids = set()
        self.fail_list_feeds = False
        self.fail_livestock_update_on_call: Optional[int] = None
        self._livestock_updates = 0

    def _insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        self.collections[collection][doc["id"]] = copy.deepcopy(doc)
        return copy.deepcopy(doc)

    def _get(self, collection: str, item_id: str) -> Optional[Dict[str, Any]]:
        doc = self.collections[collection].get(item_id)
        return copy.deepcopy(doc) if doc else None

    def _where(self, collection: str, **query) -> List[Dict[str, Any]]:
        docs = [
            copy.deepcopy(doc) for doc in self.collections[collection].values()
            if all(doc.get(k) == v for k, v in query.items())
        ]
        return sorted(docs, key=lambda d: d["created_at"])

    def _update(self, collection: str, item_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        doc = self.collections[collection].get(item_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(changes))
        return copy.deepcopy(doc)

    def _delete(self, collection: str, item_id: str) -> bool:
        return self.collections[collection].pop(item_id, None) is not None

    # Users

    async def get_user(self, user_id):
        return self._get("users", user_id)

    async def get_user_by_username(self, username):
        found = self._where("users", username=username)
        return found[0] if found else None

    async def create_user(self, data):
        return self._insert("users", {"role": "farmer", **data, "id": new_id(), "created_at": utcnow()})

    async def update_user(self, user_id, changes):
        return self._update("users", user_id, changes)

    # Sessions

    async def create_session(self, user_id, expires_at):
        session_id = new_id()
        self.collections["sessions"][session_id] = {"id": session_id, "user_id": user_id, "expires_at": expires_at}
        return session_id

    async def get_session_user_id(self, session_id):
        session = self.collections["sessions"].get(session_id)
        if session and session["expires_at"] > utcnow():
            return session["user_id"]
        return None

    async def delete_session(self, session_id):
        self.collections["sessions"].pop(session_id, None)

    # Fields

    async def list_fields(self, user_id):
        return self._where("fields", user_id=user_id)

    async def get_field(self, field_id):
        return self._get("fields", field_id)

    async def create_field(self, user_id, data):
        return self._insert("fields", {**data, "id": new_id(), "user_id": user_id, "created_at": utcnow()})

    async def update_field(self, field_id, changes):
        return self._update("fields", field_id, changes)

    async def delete_field(self, field_id):
        deleted = self._delete("fields", field_id)
        for fertilizer in self._where("fertilizers", field_id=field_id):
            self._delete("fertilizers", fertilizer["id"])
        return deleted

    # Livestock

    async def list_livestock(self, user_id):
        return self._where("livestock", user_id=user_id)

    async def get_livestock(self, livestock_id):
        return self._get("livestock", livestock_id)

    async def create_livestock(self, user_id, data):
        return self._insert("livestock", {**data, "id": new_id(), "user_id": user_id, "created_at": utcnow()})

    async def update_livestock(self, livestock_id, changes):
        self.calls.append("update_livestock")
        self._livestock_updates += 1
        if self._livestock_updates == self.fail_livestock_update_on_call:
            raise RuntimeError("database unavailable")
        return self._update("livestock", livestock_id, changes)

    async def delete_livestock(self, livestock_id):
        deleted = self._delete("livestock", livestock_id)
        for feed in self._where("feeds", livestock_id=livestock_id):
            self._delete("feeds", feed["id"])
        return deleted

    # Chat

    async def list_chat_messages(self, user_id, limit=50):
        return self._where("chat_messages", user_id=user_id)[-limit:]

    async def create_chat_message(self, user_id, role, content):
        return self._insert("chat_messages", {
            "id": new_id(), "user_id": user_id, "role": role, "content": content, "created_at": utcnow(),
        })

    async def clear_chat_messages(self, user_id):
        messages = self._where("chat_messages", user_id=user_id)
        for message in messages:
            self._delete("chat_messages", message["id"])
        return len(messages)

    # Feed inventory

    async def list_feeds(self, livestock_id):
        self.calls.append("list_feeds")
        if self.fail_list_feeds:
            raise RuntimeError("feeds collection unavailable")
        return self._where("feeds", livestock_id=livestock_id)

    async def get_feed(self, feed_id):
        return self._get("feeds", feed_id)

    async def create_feed(self, livestock_id, data):
        return self._insert("feeds", {
            **prepare_inventory(data), "id": new_id(), "livestock_id": livestock_id, "created_at": utcnow(),
        })

    async def update_feed(self, feed_id, changes):
        self.calls.append("update_feed")
        if feed_id in self.failing_feed_ids:
            raise RuntimeError(f"write conflict on {feed_id}")
        if feed_id in self.vanished_feed_ids:
            return None
        return self._update("feeds", feed_id, prepare_inventory(changes))

    async def delete_feed(self, feed_id):
        return self._delete("feeds", feed_id)

    # Fertilizer inventory

    async def list_fertilizers(self, field_id):
        return self._where("fertilizers", field_id=field_id)

    async def get_fertilizer(self, fertilizer_id):
        return self._get("fertilizers", fertilizer_id)

    async def create_fertilizer(self, field_id, data):
        return self._insert("fertilizers", {
            **prepare_inventory(data), "id": new_id(), "field_id": field_id, "created_at": utcnow(),
        })

    async def update_fertilizer(self, fertilizer_id, changes):
        return self._update("fertilizers", fertilizer_id, prepare_inventory(changes))

    async def delete_fertilizer(self, fertilizer_id):
        return self._delete("fertilizers", fertilizer_id)


@pytest.fixture
def storage():
    """Empty in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def mock_gemini():
    """Patch the Gemini completion call; set .return_value or .side_effect per test."""
    with patch("app.services.gemini_service.generate_text") as mock_generate:
        mock_generate.return_value = ""
        yield mock_generate


@pytest.fixture
def client(storage, mock_gemini):
    """TestClient wired to the in-memory storage, not logged in."""
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    """TestClient holding a session cookie for user 'farmer1'."""
    response = client.post("/auth/register", json={"username": "farmer1", "password": "secret123"})
    assert response.status_code == 201
    return client


@pytest.fixture
def sample_field():
    """Field document as stored."""
    return {
        "id": "field-1",
        "user_id": "user-1",
        "name": "Северное поле",
        "latitude": 51.17,
        "longitude": 71.45,
        "area": 10.0,
        "crop_type": "Пшеница",
        "status": "active",
        "created_at": datetime(2024, 3, 1, 8, 0),
    }


@pytest.fixture
def sample_livestock():
    """Livestock document as stored."""
    return {
        "id": "herd-1",
        "user_id": "user-1",
        "type": "Коровы",
        "count": 10,
        "status": "active",
        "created_at": datetime(2024, 3, 1, 8, 0),
    }
