from typing import Any, Dict
from fastapi import Depends, HTTPException, Request
from app.core import config
from app.services.database_service import MongoStorage, get_storage


async def require_user(request: Request, storage: MongoStorage = Depends(get_storage)) -> str:
    """Resolve the session cookie to a user id or raise 401."""
    session_id = request.cookies.get(config.SESSION_COOKIE_NAME)
    user_id = await storage.get_session_user_id(session_id) if session_id else None
    if not user_id:
        raise HTTPException(status_code=401, detail="Необходима авторизация")
    return user_id


async def get_owned_field(storage: MongoStorage, field_id: str, user_id: str) -> Dict[str, Any]:
    field = await storage.get_field(field_id)
    if not field or field["user_id"] != user_id:
        raise HTTPException(status_code=404, detail="Поле не найдено")
    return field


async def get_owned_livestock(storage: MongoStorage, livestock_id: str, user_id: str) -> Dict[str, Any]:
    livestock = await storage.get_livestock(livestock_id)
    if not livestock or livestock["user_id"] != user_id:
        raise HTTPException(status_code=404, detail="Животные не найдены")
    return livestock
