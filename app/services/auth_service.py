import logging
from datetime import timedelta
from typing import Any, Dict
import bcrypt
from pymongo.errors import DuplicateKeyError
from app.core import config
from app.models.schemas import UserCreate, UserLogin
from app.services.database_service import utcnow

logger = logging.getLogger(__name__)

DUPLICATE_USERNAME = "Пользователь с таким именем уже существует"
BAD_CREDENTIALS = "Неверное имя пользователя или пароль"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # malformed hash in storage
        return False


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in doc.items() if key != "password"}


async def register_user(storage, data: UserCreate) -> Dict[str, Any]:
    if await storage.get_user_by_username(data.username):
        raise ValueError(DUPLICATE_USERNAME)
    try:
        user = await storage.create_user({
            **data.model_dump(exclude_none=True),
            "password": hash_password(data.password),
        })
    except DuplicateKeyError:
        logger.warning(f"Concurrent registration for username {data.username}")
        raise ValueError(DUPLICATE_USERNAME)
    logger.info(f"Registered user {user['username']} ({user['id']})")
    return public_user(user)


async def login_user(storage, credentials: UserLogin) -> Dict[str, Any]:
    user = await storage.get_user_by_username(credentials.username)
    if not user or not verify_password(credentials.password, user.get("password", "")):
        raise ValueError(BAD_CREDENTIALS)
    return public_user(user)


async def start_session(storage, user_id: str) -> str:
    expires_at = utcnow() + timedelta(days=config.SESSION_MAX_AGE_DAYS)
    return await storage.create_session(user_id, expires_at)
