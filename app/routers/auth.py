import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from app.core import config
from app.core.dependencies import require_user
from app.models.schemas import ProfileUpdate, UserCreate, UserEnvelope, UserLogin
from app.services import auth_service
from app.services.database_service import MongoStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, session_id: str):
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        max_age=60 * 60 * 24 * config.SESSION_MAX_AGE_DAYS,
        samesite="lax",
        secure=config.SESSION_COOKIE_SECURE,
    )


@router.post("/register", response_model=UserEnvelope, status_code=201)
async def register(user: UserCreate, response: Response, storage: MongoStorage = Depends(get_storage)):
    """
    Create an account and log it in right away.
    Usernames are unique; a taken name is a 400.
    """
    try:
        created = await auth_service.register_user(storage, user)
        session_id = await auth_service.start_session(storage, created["id"])
        _set_session_cookie(response, session_id)
        return {"user": created}

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error registering user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при регистрации: {str(e)}")


@router.post("/login", response_model=UserEnvelope)
async def login(credentials: UserLogin, response: Response, storage: MongoStorage = Depends(get_storage)):
    try:
        user = await auth_service.login_user(storage, credentials)
        session_id = await auth_service.start_session(storage, user["id"])
        _set_session_cookie(response, session_id)
        return {"user": user}

    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error(f"Error logging in: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при входе: {str(e)}")


@router.post("/logout")
async def logout(request: Request, response: Response, storage: MongoStorage = Depends(get_storage)):
    session_id = request.cookies.get(config.SESSION_COOKIE_NAME)
    if session_id:
        await storage.delete_session(session_id)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me", response_model=UserEnvelope)
async def me(user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    user = await storage.get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Необходима авторизация")
    return {"user": auth_service.public_user(user)}


@router.patch("/profile", response_model=UserEnvelope)
async def update_profile(
    profile: ProfileUpdate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    try:
        user = await storage.update_user(user_id, profile.model_dump(exclude_unset=True))
        if not user:
            raise HTTPException(status_code=404, detail="Пользователь не найден")
        return {"user": auth_service.public_user(user)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating profile: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при обновлении профиля: {str(e)}")
