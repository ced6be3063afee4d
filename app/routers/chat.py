import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response
from app.core import config
from app.core.dependencies import require_user
from app.models.schemas import ChatExchangeResponse, ChatMessageResponse, ChatRequest
from app.services import ai_analysis
from app.services.database_service import MongoStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/history", response_model=List[ChatMessageResponse])
async def get_history(user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    return await storage.list_chat_messages(user_id, config.CHAT_HISTORY_LIMIT)


@router.delete("/history", status_code=204)
async def clear_history(user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await storage.clear_chat_messages(user_id)
    return Response(status_code=204)


@router.post("/message", response_model=ChatExchangeResponse)
async def send_message(
    message: ChatRequest,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    """
    Store the user's message, ask the advisor with the recent history and the
    user's farm as context, store and return both sides of the exchange.
    """
    try:
        user_message = await storage.create_chat_message(user_id, "user", message.content)
        history = await storage.list_chat_messages(user_id, config.CHAT_HISTORY_LIMIT)
        user_context = {
            "fields": await storage.list_fields(user_id),
            "livestock": await storage.list_livestock(user_id),
        }

        reply = await ai_analysis.chat_with_ai(history, user_context)
        assistant_message = await storage.create_chat_message(user_id, "assistant", reply)

        return {"user_message": user_message, "assistant_message": assistant_message}

    except Exception as e:
        logger.error(f"Error in chat exchange: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
