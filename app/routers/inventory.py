import logging
from fastapi import APIRouter, Depends, HTTPException, Response
from app.core.dependencies import require_user
from app.models.schemas import FeedResponse, FeedUpdate, FertilizerResponse, FertilizerUpdate
from app.services.database_service import MongoStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter(tags=["inventory"])


async def _owned_feed(storage: MongoStorage, feed_id: str, user_id: str):
    feed = await storage.get_feed(feed_id)
    if not feed:
        raise HTTPException(status_code=404, detail="Корм не найден")
    livestock = await storage.get_livestock(feed["livestock_id"])
    if not livestock or livestock["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="Доступ запрещен")
    return feed


async def _owned_fertilizer(storage: MongoStorage, fertilizer_id: str, user_id: str):
    fertilizer = await storage.get_fertilizer(fertilizer_id)
    if not fertilizer:
        raise HTTPException(status_code=404, detail="Удобрение не найдено")
    field = await storage.get_field(fertilizer["field_id"])
    if not field or field["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="Доступ запрещен")
    return fertilizer


@router.put("/feeds/{feed_id}", response_model=FeedResponse)
async def update_feed(
    feed_id: str,
    changes: FeedUpdate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    await _owned_feed(storage, feed_id, user_id)
    try:
        updated = await storage.update_feed(feed_id, changes.model_dump(exclude_none=True))
        if not updated:
            raise HTTPException(status_code=404, detail="Корм не найден")
        return updated

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating feed {feed_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при обновлении корма: {str(e)}")


@router.delete("/feeds/{feed_id}", status_code=204)
async def delete_feed(feed_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await _owned_feed(storage, feed_id, user_id)
    await storage.delete_feed(feed_id)
    return Response(status_code=204)


@router.put("/fertilizers/{fertilizer_id}", response_model=FertilizerResponse)
async def update_fertilizer(
    fertilizer_id: str,
    changes: FertilizerUpdate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    await _owned_fertilizer(storage, fertilizer_id, user_id)
    try:
        updated = await storage.update_fertilizer(fertilizer_id, changes.model_dump(exclude_none=True))
        if not updated:
            raise HTTPException(status_code=404, detail="Удобрение не найдено")
        return updated

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating fertilizer {fertilizer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при обновлении удобрения: {str(e)}")


@router.delete("/fertilizers/{fertilizer_id}", status_code=204)
async def delete_fertilizer(fertilizer_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await _owned_fertilizer(storage, fertilizer_id, user_id)
    await storage.delete_fertilizer(fertilizer_id)
    return Response(status_code=204)
