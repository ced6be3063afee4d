import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response
from app.core.dependencies import get_owned_livestock, require_user
from app.models.schemas import (
    FeedAnalysis,
    FeedCreate,
    FeedResponse,
    LivestockCreate,
    LivestockCreateResponse,
    LivestockFeedingPlan,
    LivestockResponse,
    LivestockUpdate,
)
from app.services import ai_analysis
from app.services.database_service import MongoStorage, get_storage
from app.services.inventory_rebalancer import InventoryRebalanceError, update_livestock_with_rebalance

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/livestock", tags=["livestock"])


@router.get("", response_model=List[LivestockResponse])
async def list_livestock(user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    return await storage.list_livestock(user_id)


@router.post("", response_model=LivestockCreateResponse, status_code=201)
async def create_livestock(
    livestock: LivestockCreate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    try:
        created = await storage.create_livestock(user_id, livestock.model_dump())
        feeding_plan = await ai_analysis.generate_feeding_plan(created)
        return {"livestock": created, "feeding_plan": feeding_plan}

    except Exception as e:
        logger.error(f"Error creating livestock: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при добавлении животных: {str(e)}")


@router.patch("/{livestock_id}", response_model=LivestockResponse)
async def update_livestock(
    livestock_id: str,
    changes: LivestockUpdate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    """
    Update a livestock group. A lower head count scales the group's feed
    inventory down proportionally; if any feed cannot be adjusted the count
    change is rolled back and a 500 lists the failed feeds.
    """
    livestock = await get_owned_livestock(storage, livestock_id, user_id)
    try:
        updated = await update_livestock_with_rebalance(storage, livestock, changes.model_dump(exclude_none=True))
        if not updated:
            raise HTTPException(status_code=404, detail="Животные не найдены")
        return updated

    except HTTPException:
        raise
    except InventoryRebalanceError as e:
        outcome = "Operation rolled back." if e.rolled_back else "Attempted rollback."
        raise HTTPException(
            status_code=500,
            detail={
                "error": f"Failed to adjust feed quantities after livestock count change. {outcome}",
                "details": e.errors,
            },
        )
    except Exception as e:
        logger.error(f"Error updating livestock {livestock_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при обновлении животных: {str(e)}")


@router.delete("/{livestock_id}", status_code=204)
async def delete_livestock(livestock_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await get_owned_livestock(storage, livestock_id, user_id)
    await storage.delete_livestock(livestock_id)
    return Response(status_code=204)


@router.post("/{livestock_id}/feeding-plan", response_model=LivestockFeedingPlan)
async def feeding_plan(livestock_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    livestock = await get_owned_livestock(storage, livestock_id, user_id)
    return await ai_analysis.generate_feeding_plan(livestock)


@router.get("/{livestock_id}/feeds", response_model=List[FeedResponse])
async def list_feeds(livestock_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await get_owned_livestock(storage, livestock_id, user_id)
    return await storage.list_feeds(livestock_id)


@router.post("/{livestock_id}/feeds", response_model=FeedResponse, status_code=201)
async def create_feed(
    livestock_id: str,
    feed: FeedCreate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    await get_owned_livestock(storage, livestock_id, user_id)
    try:
        return await storage.create_feed(livestock_id, feed.model_dump())

    except Exception as e:
        logger.error(f"Error creating feed for livestock {livestock_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при добавлении корма: {str(e)}")


@router.post("/{livestock_id}/analyze-feeds", response_model=FeedAnalysis)
async def analyze_feeds(livestock_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    livestock = await get_owned_livestock(storage, livestock_id, user_id)
    feeds = await storage.list_feeds(livestock_id)
    return await ai_analysis.analyze_feeding_data(livestock, feeds)
