import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response
from app.core import config
from app.core.dependencies import get_owned_field, require_user
from app.models.schemas import (
    CategoryRecommendation,
    FertilizerAnalysis,
    FertilizerCreate,
    FertilizerResponse,
    FieldAnalysis,
    FieldCreate,
    FieldCreateResponse,
    FieldRecommendations,
    FieldResponse,
    FieldUpdate,
)
from app.services import ai_analysis
from app.services.database_service import MongoStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/fields", tags=["fields"])


@router.get("", response_model=List[FieldResponse])
async def list_fields(user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    return await storage.list_fields(user_id)


@router.post("", response_model=FieldCreateResponse, status_code=201)
async def create_field(
    field: FieldCreate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    """
    Save a field and attach a first AI analysis of it.
    The analysis never fails the request; on upstream trouble a generic one is returned.
    """
    try:
        created = await storage.create_field(user_id, field.model_dump())
        analysis = await ai_analysis.analyze_field(created)
        return {"field": created, "analysis": analysis}

    except Exception as e:
        logger.error(f"Error creating field: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при создании поля: {str(e)}")


@router.patch("/{field_id}", response_model=FieldResponse)
async def update_field(
    field_id: str,
    changes: FieldUpdate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    await get_owned_field(storage, field_id, user_id)
    try:
        updated = await storage.update_field(field_id, changes.model_dump(exclude_none=True))
        if not updated:
            raise HTTPException(status_code=404, detail="Поле не найдено")
        return updated

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating field {field_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при обновлении поля: {str(e)}")


@router.delete("/{field_id}", status_code=204)
async def delete_field(field_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await get_owned_field(storage, field_id, user_id)
    await storage.delete_field(field_id)
    return Response(status_code=204)


@router.post("/{field_id}/analyze", response_model=FieldAnalysis)
async def analyze_field(field_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    field = await get_owned_field(storage, field_id, user_id)
    return await ai_analysis.analyze_field(field)


@router.get("/{field_id}/recommendations", response_model=FieldRecommendations)
async def get_recommendations(field_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    field = await get_owned_field(storage, field_id, user_id)
    return await ai_analysis.get_all_field_recommendations(field)


@router.get("/{field_id}/recommendations/{category}", response_model=CategoryRecommendation)
async def get_category_recommendations(
    field_id: str,
    category: str,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    if category not in config.FIELD_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Неизвестная категория: {category}")
    field = await get_owned_field(storage, field_id, user_id)
    return await ai_analysis.get_field_recommendations(field, category)


@router.get("/{field_id}/fertilizers", response_model=List[FertilizerResponse])
async def list_fertilizers(field_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    await get_owned_field(storage, field_id, user_id)
    return await storage.list_fertilizers(field_id)


@router.post("/{field_id}/fertilizers", response_model=FertilizerResponse, status_code=201)
async def create_fertilizer(
    field_id: str,
    fertilizer: FertilizerCreate,
    user_id: str = Depends(require_user),
    storage: MongoStorage = Depends(get_storage),
):
    await get_owned_field(storage, field_id, user_id)
    try:
        return await storage.create_fertilizer(field_id, fertilizer.model_dump())

    except Exception as e:
        logger.error(f"Error creating fertilizer for field {field_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Ошибка при добавлении удобрения: {str(e)}")


@router.post("/{field_id}/analyze-fertilizers", response_model=FertilizerAnalysis)
async def analyze_fertilizers(field_id: str, user_id: str = Depends(require_user), storage: MongoStorage = Depends(get_storage)):
    field = await get_owned_field(storage, field_id, user_id)
    fertilizers = await storage.list_fertilizers(field_id)
    return await ai_analysis.analyze_fertilizer_data(field, fertilizers)
