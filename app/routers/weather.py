import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from app.core.dependencies import require_user
from app.models.schemas import WeatherData
from app.services import weather_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("", response_model=WeatherData)
async def get_weather(
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    user_id: str = Depends(require_user),
):
    if latitude is None or longitude is None:
        raise HTTPException(status_code=400, detail="Необходимо указать координаты")
    try:
        return await asyncio.to_thread(weather_service.get_weather_by_coordinates, latitude, longitude)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
