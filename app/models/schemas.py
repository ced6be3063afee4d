from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Users and sessions

class UserCreate(CamelModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: Optional[str] = None

class UserLogin(CamelModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)

class ProfileUpdate(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    avatar_url: Optional[str] = None

class UserResponse(CamelModel):
    id: str
    username: str
    role: str = "farmer"
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime

class UserEnvelope(CamelModel):
    user: UserResponse


# Fields and livestock

class FieldCreate(CamelModel):
    name: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    area: float = Field(gt=0)
    crop_type: str = Field(min_length=1)
    status: str = "active"

class FieldUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    area: Optional[float] = Field(default=None, gt=0)
    crop_type: Optional[str] = Field(default=None, min_length=1)
    status: Optional[str] = None

class FieldResponse(CamelModel):
    id: str
    user_id: str
    name: str
    latitude: float
    longitude: float
    area: float
    crop_type: str
    status: str = "active"
    created_at: datetime

class LivestockCreate(CamelModel):
    type: str = Field(min_length=1)
    count: int = Field(ge=0)
    status: str = "active"

class LivestockUpdate(CamelModel):
    type: Optional[str] = Field(default=None, min_length=1)
    count: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None

class LivestockResponse(CamelModel):
    id: str
    user_id: str
    type: str
    count: int
    status: str = "active"
    created_at: datetime


# Inventories

# stored as 2-place strings; keeps quantize inside the default decimal precision
MAX_AMOUNT = Decimal("1000000000000")

class FeedCreate(CamelModel):
    name: str = Field(min_length=1)
    quantity: Decimal = Field(ge=0, le=MAX_AMOUNT)
    unit: str = "кг"
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)

class FeedUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)
    unit: Optional[str] = None
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)

class FeedResponse(CamelModel):
    id: str
    livestock_id: str
    name: str
    quantity: str
    unit: str
    price_per_unit: Optional[str] = None
    created_at: datetime

class FertilizerCreate(FeedCreate):
    application_date: Optional[datetime] = None

class FertilizerUpdate(FeedUpdate):
    application_date: Optional[datetime] = None

class FertilizerResponse(CamelModel):
    id: str
    field_id: str
    name: str
    quantity: str
    unit: str
    price_per_unit: Optional[str] = None
    application_date: Optional[datetime] = None
    created_at: datetime


# Chat

class ChatRequest(CamelModel):
    content: str = Field(min_length=1)

class ChatMessageResponse(CamelModel):
    id: str
    user_id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime

class ChatExchangeResponse(CamelModel):
    user_message: ChatMessageResponse
    assistant_message: ChatMessageResponse


# AI results

class FieldAnalysis(CamelModel):
    summary: str
    recommendations: List[str]
    yield_optimization: List[str]
    risks: List[str]
    timeline: str

class FeedLine(CamelModel):
    ingredient: str
    percentage: int = Field(ge=0, le=100)
    amount_per_animal: str
    total_amount: str

class LivestockFeedingPlan(CamelModel):
    summary: str
    daily_feed: List[FeedLine]
    feeding_schedule: List[str]
    nutrition_tips: List[str]
    cost_savings: List[str]

class CategoryRecommendation(CamelModel):
    title: str
    recommendations: List[str]

class FieldRecommendations(CamelModel):
    fertilizer: CategoryRecommendation
    soil: CategoryRecommendation
    pesticides: CategoryRecommendation

class FeedAnalysis(CamelModel):
    summary: str
    nutrition_balance: List[str]
    cost_optimization: List[str]
    warnings: List[str]
    suggestions: List[str]

class FertilizerAnalysis(CamelModel):
    summary: str
    effectiveness: List[str]
    cost_optimization: List[str]
    warnings: List[str]
    suggestions: List[str]

class FieldCreateResponse(CamelModel):
    field: FieldResponse
    analysis: FieldAnalysis

class LivestockCreateResponse(CamelModel):
    livestock: LivestockResponse
    feeding_plan: LivestockFeedingPlan


# Weather

class WeatherData(CamelModel):
    temperature: int
    feels_like: int
    humidity: int
    pressure: int
    wind_speed: float
    description: str
    icon: str
    location: str
