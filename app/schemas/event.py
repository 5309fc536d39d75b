import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

from app.schemas.common import MediaItem, split_tags


class EventCreateRequest(BaseModel):
    shop_id: uuid.UUID | None = None
    name: str
    description: str
    category: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str | None = None
    tags: list[str] = []
    original_price: float | None = None
    discount_price: float | None = None
    stock: int | None = None
    images: Any = None

    normalize_tags = field_validator("tags", mode="before")(split_tags)


class EventItem(BaseModel):
    id: uuid.UUID
    shop_id: uuid.UUID
    shop_name: str
    name: str
    description: str
    category: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str
    tags: list[str] = []
    original_price: float = 0
    discount_price: float | None = None
    stock: int | None = None
    media: list[MediaItem] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class EventResponse(BaseModel):
    success: bool = True
    event: EventItem


class EventListResponse(BaseModel):
    success: bool = True
    events: list[EventItem]
