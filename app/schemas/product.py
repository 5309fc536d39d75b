import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

from app.schemas.common import MediaItem, split_tags


class ProductCreateRequest(BaseModel):
    shop_id: uuid.UUID | None = None
    name: str
    description: str
    category: str | None = None
    tags: list[str] = []
    original_price: float | None = None
    discount_price: float | None = None
    stock: int = 0
    location: str | None = None
    details: list[str] = []
    images: Any = None
    videos: Any = None

    normalize_tags = field_validator("tags", mode="before")(split_tags)

    @field_validator("details", mode="before")
    @classmethod
    def _details_list(cls, value):
        return value if isinstance(value, list) else []


class ProductItem(BaseModel):
    id: uuid.UUID
    shop_id: uuid.UUID
    shop_name: str
    name: str
    description: str
    category: str | None = None
    tags: list[str] = []
    original_price: float | None = None
    discount_price: float | None = None
    stock: int = 0
    location: str
    details: list[str] = []
    media: list[MediaItem] = []
    ratings: float = 0.0
    num_reviews: int = 0
    sold_out: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductReviewItem(BaseModel):
    id: uuid.UUID
    reviewer_id: uuid.UUID
    reviewer_name: str | None = None
    rating: int
    comment: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductDetail(ProductItem):
    reviews: list[ProductReviewItem] = []


class ProductResponse(BaseModel):
    success: bool = True
    product: ProductDetail


class ProductListResponse(BaseModel):
    success: bool = True
    products: list[ProductItem]
