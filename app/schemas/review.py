import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.schemas.product import ProductDetail, ProductReviewItem


class CreateReviewRequest(BaseModel):
    rating: Any = None
    comment: str = ""
    order_id: uuid.UUID


class CreateReviewResponse(BaseModel):
    success: bool = True
    message: str = "Reviewed successfully!"
    product: ProductDetail


class ProductReviewListResponse(BaseModel):
    success: bool = True
    reviews: list[ProductReviewItem]


class PublicReviewRequest(BaseModel):
    name: str | None = None
    rating: Any = None
    comment: str | None = None


class PublicReviewItem(BaseModel):
    id: uuid.UUID
    name: str
    rating: int
    comment: str
    helpful_up: int = 0
    helpful_down: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class PublicReviewListResponse(BaseModel):
    success: bool = True
    reviews: list[PublicReviewItem]


class VoteRequest(BaseModel):
    review_id: uuid.UUID
    vote: Any = None


class VoteResponse(BaseModel):
    success: bool = True
    message: str = "Vote recorded"
    helpful_up: int
    helpful_down: int
