from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.common import MessageResponse
from app.schemas.review import (
    PublicReviewItem,
    PublicReviewListResponse,
    PublicReviewRequest,
    VoteRequest,
    VoteResponse,
)
from app.services import reviews as review_service

router = APIRouter(prefix="/public-reviews", tags=["Public reviews"])


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Leave a site review",
    description="Anonymous review of the site. `name`, `rating` (1-5) and `comment` are required.",
)
async def create_public_review(body: PublicReviewRequest, db: AsyncSession = Depends(get_db)):
    await review_service.submit_public_review(db, body.name, body.rating, body.comment)
    return MessageResponse(message="Thank you for your review!")


@router.get("", response_model=PublicReviewListResponse, summary="All site reviews")
async def list_public_reviews(db: AsyncSession = Depends(get_db)):
    reviews = await review_service.list_public_reviews(db)
    return PublicReviewListResponse(reviews=[PublicReviewItem.model_validate(r) for r in reviews])


@router.post(
    "/vote",
    response_model=VoteResponse,
    summary="Vote on a review",
    description="`vote` is `up` or `down`; increments the matching helpful counter.",
)
async def vote_helpful(body: VoteRequest, db: AsyncSession = Depends(get_db)):
    review = await review_service.vote(db, body.review_id, body.vote)
    return VoteResponse(helpful_up=review.helpful_up, helpful_down=review.helpful_down)
