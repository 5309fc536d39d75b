"""Product reviews, order linkage and public (site) reviews.

A product keeps a derived ``ratings`` mean which is recomputed from the stored
reviews inside the same commit as the review change. The product row is
version-checked, so two writers racing on one product retry instead of
overwriting each other's mean.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.errors import (
    Forbidden,
    InvalidRating,
    InvalidVote,
    NotFound,
    OrderFlagUpdateError,
    ProductNotInOrder,
    ReviewConflictError,
    ValidationError,
)
from app.models.order import Order
from app.models.product import Product
from app.models.review import ProductReview, PublicReview
from app.models.user import User

logger = logging.getLogger(__name__)

VOTE_COLUMNS = {"up": "helpful_up", "down": "helpful_down"}


def check_rating(value) -> int:
    """Return ``value`` as an int in 1..5 or raise InvalidRating."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRating()
    try:
        as_int = int(value)
    except (ValueError, OverflowError):
        raise InvalidRating()
    if as_int != value or not 1 <= as_int <= 5:
        raise InvalidRating()
    return as_int


def mean_rating(ratings) -> float:
    ratings = list(ratings)
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


@dataclass
class OrderLine:
    order: Order
    product_id: str


async def validate_order_line(
    db: AsyncSession, order_id: uuid.UUID, product_id: uuid.UUID, reviewer_id: uuid.UUID
) -> OrderLine:
    order = await db.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")

    if settings.REVIEW_REQUIRE_ORDER_OWNER and order.user_id != reviewer_id:
        raise Forbidden("You can only review products from your own orders")

    key = str(product_id)
    if not any(str(item.get("product_id")) == key for item in order.cart or []):
        raise ProductNotInOrder()
    return OrderLine(order=order, product_id=key)


async def mark_reviewed(db: AsyncSession, line: OrderLine) -> None:
    line.order.cart = [
        {**item, "is_reviewed": True} if str(item.get("product_id")) == line.product_id else item
        for item in line.order.cart
    ]
    await db.commit()


async def submit_review(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    reviewer: User,
    rating,
    comment: str,
    order_id: uuid.UUID,
) -> Product:
    rating = check_rating(rating)
    if not isinstance(comment, str) or not comment.strip():
        raise ValidationError("Comment is required")
    reviewer_id, reviewer_name = reviewer.id, reviewer.name

    attempts = max(1, settings.REVIEW_WRITE_RETRIES)
    for attempt in range(1, attempts + 1):
        product = await db.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")
        line = await validate_order_line(db, order_id, product_id, reviewer_id)

        now = datetime.now(timezone.utc)
        try:
            result = await db.execute(
                select(ProductReview).where(
                    ProductReview.product_id == product.id,
                    ProductReview.reviewer_id == reviewer_id,
                )
            )
            review = result.scalar_one_or_none()
            if review:
                review.rating = rating
                review.comment = comment
                review.reviewer_name = reviewer_name
                review.created_at = now
            else:
                db.add(
                    ProductReview(
                        product_id=product.id,
                        reviewer_id=reviewer_id,
                        reviewer_name=reviewer_name,
                        rating=rating,
                        comment=comment,
                        created_at=now,
                    )
                )

            ratings = (
                await db.execute(select(ProductReview.rating).where(ProductReview.product_id == product.id))
            ).scalars().all()
            product.ratings = mean_rating(ratings)
            product.num_reviews = len(ratings)
            product.updated_at = now
            await db.commit()
        except (IntegrityError, StaleDataError) as e:
            await db.rollback()
            logger.info(
                "Concurrent review write on product %s (attempt %d/%d): %s",
                product_id, attempt, attempts, e.__class__.__name__,
            )
            continue
        break
    else:
        raise ReviewConflictError()

    try:
        await mark_reviewed(db, line)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Review on product %s saved but order %s not flagged: %s", product_id, order_id, e)
        raise OrderFlagUpdateError() from e

    return product


async def list_product_reviews(db: AsyncSession, product_id: uuid.UUID) -> list[ProductReview]:
    result = await db.execute(
        select(ProductReview)
        .where(ProductReview.product_id == product_id)
        .order_by(ProductReview.created_at.desc())
    )
    return list(result.scalars().all())


async def submit_public_review(db: AsyncSession, name: str | None, rating, comment: str | None) -> PublicReview:
    if not name or not comment or rating is None:
        raise ValidationError("Name, rating, and comment are required")
    rating = check_rating(rating)

    review = PublicReview(name=name, rating=rating, comment=comment)
    db.add(review)
    await db.commit()
    await db.refresh(review)
    return review


async def list_public_reviews(db: AsyncSession) -> list[PublicReview]:
    result = await db.execute(select(PublicReview).order_by(PublicReview.created_at.desc()))
    return list(result.scalars().all())


async def vote(db: AsyncSession, review_id: uuid.UUID, direction: str) -> PublicReview:
    column = VOTE_COLUMNS.get(direction) if isinstance(direction, str) else None
    if column is None:
        raise InvalidVote()

    result = await db.execute(
        update(PublicReview)
        .where(PublicReview.id == review_id)
        .values(**{column: getattr(PublicReview, column) + 1})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Review not found")
    await db.commit()

    return await db.get(PublicReview, review_id, populate_existing=True)
