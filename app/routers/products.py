import uuid

from fastapi import APIRouter, Depends
from fastapi import status as http_status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, get_media_store, require_role
from app.core.errors import Forbidden, NotFound, ValidationError
from app.models.product import Product
from app.models.review import ProductReview
from app.models.shop import Shop
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.product import (
    ProductCreateRequest,
    ProductDetail,
    ProductItem,
    ProductListResponse,
    ProductResponse,
    ProductReviewItem,
)
from app.schemas.review import CreateReviewRequest, CreateReviewResponse, ProductReviewListResponse
from app.services.entity_media import delete_with_media, ensure_unclaimed, persist_with_media
from app.services.media_input import normalize_media
from app.services.media_store import MediaStore, resolve_media
from app.services.reviews import list_product_reviews, submit_review

router = APIRouter(prefix="/products", tags=["Products"])

PRODUCT_FOLDERS = {"image": "products/images", "video": "products/videos"}


async def _get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found with this id")
    return product


async def _product_detail(db: AsyncSession, product: Product) -> ProductDetail:
    reviews = await list_product_reviews(db, product.id)
    return ProductDetail(
        **ProductItem.model_validate(product).model_dump(),
        reviews=[ProductReviewItem.model_validate(r) for r in reviews],
    )


async def _delete_product(db: AsyncSession, store: MediaStore, product: Product) -> None:
    await delete_with_media(
        db,
        store,
        product,
        dependents=(delete(ProductReview).where(ProductReview.product_id == product.id),),
    )


@router.post(
    "",
    response_model=ProductResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create product",
    description="`images` / `videos` accept descriptors from `/products/upload-media`, raw data URIs or URLs, "
    "or the same as a JSON-encoded string.",
)
async def create_product(
    body: ProductCreateRequest,
    _user: User = Depends(require_role("seller", "admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    if not body.location or not body.location.strip():
        raise ValidationError("Product location is required")
    if not body.shop_id:
        raise ValidationError("Shop ID is required")

    shop = await db.get(Shop, body.shop_id)
    if not shop:
        raise ValidationError("Invalid Shop ID")

    items = normalize_media(body.images, "image") + normalize_media(body.videos, "video")
    await ensure_unclaimed(db, items)
    media, uploaded = await resolve_media(store, items, PRODUCT_FOLDERS)

    product = Product(
        shop_id=shop.id,
        shop_name=shop.name,
        name=body.name,
        description=body.description,
        category=body.category,
        tags=body.tags,
        original_price=body.original_price,
        discount_price=body.discount_price,
        stock=body.stock,
        location=body.location.strip(),
        details=body.details,
        media=[m.to_dict() for m in media],
    )
    await persist_with_media(db, store, product, uploaded)

    return ProductResponse(product=await _product_detail(db, product))


@router.get("", response_model=ProductListResponse, summary="All products")
async def list_products(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Product).order_by(Product.created_at.desc()))
    return ProductListResponse(products=[ProductItem.model_validate(p) for p in result.scalars().all()])


@router.get("/admin/all", response_model=ProductListResponse, summary="All products (admin)")
async def admin_list_products(
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Product).order_by(Product.created_at.desc()))
    return ProductListResponse(products=[ProductItem.model_validate(p) for p in result.scalars().all()])


@router.get("/shop/{shop_id}", response_model=ProductListResponse, summary="Products of a shop")
async def list_shop_products(shop_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Product).where(Product.shop_id == shop_id).order_by(Product.created_at.desc())
    )
    return ProductListResponse(products=[ProductItem.model_validate(p) for p in result.scalars().all()])


@router.get("/{product_id}", response_model=ProductResponse, summary="Product detail")
async def get_product(product_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    product = await _get_product(db, product_id)
    return ProductResponse(product=await _product_detail(db, product))


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete own product",
    description="Removes the product's media from the store (best effort), then the product and its reviews.",
)
async def delete_shop_product(
    product_id: uuid.UUID,
    user: User = Depends(require_role("seller", "admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    product = await _get_product(db, product_id)
    if user.role != "admin":
        shop = await db.get(Shop, product.shop_id)
        if shop is None or shop.owner_id != user.id:
            raise Forbidden("You can only delete products of your own shop")

    await _delete_product(db, store, product)
    return MessageResponse(message="Product deleted successfully!")


@router.delete("/admin/{product_id}", response_model=MessageResponse, summary="Delete any product (admin)")
async def admin_delete_product(
    product_id: uuid.UUID,
    _user: User = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    product = await _get_product(db, product_id)
    await _delete_product(db, store, product)
    return MessageResponse(message="Product deleted by admin successfully!")


@router.put(
    "/{product_id}/reviews",
    response_model=CreateReviewResponse,
    summary="Review a product",
    description="One review per user and product; a second submission edits the first. "
    "The product must be in the given order, which is then flagged as reviewed.",
)
async def create_product_review(
    product_id: uuid.UUID,
    body: CreateReviewRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    product = await submit_review(
        db,
        product_id=product_id,
        reviewer=user,
        rating=body.rating,
        comment=body.comment,
        order_id=body.order_id,
    )
    return CreateReviewResponse(product=await _product_detail(db, product))


@router.get("/{product_id}/reviews", response_model=ProductReviewListResponse, summary="Reviews of a product")
async def get_product_reviews(product_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_product(db, product_id)
    reviews = await list_product_reviews(db, product_id)
    return ProductReviewListResponse(reviews=[ProductReviewItem.model_validate(r) for r in reviews])
