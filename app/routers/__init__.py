from fastapi import APIRouter

from app.routers import blogs, bookings, events, products, reviews, upload

api_router = APIRouter()

api_router.include_router(upload.router)
api_router.include_router(products.router)
api_router.include_router(events.router)
api_router.include_router(blogs.router)
api_router.include_router(bookings.router)
api_router.include_router(reviews.router)
