from app.models.blog import Blog
from app.models.booking import Booking
from app.models.event import Event
from app.models.media_asset import MediaAsset
from app.models.order import Order
from app.models.product import Product
from app.models.review import ProductReview, PublicReview
from app.models.shop import Shop
from app.models.user import User

__all__ = [
    "User",
    "Shop",
    "Product",
    "ProductReview",
    "PublicReview",
    "Event",
    "Blog",
    "Order",
    "Booking",
    "MediaAsset",
]
