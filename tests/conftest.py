import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_app.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MAIL_API_URL", "")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from app.core.database import Base, get_db  # noqa: E402
from app.core.deps import get_media_store  # noqa: E402
from app.core.errors import MediaDeleteError, MediaUploadError  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models.media_asset import MediaAsset  # noqa: E402
from app.models.order import Order  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.models.shop import Shop  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.media_input import MediaDescriptor  # noqa: E402
from app.services.media_store import MediaStore  # noqa: E402


class FakeMediaStore(MediaStore):
    """In-memory media store. Payloads in ``fail_uploads`` and ids in ``fail_deletes`` fail."""

    def __init__(self):
        self.stored: dict[str, MediaDescriptor] = {}
        self.upload_calls: list[tuple[str, str]] = []
        self.delete_calls: list[str] = []
        self.fail_uploads: set = set()
        self.fail_deletes: set[str] = set()

    async def upload(self, payload, kind, folder, filename=None):
        self.upload_calls.append((folder, kind))
        key = payload if isinstance(payload, str) else filename
        if key in self.fail_uploads:
            raise MediaUploadError(f"File upload failed: {key}")

        external_id = f"{folder}/{uuid.uuid4().hex[:12]}"
        descriptor = MediaDescriptor(external_id=external_id, url=f"https://media.test/{external_id}", kind=kind)
        self.stored[external_id] = descriptor
        return descriptor

    async def destroy(self, external_id, kind):
        self.delete_calls.append(external_id)
        if external_id in self.fail_deletes:
            raise MediaDeleteError("media store unavailable")
        self.stored.pop(external_id, None)


TEST_DB_URL = os.getenv("TEST_DATABASE_URL")


@pytest_asyncio.fixture
async def db(tmp_path):
    eng = create_async_engine(TEST_DB_URL or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest_asyncio.fixture
async def client(db, media_store):
    async def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_media_store] = lambda: media_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id))
    return {"Authorization": f"Bearer {token}"}


async def make_user(db: AsyncSession, role: str = "user", name: str = "Test User") -> User:
    user = User(id=uuid.uuid4(), email=f"{uuid.uuid4().hex[:8]}@example.com", name=name, role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def claim_media(db: AsyncSession, entity) -> None:
    db.add_all(
        MediaAsset(external_id=m["external_id"], kind=m["kind"], owner_type=entity.__tablename__, owner_id=entity.id)
        for m in entity.media
    )
    await db.commit()


async def make_order(db: AsyncSession, user: User, *products: Product) -> Order:
    order = Order(
        id=uuid.uuid4(),
        user_id=user.id,
        cart=[{"product_id": str(p.id), "name": p.name, "quantity": 1, "is_reviewed": False} for p in products],
    )
    db.add(order)
    await db.commit()
    await db.refresh(order)
    return order


@pytest_asyncio.fixture
async def seller_user(db: AsyncSession):
    return await make_user(db, role="seller", name="Test Seller")


@pytest_asyncio.fixture
async def buyer_user(db: AsyncSession):
    return await make_user(db, role="user", name="Test Buyer")


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession):
    return await make_user(db, role="admin", name="Test Admin")


@pytest_asyncio.fixture
async def shop(db: AsyncSession, seller_user: User):
    s = Shop(id=uuid.uuid4(), owner_id=seller_user.id, name="Hao Shop")
    db.add(s)
    await db.commit()
    await db.refresh(s)
    return s


@pytest_asyncio.fixture
async def product(db: AsyncSession, shop: Shop):
    p = Product(
        id=uuid.uuid4(),
        shop_id=shop.id,
        shop_name=shop.name,
        name="Handmade Vase",
        description="Clay vase",
        category="Decor",
        tags=["clay"],
        original_price=50,
        discount_price=40,
        stock=5,
        location="Nairobi",
        details=[],
        media=[
            {"external_id": "products/images/a", "url": "https://media.test/a.png", "kind": "image"},
            {"external_id": "products/images/b", "url": "https://media.test/b.png", "kind": "image"},
            {"external_id": "products/videos/c", "url": "https://media.test/c.mp4", "kind": "video"},
        ],
    )
    db.add(p)
    await db.commit()
    await db.refresh(p)
    await claim_media(db, p)
    return p


@pytest_asyncio.fixture
async def order(db: AsyncSession, buyer_user: User, product: Product):
    return await make_order(db, buyer_user, product)
