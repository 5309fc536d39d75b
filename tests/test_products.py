"""Tests for products endpoints."""
import json
import uuid

import pytest
from sqlalchemy import func, select

from app.core.deps import get_media_store
from app.main import app
from app.models.media_asset import MediaAsset
from app.models.product import Product
from app.services.media_store import LocalMediaStore
from tests.conftest import auth_headers, make_user


def _product_body(shop, **overrides) -> dict:
    body = {
        "shop_id": str(shop.id),
        "name": "Woven Basket",
        "description": "Sisal basket",
        "category": "Home",
        "tags": "sisal, handmade",
        "original_price": 30,
        "discount_price": 25,
        "stock": 10,
        "location": "Mombasa",
    }
    body.update(overrides)
    return body


async def _product_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(Product))).scalar_one()


@pytest.mark.asyncio
async def test_create_product_with_descriptors_and_raw_media(client, media_store, seller_user, shop):
    images = json.dumps([{"public_id": "products/images/existing", "url": "https://cdn/existing.png"}])
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=images, videos=["data:video/mp4;base64,AAAA"]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 201
    product = resp.json()["product"]
    assert product["shop_name"] == "Hao Shop"
    assert product["tags"] == ["sisal", "handmade"]
    assert product["ratings"] == 0
    assert product["reviews"] == []

    media = product["media"]
    assert media[0] == {"external_id": "products/images/existing", "url": "https://cdn/existing.png", "kind": "image"}
    assert media[1]["kind"] == "video"
    assert media[1]["external_id"].startswith("products/videos/")
    assert media_store.upload_calls == [("products/videos", "video")]


@pytest.mark.asyncio
async def test_create_product_raw_images_are_uploaded(client, media_store, seller_user, shop):
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=["data:image/png;base64,AAAA", "https://remote/2.png"]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 201
    assert [m["kind"] for m in resp.json()["product"]["media"]] == ["image", "image"]
    assert media_store.upload_calls == [("products/images", "image")] * 2


@pytest.mark.asyncio
async def test_create_product_unparseable_media_string(client, media_store, seller_user, shop):
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images="{not valid json"),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 201
    assert resp.json()["product"]["media"] == []
    assert media_store.upload_calls == []


@pytest.mark.asyncio
async def test_create_product_invalid_descriptor(client, db, seller_user, shop):
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=[{"public_id": "products/images/x"}]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid image data format"}
    assert await _product_count(db) == 0


@pytest.mark.asyncio
async def test_create_product_upload_failure_stores_nothing(client, db, media_store, seller_user, shop):
    media_store.fail_uploads = {"data:image/png;base64,BAD"}
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=["data:image/png;base64,AAAA", "data:image/png;base64,BAD"]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert media_store.stored == {}
    assert await _product_count(db) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"location": ""}, "Product location is required"),
        ({"location": None}, "Product location is required"),
        ({"shop_id": None}, "Shop ID is required"),
        ({"shop_id": str(uuid.uuid4())}, "Invalid Shop ID"),
    ],
)
async def test_create_product_validation(client, seller_user, shop, overrides, message):
    resp = await client.post(
        "/api/v2/products", json=_product_body(shop, **overrides), headers=auth_headers(seller_user)
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == message


@pytest.mark.asyncio
async def test_create_product_missing_name(client, seller_user, shop):
    body = _product_body(shop)
    del body["name"]
    resp = await client.post("/api/v2/products", json=body, headers=auth_headers(seller_user))
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_create_product_requires_seller(client, buyer_user, shop):
    resp = await client.post("/api/v2/products", json=_product_body(shop), headers=auth_headers(buyer_user))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_get_product(client, product):
    resp = await client.get(f"/api/v2/products/{product.id}")
    assert resp.status_code == 200
    data = resp.json()["product"]
    assert data["name"] == "Handmade Vase"
    assert len(data["media"]) == 3


@pytest.mark.asyncio
async def test_get_product_not_found(client):
    resp = await client.get(f"/api/v2/products/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Product not found with this id"}


@pytest.mark.asyncio
async def test_list_products(client, product, shop):
    resp = await client.get("/api/v2/products")
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()["products"]] == [str(product.id)]

    resp = await client.get(f"/api/v2/products/shop/{shop.id}")
    assert len(resp.json()["products"]) == 1

    resp = await client.get(f"/api/v2/products/shop/{uuid.uuid4()}")
    assert resp.json()["products"] == []


@pytest.mark.asyncio
async def test_admin_list_requires_admin(client, admin_user, seller_user, product):
    resp = await client.get("/api/v2/products/admin/all", headers=auth_headers(seller_user))
    assert resp.status_code == 403

    resp = await client.get("/api/v2/products/admin/all", headers=auth_headers(admin_user))
    assert resp.status_code == 200
    assert len(resp.json()["products"]) == 1


@pytest.mark.asyncio
async def test_delete_other_shops_product_forbidden(client, db, media_store, product):
    other_seller = await make_user(db, role="seller", name="Other Seller")
    resp = await client.delete(f"/api/v2/products/{product.id}", headers=auth_headers(other_seller))
    assert resp.status_code == 403
    assert media_store.delete_calls == []
    assert await _product_count(db) == 1


@pytest.mark.asyncio
async def test_admin_delete_product(client, db, media_store, admin_user, product):
    resp = await client.delete(f"/api/v2/products/admin/{product.id}", headers=auth_headers(admin_user))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Product deleted by admin successfully!"
    assert len(media_store.delete_calls) == 3
    assert await _product_count(db) == 0


@pytest.mark.asyncio
async def test_delete_unknown_product(client, admin_user):
    resp = await client.delete(f"/api/v2/products/admin/{uuid.uuid4()}", headers=auth_headers(admin_user))
    assert resp.status_code == 404


# ── Media ownership ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_product_reusing_anothers_media(client, db, media_store, seller_user, shop, product):
    taken = dict(product.media[0])
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=[taken]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Media products/images/a is already in use"}
    assert await _product_count(db) == 1
    assert media_store.upload_calls == []


@pytest.mark.asyncio
async def test_create_product_repeating_a_descriptor(client, db, media_store, seller_user, shop):
    descriptor = {"external_id": "products/images/fresh", "url": "https://cdn/fresh.png"}
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=[descriptor, "data:image/png;base64,AAAA"], videos=[descriptor]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Media products/images/fresh is listed more than once"
    assert await _product_count(db) == 0
    assert media_store.upload_calls == []


@pytest.mark.asyncio
async def test_deleting_a_product_never_touches_other_products_media(client, db, media_store, seller_user, shop, product):
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=[{"external_id": "products/images/own", "url": "https://cdn/own.png"}]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 201
    new_id = resp.json()["product"]["id"]

    resp = await client.delete(f"/api/v2/products/{new_id}", headers=auth_headers(seller_user))
    assert resp.status_code == 200
    assert media_store.delete_calls == ["products/images/own"]

    claims = (await db.execute(select(MediaAsset.external_id).order_by(MediaAsset.external_id))).scalars().all()
    assert claims == ["products/images/a", "products/images/b", "products/videos/c"]


@pytest.mark.asyncio
async def test_create_product_with_internal_url_is_refused(client, db, seller_user, shop, tmp_path):
    app.dependency_overrides[get_media_store] = lambda: LocalMediaStore(str(tmp_path))
    resp = await client.post(
        "/api/v2/products",
        json=_product_body(shop, images=["data:image/png;base64,iVBORw0KGgo=", "http://169.254.169.254/latest/meta-data/"]),
        headers=auth_headers(seller_user),
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Remote media host is not allowed"}
    assert await _product_count(db) == 0
    assert not any(path.is_file() for path in tmp_path.rglob("*"))
