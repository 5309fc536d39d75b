"""Tests for site reviews and helpful votes."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.core.errors import InvalidVote
from app.models.review import PublicReview
from app.services.reviews import vote


@pytest.fixture
async def public_review(db):
    review = PublicReview(name="Amina", rating=5, comment="Fast delivery")
    db.add(review)
    await db.commit()
    await db.refresh(review)
    return review


@pytest.mark.asyncio
async def test_create_public_review(client, db):
    resp = await client.post(
        "/api/v2/public-reviews", json={"name": "Otieno", "rating": 4, "comment": "Good prices"}
    )
    assert resp.status_code == 201
    assert resp.json() == {"success": True, "message": "Thank you for your review!"}

    review = (await db.execute(select(PublicReview))).scalar_one()
    assert (review.name, review.rating, review.helpful_up, review.helpful_down) == ("Otieno", 4, 0, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"rating": 4, "comment": "no name"},
        {"name": "Otieno", "comment": "no rating"},
        {"name": "Otieno", "rating": 4},
        {"name": "", "rating": 4, "comment": "empty name"},
    ],
)
async def test_create_public_review_missing_field(client, body):
    resp = await client.post("/api/v2/public-reviews", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Name, rating, and comment are required"}


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, 2.5, "five"])
async def test_create_public_review_bad_rating(client, rating):
    resp = await client.post("/api/v2/public-reviews", json={"name": "Otieno", "rating": rating, "comment": "x"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Rating must be a number between 1 and 5"


@pytest.mark.asyncio
async def test_list_newest_first(client, db):
    now = datetime.now(timezone.utc)
    db.add_all([
        PublicReview(name="old", rating=3, comment="a", created_at=now - timedelta(days=2)),
        PublicReview(name="new", rating=4, comment="b", created_at=now),
        PublicReview(name="mid", rating=5, comment="c", created_at=now - timedelta(days=1)),
    ])
    await db.commit()

    resp = await client.get("/api/v2/public-reviews")
    assert resp.status_code == 200
    assert [r["name"] for r in resp.json()["reviews"]] == ["new", "mid", "old"]


@pytest.mark.asyncio
async def test_two_up_votes(client, public_review):
    for _ in range(2):
        resp = await client.post(
            "/api/v2/public-reviews/vote", json={"review_id": str(public_review.id), "vote": "up"}
        )
        assert resp.status_code == 200

    data = resp.json()
    assert data["helpful_up"] == 2
    assert data["helpful_down"] == 0


@pytest.mark.asyncio
async def test_down_vote(db, public_review):
    review = await vote(db, public_review.id, "down")
    assert (review.helpful_up, review.helpful_down) == (0, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("direction", ["sideways", "", None, 1])
async def test_invalid_vote_leaves_counters(db, public_review, direction):
    with pytest.raises(InvalidVote):
        await vote(db, public_review.id, direction)

    await db.refresh(public_review)
    assert (public_review.helpful_up, public_review.helpful_down) == (0, 0)


@pytest.mark.asyncio
async def test_invalid_vote_http(client, public_review):
    resp = await client.post(
        "/api/v2/public-reviews/vote", json={"review_id": str(public_review.id), "vote": "sideways"}
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid vote data"}


@pytest.mark.asyncio
async def test_vote_unknown_review(client):
    resp = await client.post("/api/v2/public-reviews/vote", json={"review_id": str(uuid.uuid4()), "vote": "up"})
    assert resp.status_code == 404
    assert resp.json()["success"] is False
