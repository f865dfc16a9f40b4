import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.core.errors import NotFoundError, ValidationError
from app.db.indexes import COMMUNITY_RECIPES
from app.services import community
from conftest import auth_header, make_community, make_official

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


# --- ensure-from-recipe ---

async def test_ensure_creates_then_reuses(db, client, alice):
    official = await make_official(db, title="Goulash", difficulty="Hard")

    r1 = await client.post(f"/api/community-recipes/ensure-from-recipe/{official}", headers=auth_header(alice))
    r2 = await client.post(f"/api/community-recipes/ensure-from-recipe/{official}", headers=auth_header(alice))
    assert r1.status_code == 201
    assert r2.status_code == 200
    assert r1.json()["_id"] == r2.json()["_id"]
    assert r1.json()["sourceRecipeId"] == str(official)
    assert await db[COMMUNITY_RECIPES].count_documents({"sourceRecipeId": official}) == 1

    twin = await db[COMMUNITY_RECIPES].find_one({"sourceRecipeId": official})
    assert twin["title"] == "Goulash"
    assert twin["difficulty"] == "Hard"
    assert twin["ratingCount"] == 0 and twin["ratings"] == []
    # 다국어 필드는 트윈으로 복사하지 않음
    assert "titleCs" not in twin
    assert all("descriptionCs" not in s for s in twin["steps"])


async def test_ensure_existing_twin_is_not_overwritten(db, alice):
    official = await make_official(db, title="Old title")
    twin, created = await community.ensure_twin(db, official)
    assert created

    await db[COMMUNITY_RECIPES].update_one(
        {"_id": ObjectId(twin["_id"])}, {"$set": {"ratingAvg": 4.5, "ratingCount": 2}}
    )
    await db["recipes"].update_one({"_id": official}, {"$set": {"title": "New title"}})

    again, created = await community.ensure_twin(db, str(official))
    assert not created
    assert again == {**twin, "ratingAvg": 4.5, "ratingCount": 2}
    doc = await db[COMMUNITY_RECIPES].find_one({"_id": ObjectId(twin["_id"])})
    assert doc["title"] == "Old title"


async def test_ensure_many_calls_single_twin(db):
    official = await make_official(db)
    results = await asyncio.gather(*[community.ensure_twin(db, official) for _ in range(5)])
    ids = {doc["_id"] for doc, _ in results}
    assert len(ids) == 1
    assert sum(1 for _, created in results if created) == 1
    assert await db[COMMUNITY_RECIPES].count_documents({"sourceRecipeId": official}) == 1


async def test_ensure_duplicate_key_rereads(db):
    """다른 요청이 먼저 트윈을 만든 경우 (unique 인덱스 충돌) 기존 트윈을 돌려준다"""
    official = await make_official(db)
    winner = await make_community(db, sourceRecipeId=official)

    class Racing:
        def __init__(self, inner):
            self.inner = inner
            self.lookups = 0

        def __getitem__(self, name):
            col = self.inner[name]
            if name != COMMUNITY_RECIPES:
                return col
            outer = self

            class Col:
                def __getattr__(self, attr):
                    return getattr(col, attr)

                async def find_one(self, *a, **kw):
                    outer.lookups += 1
                    if outer.lookups == 1:
                        return None
                    return await col.find_one(*a, **kw)

                async def update_one(self, *a, **kw):
                    raise DuplicateKeyError("E11000 duplicate key error")

            return Col()

    twin, created = await community.ensure_twin(Racing(db), official)
    assert not created
    assert twin["_id"] == str(winner)


async def test_ensure_errors(client, alice):
    r = await client.post("/api/community-recipes/ensure-from-recipe/bad-id", headers=auth_header(alice))
    assert r.status_code == 400
    r = await client.post(f"/api/community-recipes/ensure-from-recipe/{ObjectId()}", headers=auth_header(alice))
    assert r.status_code == 404
    r = await client.post(f"/api/community-recipes/ensure-from-recipe/{ObjectId()}")
    assert r.status_code == 401


# --- listing ---

async def test_easiest_sort_scenario(db, client):
    await make_community(db, title="h", difficulty="Hard", createdAt=at(1))
    b_old = await make_community(db, title="b-old", difficulty="Beginner", createdAt=at(2))
    await make_community(db, title="i", difficulty="Intermediate", createdAt=at(3))
    b_new = await make_community(db, title="b-new", difficulty="Beginner", createdAt=at(4))

    r = await client.get("/api/community-recipes", params={"sort": "easiest"})
    assert r.status_code == 200
    items = r.json()["items"]
    assert [i["difficulty"] for i in items] == ["Beginner", "Beginner", "Intermediate", "Hard"]
    assert [items[0]["_id"], items[1]["_id"]] == [str(b_new), str(b_old)]
    assert all("difficultyRank" not in i and "ratings" not in i for i in items)


async def test_easiest_puts_unknown_difficulty_last(db):
    await make_community(db, title="legacy", difficulty="Střední", createdAt=at(5))
    await make_community(db, title="hard", difficulty="Hard", createdAt=at(1))
    page = await community.list_community(db, sort="easiest")
    assert [i["title"] for i in page["items"]] == ["hard", "legacy"]


async def test_rating_sorts(db):
    a = await make_community(db, title="a", ratingAvg=4.0, ratingCount=1, createdAt=at(1))
    b = await make_community(db, title="b", ratingAvg=4.0, ratingCount=3, createdAt=at(2))
    c = await make_community(db, title="c", ratingAvg=5.0, ratingCount=1, createdAt=at(3))
    d = await make_community(db, title="d", ratingAvg=4.0, ratingCount=3, createdAt=at(4))
    for mode in ("favorite", "top", "rating"):
        page = await community.list_community(db, sort=mode)
        assert [i["_id"] for i in page["items"]] == [str(c), str(d), str(b), str(a)]

    page = await community.list_community(db, sort="newest")
    assert [i["_id"] for i in page["items"]] == [str(d), str(c), str(b), str(a)]


async def test_unknown_sort_is_rejected(db, client):
    with pytest.raises(ValidationError):
        await community.list_community(db, sort="spiciest")
    r = await client.get("/api/community-recipes", params={"sort": "spiciest"})
    assert r.status_code == 400


async def test_search_is_literal_and_case_insensitive(db, client):
    await make_community(db, title="Chicken (spicy) curry")
    await make_community(db, title="CHICKEN soup")
    await make_community(db, title="Tomato salad")

    r = await client.get("/api/community-recipes", params={"q": "chicken"})
    assert {i["title"] for i in r.json()["items"]} == {"Chicken (spicy) curry", "CHICKEN soup"}

    r = await client.get("/api/community-recipes", params={"q": "(spicy"})
    assert [i["title"] for i in r.json()["items"]] == ["Chicken (spicy) curry"]

    r = await client.get("/api/community-recipes", params={"q": ".*"})
    assert r.json()["total"] == 0


async def test_mirror_twins_hidden_by_default(db, client):
    official = await make_official(db)
    await community.ensure_twin(db, official)
    await make_community(db, title="authored")

    r = await client.get("/api/community-recipes")
    assert [i["title"] for i in r.json()["items"]] == ["authored"]

    r = await client.get("/api/community-recipes", params={"includeDerived": "true"})
    assert r.json()["total"] == 2


async def test_pagination_envelope(db, client):
    for n in range(5):
        await make_community(db, title=f"r{n}", createdAt=at(n))

    r = await client.get("/api/community-recipes", params={"page": 2, "limit": 2})
    body = r.json()
    assert body["page"] == 2 and body["limit"] == 2
    assert body["total"] == 5 and body["pages"] == 3
    assert [i["title"] for i in body["items"]] == ["r2", "r1"]

    r = await client.get("/api/community-recipes", params={"page": 9, "limit": 2})
    assert r.status_code == 200
    assert r.json()["items"] == []

    r = await client.get("/api/community-recipes", params={"limit": 500})
    assert r.json()["limit"] == 50

    r = await client.get("/api/community-recipes", params={"page": "x", "limit": "y"})
    assert r.json()["page"] == 1 and r.json()["limit"] == 12


async def test_detail(db, client):
    cid = await make_community(db, title="Detail", ratings=[{"user": ObjectId(), "value": 3}])
    r = await client.get(f"/api/community-recipes/{cid}")
    assert r.status_code == 200
    assert r.json()["title"] == "Detail"
    assert "ratings" not in r.json()

    assert (await client.get("/api/community-recipes/zzz")).status_code == 400
    assert (await client.get(f"/api/community-recipes/{ObjectId()}")).status_code == 404


async def test_get_community_not_found(db):
    with pytest.raises(NotFoundError):
        await community.get_community(db, ObjectId())
