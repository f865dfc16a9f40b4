from bson import ObjectId

from app.db.indexes import SHOPS, USERS
from app.db.models.schemas import FavoriteItemIn
from app.services import shopping
from conftest import auth_header


class _UsersHook:
    """users 컬렉션 래퍼: 지정한 메서드 호출 직전/직후에 다른 요청의 쓰기를 한 번 끼워 넣는다"""

    def __init__(self, col, method, before=None, after=None):
        self._col = col
        self._method = method
        self._before = before
        self._after = after

    def __getattr__(self, name):
        attr = getattr(self._col, name)
        if name != self._method:
            return attr

        async def wrapped(*args, **kwargs):
            if self._before:
                before, self._before = self._before, None
                await before(self._col)
            out = await attr(*args, **kwargs)
            if self._after:
                after, self._after = self._after, None
                await after(self._col)
            return out

        return wrapped


class _HookedDb:
    def __init__(self, db, users):
        self._db = db
        self._users = users

    def __getitem__(self, name):
        return self._users if name == USERS else self._db[name]


async def create_shop(client, user, name):
    r = await client.post("/api/shopping-list/shop-options", json={"name": name}, headers=auth_header(user))
    assert r.status_code == 201
    return r.json()


# --- shopping list ---

async def test_shopping_list_crud(db, client, alice):
    h = auth_header(alice)
    shop = await create_shop(client, alice, "Lidl")

    r = await client.post("/api/shopping-list", json={"text": " Milk ", "shop": [shop["_id"]]}, headers=h)
    assert r.status_code == 200
    items = r.json()
    assert len(items) == 1
    assert items[0]["text"] == "Milk"
    assert items[0]["shop"] == [shop["_id"]]
    assert items[0]["checked"] is False
    item_id = items[0]["_id"]

    r = await client.patch(f"/api/shopping-list/{item_id}", json={"checked": True}, headers=h)
    assert r.json()[0]["checked"] is True

    r = await client.patch(f"/api/shopping-list/{item_id}", json={"shop": []}, headers=h)
    assert r.json()[0]["shop"] == []

    r = await client.patch(f"/api/shopping-list/{ObjectId()}", json={"checked": True}, headers=h)
    assert r.status_code == 404

    r = await client.delete(f"/api/shopping-list/{item_id}", headers=h)
    assert r.json() == []
    r = await client.delete(f"/api/shopping-list/{item_id}", headers=h)
    assert r.status_code == 200 and r.json() == []


async def test_shop_refs_are_normalized(db, client, alice, bob):
    h = auth_header(alice)
    mine = await create_shop(client, alice, "Albert")
    theirs = await create_shop(client, bob, "Tesco")

    r = await client.post(
        "/api/shopping-list",
        json={"text": "Eggs", "shop": [{"_id": mine["_id"], "name": "Albert"}, mine["_id"], theirs["_id"]]},
        headers=h,
    )
    assert r.json()[0]["shop"] == [mine["_id"]]

    user = await db[USERS].find_one({"_id": alice["_id"]})
    assert user["shoppingList"][0]["shop"] == [ObjectId(mine["_id"])]

    r = await client.post("/api/shopping-list", json={"text": "Eggs", "shop": ["nope"]}, headers=h)
    assert r.status_code == 400


async def test_shops(db, client, alice, bob):
    h = auth_header(alice)
    await create_shop(client, alice, "Billa")
    await create_shop(client, alice, "albert")
    await create_shop(client, bob, "Billa")

    r = await client.post("/api/shopping-list/shop-options", json={"name": "Billa"}, headers=h)
    assert r.status_code == 409

    r = await client.get("/api/shopping-list/shop-options", headers=h)
    assert [s["name"] for s in r.json()] == ["albert", "Billa"]


async def test_delete_shop_strips_references(db, client, alice):
    h = auth_header(alice)
    keep = await create_shop(client, alice, "Keep")
    drop = await create_shop(client, alice, "Drop")
    await client.post("/api/shopping-list", json={"text": "Bread", "shop": [keep["_id"], drop["_id"]]}, headers=h)
    await client.post("/api/favorites", json={"text": "Butter", "shop": [drop["_id"]]}, headers=h)

    r = await client.delete(f"/api/shopping-list/shop-options/{drop['_id']}", headers=h)
    assert r.status_code == 200
    assert [s["name"] for s in r.json()] == ["Keep"]
    assert await db[SHOPS].count_documents({"_id": ObjectId(drop["_id"])}) == 0

    r = await client.get("/api/shopping-list", headers=h)
    assert r.json()[0]["shop"] == [keep["_id"]]
    user = await db[USERS].find_one({"_id": alice["_id"]})
    assert user["favoriteItems"][0]["shop"] == []

    r = await client.delete(f"/api/shopping-list/shop-options/{drop['_id']}", headers=h)
    assert r.status_code == 404


async def test_delete_shop_keeps_items_added_meanwhile(db, client, alice):
    h = auth_header(alice)
    drop = await create_shop(client, alice, "Drop")
    sid = ObjectId(drop["_id"])
    await client.post("/api/shopping-list", json={"text": "Milk", "shop": [drop["_id"]]}, headers=h)

    async def push_eggs(col):
        item = {"_id": ObjectId(), "text": "Eggs", "shop": [sid], "checked": False}
        await col.update_one({"_id": alice["_id"]}, {"$push": {"shoppingList": item}})

    hooked = _HookedDb(db, _UsersHook(db[USERS], "find_one", after=push_eggs))
    remaining = await shopping.delete_shop(hooked, alice["_id"], drop["_id"])
    assert remaining == []

    user = await db[USERS].find_one({"_id": alice["_id"]})
    assert [i["text"] for i in user["shoppingList"]] == ["Milk", "Eggs"]
    assert all(i["shop"] == [] for i in user["shoppingList"])


# --- favorites ---

async def test_favorites_dedupe_and_populate(db, client, alice):
    h = auth_header(alice)
    shop = await create_shop(client, alice, "Kaufland")

    r = await client.post("/api/favorites", json={"text": "Olive oil", "shop": [shop["_id"]]}, headers=h)
    assert r.json() == [{"_id": r.json()[0]["_id"], "text": "Olive oil", "shop": [shop]}]

    r = await client.post("/api/favorites", json={"text": "  OLIVE OIL "}, headers=h)
    assert len(r.json()) == 1

    fav_id = r.json()[0]["_id"]
    r = await client.patch(f"/api/favorites/{fav_id}", json={"text": "Olive oil extra"}, headers=h)
    assert r.json()[0]["text"] == "Olive oil extra"
    assert r.json()[0]["shop"] == [shop]

    r = await client.patch(f"/api/favorites/{fav_id}", json={"text": ""}, headers=h)
    assert r.status_code == 400
    r = await client.patch(f"/api/favorites/{ObjectId()}", json={"text": "x"}, headers=h)
    assert r.status_code == 404

    r = await client.delete(f"/api/favorites/{fav_id}", headers=h)
    assert r.json() == []


async def test_favorite_duplicate_check_is_part_of_the_write(db, alice):
    async def add_same_text(col):
        item = {"_id": ObjectId(), "text": "olive oil", "shop": []}
        await col.update_one({"_id": alice["_id"]}, {"$push": {"favoriteItems": item}})

    hooked = _HookedDb(db, _UsersHook(db[USERS], "update_one", before=add_same_text))
    out = await shopping.add_favorite(hooked, alice["_id"], FavoriteItemIn(text="Olive Oil"))
    assert [i["text"] for i in out] == ["olive oil"]

    user = await db[USERS].find_one({"_id": alice["_id"]})
    assert user.get("itemSuggestions") in (None, [])


# --- item suggestions ---

async def test_suggestions_follow_added_items(db, client, alice):
    h = auth_header(alice)
    await client.post("/api/shopping-list", json={"text": "milk"}, headers=h)
    await client.post("/api/shopping-list", json={"text": "Milk"}, headers=h)
    await client.post("/api/favorites", json={"text": "Apples"}, headers=h)

    r = await client.get("/api/item-suggestions", headers=h)
    assert r.status_code == 200
    assert r.json() == ["Apples", "milk"]


async def test_suggestion_duplicate_check_is_part_of_the_write(db, alice):
    async def add_same_text(col):
        await col.update_one({"_id": alice["_id"]}, {"$addToSet": {"itemSuggestions": "BREAD"}})

    hooked = _HookedDb(db, _UsersHook(db[USERS], "update_one", before=add_same_text))
    await shopping.add_suggestion(hooked, alice["_id"], " bread ")

    user = await db[USERS].find_one({"_id": alice["_id"]})
    assert user["itemSuggestions"] == ["BREAD"]


async def test_suggestions_rebuilt_when_empty(db, client, alice):
    await db[USERS].update_one(
        {"_id": alice["_id"]},
        {"$set": {
            "shoppingList": [
                {"_id": ObjectId(), "text": "bananas", "shop": [], "checked": False},
                {"_id": ObjectId(), "text": "Carrots", "shop": [], "checked": True},
            ],
            "favoriteItems": [{"_id": ObjectId(), "text": "BANANAS", "shop": []}],
            "itemSuggestions": [],
        }},
    )

    r = await client.get("/api/item-suggestions", headers=auth_header(alice))
    assert r.json() == ["bananas", "Carrots"]

    user = await db[USERS].find_one({"_id": alice["_id"]})
    assert sorted(user["itemSuggestions"]) == ["Carrots", "bananas"]


async def test_shopping_requires_token(client):
    assert (await client.get("/api/shopping-list")).status_code == 401
    assert (await client.get("/api/favorites")).status_code == 401
    assert (await client.get("/api/item-suggestions")).status_code == 401
