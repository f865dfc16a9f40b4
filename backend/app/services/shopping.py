# app/services/shopping.py
# 장보기 목록 / 가게 / 즐겨찾기 아이템 / 아이템 추천
# - 목록 항목은 자체 _id를 가진 서브도큐먼트 (인덱스 대신 id로 수정/삭제)
# - shop 참조는 경계에서 ObjectId로 정규화, 본인 가게가 아니면 버림
# - itemSuggestions는 목록/즐겨찾기 텍스트에서 파생되는 캐시

from __future__ import annotations
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.indexes import SHOPS, USERS
from app.db.models.schemas import (
    FavoriteItemIn,
    FavoriteItemPatch,
    ShopIn,
    ShopObj,
    ShoppingItemIn,
    ShoppingItemPatch,
)
from app.services.utils import dedupe_texts, parse_oid, to_public

log = logging.getLogger(__name__)

SHOPPING = "shoppingList"
FAVORITES = "favoriteItems"
SUGGESTIONS = "itemSuggestions"
STRIP_SHOP_ATTEMPTS = 5


def _same_text(text: str) -> re.Pattern:
    # 대소문자/앞뒤 공백 무시 동일 텍스트 매칭 (update 필터용)
    return re.compile(rf"^\s*{re.escape(text)}\s*$", re.IGNORECASE)


async def _load_user(db, user_id: ObjectId, fields: Iterable[str]) -> Dict[str, Any]:
    user = await db[USERS].find_one({"_id": user_id}, {f: 1 for f in fields})
    if not user:
        raise NotFoundError("User not found.")
    return user


def _ref_id(ref: Any) -> Any:
    if isinstance(ref, ShopObj):
        return ref.id
    if isinstance(ref, dict):
        return ref.get("_id") or ref.get("id")
    return ref


async def normalize_shop_refs(db, user_id: ObjectId, refs: Optional[Iterable[Any]]) -> List[ObjectId]:
    """id 문자열 / {_id, name} 혼재 → 본인 소유 가게 ObjectId 목록 (순서 유지, 중복 제거)"""
    ids: List[ObjectId] = []
    for ref in refs or []:
        oid = parse_oid(_ref_id(ref), "shop id")
        if oid not in ids:
            ids.append(oid)
    if not ids:
        return []
    owned = await db[SHOPS].find({"_id": {"$in": ids}, "owner": user_id}, {"_id": 1}).to_list(length=None)
    owned_ids = {d["_id"] for d in owned}
    return [i for i in ids if i in owned_ids]


async def _shop_names(db, user_id: ObjectId) -> Dict[ObjectId, str]:
    docs = await db[SHOPS].find({"owner": user_id}).to_list(length=None)
    return {d["_id"]: d.get("name", "") for d in docs}


def _shopping_out(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return to_public([
        {
            "_id": it.get("_id"),
            "text": it.get("text", ""),
            "shop": list(it.get("shop") or []),
            "checked": bool(it.get("checked")),
        }
        for it in items or []
    ])


def _favorites_out(items: List[Dict[str, Any]], names: Dict[ObjectId, str]) -> List[Dict[str, Any]]:
    # populate: 삭제된 가게 참조는 응답에서 제외
    out = []
    for it in items or []:
        shops = [{"_id": s, "name": names[s]} for s in it.get("shop") or [] if s in names]
        out.append({"_id": it.get("_id"), "text": it.get("text", ""), "shop": shops})
    return to_public(out)


# 아이템 추천

async def add_suggestion(db, user_id: ObjectId, text: Optional[str]) -> None:
    t = (text or "").strip()
    if not t:
        return
    # 중복 검사를 필터에 넣어 검사와 추가가 한 번의 쓰기
    await db[USERS].update_one(
        {"_id": user_id, SUGGESTIONS: {"$not": _same_text(t)}},
        {"$addToSet": {SUGGESTIONS: t}},
    )


async def get_suggestions(db, user_id: ObjectId) -> List[str]:
    user = await _load_user(db, user_id, [SUGGESTIONS, SHOPPING, FAVORITES])
    suggestions = list(user.get(SUGGESTIONS) or [])

    if not suggestions:
        # 비어 있으면 현재 목록/즐겨찾기에서 1회 재구성 후 저장
        texts = [i.get("text") for i in user.get(SHOPPING) or []]
        texts += [i.get("text") for i in user.get(FAVORITES) or []]
        suggestions = dedupe_texts(texts)
        if suggestions:
            await db[USERS].update_one(
                {"_id": user_id},
                {"$addToSet": {SUGGESTIONS: {"$each": suggestions}}},
            )

    return sorted(suggestions, key=lambda s: (s.casefold(), s))


# 장보기 목록

async def get_shopping_list(db, user_id: ObjectId) -> List[Dict[str, Any]]:
    user = await _load_user(db, user_id, [SHOPPING])
    return _shopping_out(user.get(SHOPPING))


async def add_shopping_item(db, user_id: ObjectId, payload: ShoppingItemIn) -> List[Dict[str, Any]]:
    shops = await normalize_shop_refs(db, user_id, payload.shop)
    item = {"_id": ObjectId(), "text": payload.text, "shop": shops, "checked": False}
    res = await db[USERS].update_one({"_id": user_id}, {"$push": {SHOPPING: item}})
    if res.matched_count == 0:
        raise NotFoundError("User not found.")
    await add_suggestion(db, user_id, payload.text)
    return await get_shopping_list(db, user_id)


async def update_shopping_item(db, user_id: ObjectId, item_id: Any, patch: ShoppingItemPatch) -> List[Dict[str, Any]]:
    iid = parse_oid(item_id, "item id")
    fields = patch.model_fields_set

    to_set: Dict[str, Any] = {}
    if "checked" in fields:
        if patch.checked is None:
            raise ValidationError("checked must be a boolean.")
        to_set[f"{SHOPPING}.$.checked"] = patch.checked
    if "text" in fields:
        text = (patch.text or "").strip()
        if not text:
            raise ValidationError("text must not be empty.")
        to_set[f"{SHOPPING}.$.text"] = text
    if "shop" in fields and patch.shop is not None:
        to_set[f"{SHOPPING}.$.shop"] = await normalize_shop_refs(db, user_id, patch.shop)

    if to_set:
        res = await db[USERS].update_one({"_id": user_id, f"{SHOPPING}._id": iid}, {"$set": to_set})
        matched = res.matched_count
    else:
        matched = await db[USERS].count_documents({"_id": user_id, f"{SHOPPING}._id": iid})
    if not matched:
        raise NotFoundError("Item not found.")
    return await get_shopping_list(db, user_id)


async def delete_shopping_item(db, user_id: ObjectId, item_id: Any) -> List[Dict[str, Any]]:
    # 없는 항목 삭제도 성공 (현재 목록 반환)
    iid = parse_oid(item_id, "item id")
    res = await db[USERS].update_one({"_id": user_id}, {"$pull": {SHOPPING: {"_id": iid}}})
    if res.matched_count == 0:
        raise NotFoundError("User not found.")
    return await get_shopping_list(db, user_id)


# 가게

def _shop_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    return to_public({"_id": doc["_id"], "name": doc.get("name", "")})


async def list_shops(db, user_id: ObjectId) -> List[Dict[str, Any]]:
    docs = await db[SHOPS].find({"owner": user_id}).to_list(length=None)
    docs.sort(key=lambda d: (d.get("name") or "").casefold())
    return [_shop_out(d) for d in docs]


async def create_shop(db, user_id: ObjectId, payload: ShopIn) -> Dict[str, Any]:
    name = payload.name
    if await db[SHOPS].find_one({"owner": user_id, "name": name}, {"_id": 1}):
        raise ConflictError("Shop already exists.")
    doc = {"name": name, "owner": user_id}
    try:
        res = await db[SHOPS].insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("Shop already exists.")
    doc["_id"] = res.inserted_id
    return _shop_out(doc)


def _strip_shop(items: Optional[List[Dict[str, Any]]], shop_id: ObjectId) -> List[Dict[str, Any]]:
    out = []
    for it in items or []:
        it = dict(it)
        it["shop"] = [s for s in it.get("shop") or [] if s != shop_id]
        out.append(it)
    return out


async def delete_shop(db, user_id: ObjectId, shop_id: Any) -> List[Dict[str, Any]]:
    """가게 삭제 + 본인 목록/즐겨찾기에서 참조 제거. 남은 가게 목록 반환"""
    sid = parse_oid(shop_id, "shop id")
    res = await db[SHOPS].delete_one({"_id": sid, "owner": user_id})
    if res.deleted_count == 0:
        raise NotFoundError("Shop not found.")

    await _strip_shop_refs(db, user_id, sid)
    log.info("shop %s deleted by %s", sid, user_id)
    return await list_shops(db, user_id)


async def _strip_shop_refs(db, user_id: ObjectId, sid: ObjectId) -> None:
    # 읽은 배열 그대로일 때만 교체 (compare-and-set). 그사이 목록이 바뀌면 다시 읽는다
    for _ in range(STRIP_SHOP_ATTEMPTS):
        user = await _load_user(db, user_id, [SHOPPING, FAVORITES])
        shopping, favorites = user.get(SHOPPING), user.get(FAVORITES)
        res = await db[USERS].update_one(
            {"_id": user_id, SHOPPING: shopping, FAVORITES: favorites},
            {"$set": {SHOPPING: _strip_shop(shopping, sid), FAVORITES: _strip_shop(favorites, sid)}},
        )
        if res.matched_count:
            return
        log.info("lists of %s changed while stripping shop %s, retrying", user_id, sid)
    raise ConflictError("Shopping list changed concurrently; try again.")


# 즐겨찾기 아이템

async def get_favorites(db, user_id: ObjectId) -> List[Dict[str, Any]]:
    user = await _load_user(db, user_id, [FAVORITES])
    return _favorites_out(user.get(FAVORITES), await _shop_names(db, user_id))


async def add_favorite(db, user_id: ObjectId, payload: FavoriteItemIn) -> List[Dict[str, Any]]:
    shops = await normalize_shop_refs(db, user_id, payload.shop)
    item = {"_id": ObjectId(), "text": payload.text, "shop": shops}
    # 같은 텍스트가 이미 있으면 필터가 안 맞아 push 안 됨
    res = await db[USERS].update_one(
        {"_id": user_id, f"{FAVORITES}.text": {"$not": _same_text(payload.text)}},
        {"$push": {FAVORITES: item}},
    )
    if res.modified_count:
        await add_suggestion(db, user_id, payload.text)
    return await get_favorites(db, user_id)


async def update_favorite(db, user_id: ObjectId, item_id: Any, patch: FavoriteItemPatch) -> List[Dict[str, Any]]:
    iid = parse_oid(item_id, "item id")
    fields = patch.model_fields_set

    to_set: Dict[str, Any] = {}
    if "text" in fields:
        text = (patch.text or "").strip()
        if not text:
            raise ValidationError("text must not be empty.")
        to_set[f"{FAVORITES}.$.text"] = text
    if "shop" in fields and patch.shop is not None:
        to_set[f"{FAVORITES}.$.shop"] = await normalize_shop_refs(db, user_id, patch.shop)

    if to_set:
        res = await db[USERS].update_one({"_id": user_id, f"{FAVORITES}._id": iid}, {"$set": to_set})
        matched = res.matched_count
    else:
        matched = await db[USERS].count_documents({"_id": user_id, f"{FAVORITES}._id": iid})
    if not matched:
        raise NotFoundError("Item not found.")
    return await get_favorites(db, user_id)


async def delete_favorite(db, user_id: ObjectId, item_id: Any) -> List[Dict[str, Any]]:
    iid = parse_oid(item_id, "item id")
    res = await db[USERS].update_one({"_id": user_id}, {"$pull": {FAVORITES: {"_id": iid}}})
    if res.matched_count == 0:
        raise NotFoundError("User not found.")
    return await get_favorites(db, user_id)
