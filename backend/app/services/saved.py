# app/services/saved.py
# 사용자 저장(즐겨찾기) 레시피 원장
# - 저장/해제는 $addToSet / $pull 단일 원자 연산 → 멱등
# - 목록은 저장 id → 실제 문서로 해석한 뒤 정렬/페이지네이션 (사라진 레시피는 total에서 제외)
# - 공식 레시피는 트윈으로 저장되므로 sourceRecipeId 역매핑으로 "저장됨" 판단

from __future__ import annotations
from typing import Any, Dict, List

from bson import ObjectId

from app.core.errors import NotFoundError, ValidationError
from app.db.indexes import COMMUNITY_RECIPES, USERS
from app.services.community import PUBLIC_PROJECTION, parse_sort
from app.services.utils import page_envelope, page_params, parse_oid, timestamp_of, to_public

SAVED_FIELD = "savedCommunityRecipes"
SAVED_SORTS = {"newest", "favorite", "top", "rating"}


async def _saved_ids(db, user_id: ObjectId) -> List[ObjectId]:
    user = await db[USERS].find_one({"_id": user_id}, {SAVED_FIELD: 1})
    if not user:
        raise NotFoundError("User not found.")
    # 저장소가 순서 있는 배열이라 옛 데이터에 중복이 있을 수 있음
    seen, out = set(), []
    for x in user.get(SAVED_FIELD) or []:
        key = str(x)
        if key in seen or not ObjectId.is_valid(key):
            continue
        seen.add(key)
        out.append(ObjectId(key))
    return out


async def save_recipe(db, user_id: ObjectId, recipe_id: Any) -> None:
    if not recipe_id:
        raise ValidationError("recipeId is required.")
    oid = parse_oid(recipe_id, "recipe id")
    if not await db[COMMUNITY_RECIPES].find_one({"_id": oid}, {"_id": 1}):
        raise NotFoundError("Recipe not found.")

    res = await db[USERS].update_one({"_id": user_id}, {"$addToSet": {SAVED_FIELD: oid}})
    if res.matched_count == 0:
        raise NotFoundError("User not found.")


async def unsave_recipe(db, user_id: ObjectId, recipe_id: Any) -> None:
    oid = parse_oid(recipe_id, "recipe id")
    res = await db[USERS].update_one({"_id": user_id}, {"$pull": {SAVED_FIELD: oid}})
    if res.matched_count == 0:
        raise NotFoundError("User not found.")


def _sort_docs(docs: List[Dict[str, Any]], sort: str) -> List[Dict[str, Any]]:
    if sort == "newest":
        key = lambda d: (timestamp_of(d), str(d["_id"]))
    else:
        key = lambda d: (
            float(d.get("ratingAvg") or 0),
            int(d.get("ratingCount") or 0),
            timestamp_of(d),
            str(d["_id"]),
        )
    return sorted(docs, key=key, reverse=True)


async def list_saved(db, user_id: ObjectId, sort: Any = None, page: Any = 1, limit: Any = None) -> Dict[str, Any]:
    sort = parse_sort(sort, SAVED_SORTS)
    page, limit, skip = page_params(page, limit)

    ids = await _saved_ids(db, user_id)
    docs: List[Dict[str, Any]] = []
    if ids:
        docs = await db[COMMUNITY_RECIPES].find({"_id": {"$in": ids}}, PUBLIC_PROJECTION).to_list(length=None)

    docs = _sort_docs(docs, sort)
    total = len(docs)
    return page_envelope(to_public(docs[skip: skip + limit]), page, limit, total)


async def saved_source_ids(db, user_id: ObjectId) -> List[str]:
    """저장한 트윈들의 공식 레시피 id 목록 (공식 레시피 '저장됨' 표시용)"""
    ids = await _saved_ids(db, user_id)
    if not ids:
        return []
    docs = await db[COMMUNITY_RECIPES].find(
        {"_id": {"$in": ids}, "sourceRecipeId": {"$ne": None}},
        {"sourceRecipeId": 1},
    ).to_list(length=None)
    return list(dict.fromkeys(str(d["sourceRecipeId"]) for d in docs))
