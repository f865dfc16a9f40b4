# app/services/community.py
# 커뮤니티 레시피 저장소
# - ensure_twin: 공식 레시피 → 커뮤니티 트윈 get-or-create (sourceRecipeId 기준 upsert)
# - list_community: 검색/정렬/페이지네이션
# - get_community: 상세

from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from app.core.errors import NotFoundError, ValidationError
from app.db.indexes import COMMUNITY_RECIPES, RECIPES
from app.db.models.recipe import CommunityRecipeDoc, content_of
from app.models.difficulty import rank_expression
from app.services.utils import page_envelope, page_params, parse_oid, to_public

log = logging.getLogger(__name__)

# 공개 응답에서 사용자별 평점 원장/내부 revision은 숨김
PUBLIC_PROJECTION = {"ratings": 0, "revision": 0}
TWIN_PROJECTION = {"_id": 1, "ratingAvg": 1, "ratingCount": 1, "sourceRecipeId": 1}

NEWEST = [("createdAt", -1), ("_id", -1)]
TOP_RATED = [("ratingAvg", -1), ("ratingCount", -1), ("createdAt", -1), ("_id", -1)]

SORTS = {
    "newest": NEWEST,
    "favorite": TOP_RATED,
    "top": TOP_RATED,
    "rating": TOP_RATED,
    "easiest": None,  # 집계 파이프라인 (난이도 순위 projection)
}


def parse_sort(value: Optional[str], allowed=SORTS) -> str:
    s = (value or "newest").strip().lower()
    if s not in allowed:
        raise ValidationError(f"Unknown sort '{value}'. Use one of: {', '.join(allowed)}.")
    return s


def _twin_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    return to_public({
        "_id": doc["_id"],
        "sourceRecipeId": doc.get("sourceRecipeId"),
        "ratingAvg": doc.get("ratingAvg", 0),
        "ratingCount": doc.get("ratingCount", 0),
    })


async def ensure_twin(db, official_id: Any) -> Tuple[Dict[str, Any], bool]:
    """
    공식 레시피의 커뮤니티 트윈을 돌려준다. (doc, created)
    이미 있으면 아무 필드도 복사하지 않는다 → 평점 데이터 보존.
    동시 최초 요청은 unique 인덱스 + upsert로 1개만 생성, 충돌 시 재조회.
    """
    oid = parse_oid(official_id, "recipe id")
    col = db[COMMUNITY_RECIPES]

    official = await db[RECIPES].find_one({"_id": oid})
    if not official:
        raise NotFoundError("Recipe not found.")

    existing = await col.find_one({"sourceRecipeId": oid}, TWIN_PROJECTION)
    if existing:
        return _twin_out(existing), False

    content = {k: v for k, v in content_of(official).items() if v is not None}
    seed = CommunityRecipeDoc(
        **{"title": "", "difficulty": "", "time": "", **content},
    ).model_dump()
    seed.pop("sourceRecipeId", None)  # 필터 값으로 채워짐

    created = False
    try:
        res = await col.update_one({"sourceRecipeId": oid}, {"$setOnInsert": seed}, upsert=True)
        created = res.upserted_id is not None
    except DuplicateKeyError:
        # 다른 요청이 먼저 만들었음
        log.info("ensure_twin race on %s, reusing existing twin", oid)

    doc = await col.find_one({"sourceRecipeId": oid}, TWIN_PROJECTION)
    if not doc:
        raise NotFoundError("Recipe not found.")
    if created:
        log.info("community twin created for recipe %s -> %s", oid, doc["_id"])
    return _twin_out(doc), created


async def list_community(
    db,
    q: Optional[str] = None,
    sort: Optional[str] = None,
    include_derived: bool = False,
    page: Any = 1,
    limit: Any = None,
) -> Dict[str, Any]:
    sort = parse_sort(sort)
    page, limit, skip = page_params(page, limit)

    filt: Dict[str, Any] = {}
    q = (q or "").strip()
    if q:
        filt["title"] = {"$regex": re.escape(q), "$options": "i"}
    if not include_derived:
        # null 또는 필드 없음 = 사용자 작성 원본
        filt["sourceRecipeId"] = None

    col = db[COMMUNITY_RECIPES]
    total = await col.count_documents(filt)

    if sort == "easiest":
        pipeline: List[Dict[str, Any]] = [
            {"$match": filt},
            {"$addFields": {"difficultyRank": rank_expression("$difficulty")}},
            {"$sort": {"difficultyRank": 1, "createdAt": -1, "_id": -1}},
            {"$skip": skip},
            {"$limit": limit},
            {"$project": {"difficultyRank": 0, **PUBLIC_PROJECTION}},
        ]
        docs = await col.aggregate(pipeline).to_list(length=limit)
    else:
        cur = col.find(filt, PUBLIC_PROJECTION).sort(SORTS[sort]).skip(skip).limit(limit)
        docs = await cur.to_list(length=limit)

    return page_envelope(to_public(docs), page, limit, total)


async def get_community(db, recipe_id: Any) -> Dict[str, Any]:
    oid = parse_oid(recipe_id, "recipe id")
    doc = await db[COMMUNITY_RECIPES].find_one({"_id": oid}, PUBLIC_PROJECTION)
    if not doc:
        raise NotFoundError("Recipe not found.")
    return to_public(doc)
