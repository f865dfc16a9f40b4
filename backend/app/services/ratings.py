# app/services/ratings.py
# 커뮤니티 레시피 평점 집계
# - 사용자당 1개 (재평가 시 제자리 덮어쓰기, append 아님)
# - ratingAvg = 합/개수 (비어 있으면 0), ratingCount = 원장 길이
# - rating(레거시) = ratingAvg 반올림(half-up) 정수, 매 쓰기마다 재계산
# - 저장은 revision 조건부 단일 update → 동시 수정이면 409 (자동 재시도 없음)

from __future__ import annotations
import logging
import math
from datetime import datetime, timezone
from numbers import Integral, Real
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.indexes import COMMUNITY_RECIPES
from app.services.utils import parse_oid

log = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating_value(value: Any) -> int:
    # bool은 int의 하위 타입이라 명시적으로 거절
    if isinstance(value, bool):
        raise ValidationError("Rating must be 1-5 (integer).")
    if isinstance(value, str):
        # 폼/클라이언트가 보내는 "5" 같은 정수 문자열은 허용
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError("Rating must be 1-5 (integer).")
    if isinstance(value, Integral):
        v = int(value)
    elif isinstance(value, Real) and float(value).is_integer():
        v = int(value)
    else:
        raise ValidationError("Rating must be 1-5 (integer).")
    if v < MIN_RATING or v > MAX_RATING:
        raise ValidationError("Rating must be 1-5 (integer).")
    return v


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def apply_rating(ratings: List[Dict[str, Any]], user_id: ObjectId, value: int) -> List[Dict[str, Any]]:
    """원장 복사본에 user의 값을 덮어쓰거나 추가"""
    out = [dict(r) for r in (ratings or [])]
    uid = str(user_id)
    for r in out:
        if str(r.get("user")) == uid:
            r["value"] = value
            return out
    out.append({"user": user_id, "value": value})
    return out


def summarize(ratings: List[Dict[str, Any]]) -> Tuple[float, int, int]:
    count = len(ratings or [])
    if not count:
        return 0.0, 0, 0
    total = sum(int(r.get("value") or 0) for r in ratings)
    avg = total / count
    return avg, count, round_half_up(avg)


async def rate_recipe(db, recipe_id: Any, user_id: ObjectId, value: Any) -> Dict[str, Any]:
    oid = parse_oid(recipe_id, "recipe id")
    v = validate_rating_value(value)

    col = db[COMMUNITY_RECIPES]
    doc = await col.find_one({"_id": oid}, {"ratings": 1, "revision": 1})
    if not doc:
        raise NotFoundError("Recipe not found.")

    ratings = apply_rating(doc.get("ratings") or [], user_id, v)
    avg, count, rounded = summarize(ratings)

    # 읽은 시점의 revision이 그대로일 때만 기록
    res = await col.update_one(
        {"_id": oid, "revision": doc.get("revision")},
        {
            "$set": {
                "ratings": ratings,
                "ratingAvg": avg,
                "ratingCount": count,
                "rating": rounded,
                "updatedAt": datetime.now(timezone.utc),
            },
            "$inc": {"revision": 1},
        },
    )
    if res.matched_count == 0:
        if await col.count_documents({"_id": oid}) == 0:
            raise NotFoundError("Recipe not found.")
        log.info("rating conflict on %s (user=%s)", oid, user_id)
        raise ConflictError("Recipe was modified concurrently, please retry.")

    return {"ok": True, "ratingAvg": avg, "ratingCount": count, "ratingRounded": rounded}


async def my_rating(db, recipe_id: Any, user_id: ObjectId) -> Optional[int]:
    """사용자 본인 평점. 평가 안 했으면 None (0은 유효값 아님)"""
    oid = parse_oid(recipe_id, "recipe id")
    doc = await db[COMMUNITY_RECIPES].find_one({"_id": oid}, {"ratings": 1})
    if not doc:
        raise NotFoundError("Recipe not found.")
    uid = str(user_id)
    for r in doc.get("ratings") or []:
        if str(r.get("user")) == uid:
            return int(r["value"])
    return None
