# app/services/utils.py
# 공통 유틸
# - ObjectId 파싱/직렬화
# - 페이지네이션 파라미터 정리
# - 대소문자 무시 텍스트 중복 제거 (아이템 추천용)

from __future__ import annotations
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId

from app.core.errors import ValidationError

DEFAULT_LIMIT = 12
MAX_LIMIT = 50


def parse_oid(value: Any, what: str = "id") -> ObjectId:
    # 잘못된 id는 항상 400
    if isinstance(value, ObjectId):
        return value
    s = str(value or "").strip()
    if not ObjectId.is_valid(s) or len(s) != 24:
        raise ValidationError(f"Invalid {what}.")
    return ObjectId(s)


def maybe_oid(value: Any) -> Optional[ObjectId]:
    try:
        return parse_oid(value)
    except ValidationError:
        return None


def to_public(value: Any) -> Any:
    # ObjectId → str (중첩 dict/list 포함). datetime은 FastAPI 인코더에 맡긴다
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: to_public(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_public(v) for v in value]
    return value


def page_params(page: Any, limit: Any, default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int, int]:
    """(page, limit, skip). page ≥ 1, 1 ≤ limit ≤ 50, 숫자가 아니면 기본값"""
    try:
        p = int(page)
    except (TypeError, ValueError):
        p = 1
    try:
        lim = int(limit)
    except (TypeError, ValueError):
        lim = default_limit
    if lim == 0:
        lim = default_limit
    p = max(p, 1)
    lim = min(max(lim, 1), MAX_LIMIT)
    return p, lim, (p - 1) * lim


def page_envelope(items: List[Any], page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "items": items,
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def timestamp_of(doc: Dict[str, Any], field: str = "createdAt") -> float:
    v = doc.get(field)
    if isinstance(v, datetime):
        return v.timestamp()
    # createdAt 없는 옛 문서는 ObjectId 생성시각으로
    oid = doc.get("_id")
    if isinstance(oid, ObjectId):
        return oid.generation_time.timestamp()
    return 0.0


def dedupe_texts(texts: Iterable[str]) -> List[str]:
    """공백 정리 후 대소문자 무시 중복 제거 (처음 나온 표기 유지)"""
    seen, out = set(), []
    for t in texts:
        t = (t or "").strip()
        if not t:
            continue
        k = t.casefold()
        if k in seen:
            continue
        seen.add(k)
        out.append(t)
    return out
