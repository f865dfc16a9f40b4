# scripts/seed_recipes.py
# 공식 레시피 시드: JSON 파일(레시피 배열) → recipes 컬렉션 벌크 upsert
# 사용: python -m app.scripts.seed_recipes data/recipes.json
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import UpdateOne

from app.core.config import settings
from app.db.indexes import RECIPES, ensure_indexes
from app.db.models.recipe import STEP_FIELDS

log = logging.getLogger("seed")

# 공식 레시피에만 있는 다국어/번호 필드
EXTRA_FIELDS = ("titleCs", "ingredientsCs", "id", "rating")
STEP_EXTRA = ("descriptionCs",)


def make_doc(item: Dict[str, Any]) -> Dict[str, Any]:
    """입력 레코드 → recipes 문서 (모르는 키는 버림)"""
    doc: Dict[str, Any] = {
        "title": str(item.get("title") or "").strip(),
        "difficulty": str(item.get("difficulty") or "").strip(),
        "time": str(item.get("time") or "").strip(),
        "imgSrc": item.get("imgSrc"),
        "ingredients": [str(x) for x in item.get("ingredients") or []],
        "steps": [
            {k: s[k] for k in (*STEP_FIELDS, *STEP_EXTRA) if s.get(k) is not None}
            for s in item.get("steps") or []
            if isinstance(s, dict)
        ],
    }
    for k in EXTRA_FIELDS:
        if item.get(k) is not None:
            doc[k] = item[k]
    return doc


def build_ops(items: List[Dict[str, Any]]) -> List[UpdateOne]:
    # 숫자 id가 있으면 id 기준, 없으면 제목 기준 upsert
    now = datetime.now(timezone.utc)
    ops = []
    for item in items:
        d = make_doc(item)
        if not d["title"]:
            log.warning("skip recipe without title: %r", item)
            continue
        q = {"id": d["id"]} if d.get("id") is not None else {"title": d["title"]}
        ops.append(
            UpdateOne(
                q,
                {
                    # 항상 최신 스냅샷 반영
                    "$set": {**d, "updatedAt": now},
                    # 최초 생성 시에만 createdAt 기록
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            )
        )
    return ops


async def seed(db, items: List[Dict[str, Any]]) -> Dict[str, int]:
    ops = build_ops(items)
    if not ops:
        return {"matched": 0, "upserted": 0}
    res = await db[RECIPES].bulk_write(ops, ordered=False)
    return {"matched": res.matched_count or 0, "upserted": len(res.upserted_ids or {})}


async def main(path: str) -> None:
    with open(path, encoding="utf-8") as f:
        items = json.load(f)
    if not isinstance(items, list):
        raise SystemExit(f"{path}: expected a JSON array of recipes")

    cli = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
    try:
        db = cli[settings.MONGO_DB]
        await ensure_indexes(db)
        result = await seed(db, items)
        log.info("[seed] done. file=%s matched=%d upserted=%d", path, result["matched"], result["upserted"])
    finally:
        cli.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else settings.SEED_FILE))
