# app/api/routes_recipes.py
# 공식 레시피 카탈로그 (읽기 전용): 시드 스크립트로만 채워짐

from __future__ import annotations
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from app.core.errors import NotFoundError
from app.db.indexes import RECIPES
from app.db.init import get_db
from app.services.utils import parse_oid, to_public

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


@router.get("")
async def list_recipes(q: Optional[str] = None, db=Depends(get_db)) -> List[Dict[str, Any]]:
    filt: Dict[str, Any] = {}
    q = (q or "").strip()
    if q:
        filt["title"] = {"$regex": re.escape(q), "$options": "i"}
    docs = await db[RECIPES].find(filt).sort([("id", 1), ("_id", 1)]).to_list(length=None)
    return to_public(docs)


@router.get("/{recipe_id}")
async def get_recipe(recipe_id: str, db=Depends(get_db)):
    oid = parse_oid(recipe_id, "recipe id")
    doc = await db[RECIPES].find_one({"_id": oid})
    if not doc:
        raise NotFoundError("Recipe not found.")
    return to_public(doc)
