# app/api/routes_saved.py
# 저장한 커뮤니티 레시피 (모든 엔드포인트 로그인 필요)

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.db.models.schemas import SaveRecipeIn
from app.services import saved

router = APIRouter(prefix="/api/saved-community-recipes", tags=["saved"])


@router.get("")
async def list_saved(
    sort: Optional[str] = None,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await saved.list_saved(db, user.id, sort=sort, page=page or 1, limit=limit)


@router.get("/source-ids")
async def saved_source_ids(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return {"ids": await saved.saved_source_ids(db, user.id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def save(body: SaveRecipeIn, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    await saved.save_recipe(db, user.id, body.recipeId)
    return {"ok": True}


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unsave(recipe_id: str, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    await saved.unsave_recipe(db, user.id, recipe_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
