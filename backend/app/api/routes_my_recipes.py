# app/api/routes_my_recipes.py
# 내 레시피 CRUD (공개 전환 시 커뮤니티 사본 동기화)

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.db.models.schemas import MyRecipeIn, MyRecipePatch
from app.services import my_recipes
from app.services.media import get_media_store

router = APIRouter(prefix="/api/my-recipes", tags=["my-recipes"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(body: MyRecipeIn, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await my_recipes.create_recipe(db, user.id, body)


@router.get("")
async def list_mine(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await my_recipes.list_recipes(db, user.id, page=page or 1, limit=limit)


@router.get("/{recipe_id}")
async def get_one(recipe_id: str, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await my_recipes.get_recipe(db, user.id, recipe_id)


@router.patch("/{recipe_id}")
async def update(
    recipe_id: str,
    body: MyRecipePatch,
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await my_recipes.update_recipe(db, user.id, recipe_id, body)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete(
    recipe_id: str,
    db=Depends(get_db),
    store=Depends(get_media_store),
    user: CurrentUser = Depends(get_current_user),
):
    await my_recipes.delete_recipe(db, store, user.id, recipe_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
