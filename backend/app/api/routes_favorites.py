# app/api/routes_favorites.py
# 즐겨찾기 아이템 + 아이템 추천

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.db.models.schemas import FavoriteItemIn, FavoriteItemPatch
from app.services import shopping

router = APIRouter(prefix="/api/favorites", tags=["favorites"])
suggestions = APIRouter(prefix="/api/item-suggestions", tags=["favorites"])


@router.get("")
async def get_favorites(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.get_favorites(db, user.id)


@router.post("")
async def add_favorite(body: FavoriteItemIn, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.add_favorite(db, user.id, body)


@router.patch("/{item_id}")
async def update_favorite(
    item_id: str,
    body: FavoriteItemPatch,
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await shopping.update_favorite(db, user.id, item_id, body)


@router.delete("/{item_id}")
async def delete_favorite(item_id: str, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.delete_favorite(db, user.id, item_id)


@suggestions.get("")
async def get_suggestions(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.get_suggestions(db, user.id)
