# app/api/routes_shopping.py
# 장보기 목록 + 가게 옵션 (변경 요청은 항상 전체 목록을 돌려준다)

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.db.models.schemas import ShopIn, ShoppingItemIn, ShoppingItemPatch
from app.services import shopping

router = APIRouter(prefix="/api/shopping-list", tags=["shopping"])


@router.get("")
async def get_list(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.get_shopping_list(db, user.id)


@router.post("")
async def add_item(body: ShoppingItemIn, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.add_shopping_item(db, user.id, body)


# 가게 옵션: /{item_id}보다 먼저 선언
@router.get("/shop-options")
async def list_shops(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.list_shops(db, user.id)


@router.post("/shop-options", status_code=status.HTTP_201_CREATED)
async def create_shop(body: ShopIn, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.create_shop(db, user.id, body)


@router.delete("/shop-options/{shop_id}")
async def delete_shop(shop_id: str, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.delete_shop(db, user.id, shop_id)


@router.patch("/{item_id}")
async def update_item(
    item_id: str,
    body: ShoppingItemPatch,
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await shopping.update_shopping_item(db, user.id, item_id, body)


@router.delete("/{item_id}")
async def delete_item(item_id: str, db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await shopping.delete_shopping_item(db, user.id, item_id)
