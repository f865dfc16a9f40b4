# app/api/routes_community.py
# 커뮤니티 레시피: 목록/검색, 상세, 공식 레시피 트윈 보장, 평점

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.db.models.schemas import RateIn
from app.services import community, ratings

router = APIRouter(prefix="/api/community-recipes", tags=["community"])


@router.get("")
async def list_community_recipes(
    q: Optional[str] = None,
    sort: Optional[str] = None,
    includeDerived: bool = False,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db=Depends(get_db),
):
    # page/limit은 문자열로 받아 서비스에서 보정 (숫자 아님 → 기본값)
    return await community.list_community(
        db, q=q, sort=sort, include_derived=includeDerived, page=page or 1, limit=limit,
    )


# 정적 경로를 /{recipe_id}보다 먼저 선언
@router.post("/ensure-from-recipe/{recipe_id}")
async def ensure_from_recipe(
    recipe_id: str,
    response: Response,
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    twin, created = await community.ensure_twin(db, recipe_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return twin


@router.get("/{recipe_id}")
async def get_community_recipe(recipe_id: str, db=Depends(get_db)):
    return await community.get_community(db, recipe_id)


@router.post("/{recipe_id}/rate")
async def rate(
    recipe_id: str,
    body: RateIn,
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await ratings.rate_recipe(db, recipe_id, user.id, body.value)


@router.get("/{recipe_id}/my-rating")
async def my_rating(
    recipe_id: str,
    db=Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return {"value": await ratings.my_rating(db, recipe_id, user.id)}
