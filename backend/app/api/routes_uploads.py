# app/api/routes_uploads.py
# 레시피 커버 / 단계 미디어 업로드·삭제 (multipart)

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.services import attachments
from app.services.media import get_media_store

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


@router.post("/recipe-media")
async def upload_recipe_media(
    recipeId: str = Form(...),
    file: UploadFile = File(...),
    db=Depends(get_db),
    store=Depends(get_media_store),
    user: CurrentUser = Depends(get_current_user),
):
    data = await file.read()
    image = await attachments.replace_cover(db, store, user.id, recipeId, data, file.content_type)
    return {"ok": True, "image": image}


@router.delete("/recipe-media/{recipe_id}")
async def delete_recipe_media(
    recipe_id: str,
    db=Depends(get_db),
    store=Depends(get_media_store),
    user: CurrentUser = Depends(get_current_user),
):
    await attachments.delete_cover(db, store, user.id, recipe_id)
    return {"ok": True}


@router.post("/recipe-step-media")
async def upload_step_media(
    recipeId: str = Form(...),
    stepIndex: str = Form(...),
    file: UploadFile = File(...),
    db=Depends(get_db),
    store=Depends(get_media_store),
    user: CurrentUser = Depends(get_current_user),
):
    data = await file.read()
    step = await attachments.replace_step_media(db, store, user.id, recipeId, stepIndex, data, file.content_type)
    return {"ok": True, "stepIndex": attachments.parse_step_index(stepIndex), "step": step}


@router.delete("/recipe-step-media/{recipe_id}/{step_index}")
async def delete_step_media(
    recipe_id: str,
    step_index: str,
    db=Depends(get_db),
    store=Depends(get_media_store),
    user: CurrentUser = Depends(get_current_user),
):
    await attachments.delete_step_media(db, store, user.id, recipe_id, step_index)
    return {"ok": True}
