# app/services/attachments.py
# 레시피 커버 / 단계별 미디어 교체·삭제
# 순서: 입력/소유권 검증 → 새 파일 업로드 → (성공 후) 옛 파일 삭제 시도 → 메타데이터 기록
# 옛 파일 삭제 실패는 경고 로그만 (업로드 성공이 곧 요청 성공)

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId

from app.core.config import settings
from app.core.errors import ForbiddenError, NotFoundError, UpstreamError, ValidationError
from app.db.indexes import USER_RECIPES
from app.services.media import MediaStoreError, destroy_with_fallback
from app.services.my_recipes import sync_public_copy
from app.services.utils import parse_oid

log = logging.getLogger(__name__)

ALLOWED_MIME = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/avif",
    "video/mp4",
    "video/webm",
}

STEP_MEDIA_FIELDS = ("src", "mediaPublicId", "mediaWidth", "mediaHeight", "mediaFormat")


def check_upload(content_type: Optional[str], data: bytes, max_bytes: Optional[int] = None) -> None:
    max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
    if not data:
        raise ValidationError("Missing file")
    if (content_type or "").lower() not in ALLOWED_MIME:
        raise ValidationError("Unsupported file type")
    if len(data) > max_bytes:
        raise ValidationError(f"File too large (max {max_bytes // (1024 * 1024)} MB)")


def parse_step_index(value: Any) -> int:
    try:
        idx = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError("Invalid stepIndex")
    if idx < 0:
        raise ValidationError("Invalid stepIndex")
    return idx


async def load_for_owner(db, user_id: ObjectId, recipe_id: Any) -> Dict[str, Any]:
    """404는 존재 여부, 403은 소유권 (저장된 owner == 토큰 사용자)"""
    oid = parse_oid(recipe_id, "recipeId")
    doc = await db[USER_RECIPES].find_one({"_id": oid})
    if not doc:
        raise NotFoundError("Recipe not found")
    if str(doc.get("owner")) != str(user_id):
        raise ForbiddenError("Forbidden")
    return doc


def _step_at(doc: Dict[str, Any], idx: int) -> Dict[str, Any]:
    steps = doc.get("steps") or []
    if idx >= len(steps):
        raise ValidationError("Step index out of range")
    return dict(steps[idx] or {})


async def _upload(store, data: bytes, folder: str):
    try:
        return await store.upload(data, folder=folder)
    except MediaStoreError as e:
        log.error("media upload failed: %s", e)
        raise UpstreamError(f"Upload failed: {e}")


async def _after_write(db, recipe_id: ObjectId) -> None:
    # 공개 레시피면 커뮤니티 사본도 새 미디어로
    doc = await db[USER_RECIPES].find_one({"_id": recipe_id})
    if doc and doc.get("isPublic"):
        await sync_public_copy(db, doc)


async def replace_cover(db, store, user_id: ObjectId, recipe_id: Any, data: bytes, content_type: Optional[str]) -> Dict[str, Any]:
    recipe = await load_for_owner(db, user_id, recipe_id)
    check_upload(content_type, data)

    result = await _upload(store, data, settings.CLOUDINARY_FOLDER)

    old_id = (recipe.get("image") or {}).get("publicId")
    if old_id and old_id != result.id:
        await destroy_with_fallback(store, old_id)

    image = {
        "url": result.url,
        "publicId": result.id,
        "width": result.width,
        "height": result.height,
        "format": result.format,
    }
    await db[USER_RECIPES].update_one(
        {"_id": recipe["_id"]},
        {"$set": {"image": image, "updatedAt": datetime.now(timezone.utc)}},
    )
    await _after_write(db, recipe["_id"])
    return image


async def delete_cover(db, store, user_id: ObjectId, recipe_id: Any) -> None:
    recipe = await load_for_owner(db, user_id, recipe_id)
    old_id = (recipe.get("image") or {}).get("publicId")
    if old_id:
        await destroy_with_fallback(store, old_id)
    await db[USER_RECIPES].update_one(
        {"_id": recipe["_id"]},
        {"$unset": {"image": ""}, "$set": {"updatedAt": datetime.now(timezone.utc)}},
    )
    await _after_write(db, recipe["_id"])


async def replace_step_media(
    db, store, user_id: ObjectId, recipe_id: Any, step_index: Any, data: bytes, content_type: Optional[str]
) -> Dict[str, Any]:
    oid = parse_oid(recipe_id, "recipeId")
    idx = parse_step_index(step_index)
    check_upload(content_type, data)

    recipe = await load_for_owner(db, user_id, oid)
    step = _step_at(recipe, idx)

    result = await _upload(store, data, f"{settings.CLOUDINARY_FOLDER}/steps")

    old_id = step.get("mediaPublicId")
    if old_id and old_id != result.id:
        await destroy_with_fallback(store, old_id)

    step.update({
        "type": "video" if result.is_video else "image",
        "src": result.url,
        "mediaPublicId": result.id,
        "mediaWidth": result.width,
        "mediaHeight": result.height,
        "mediaFormat": result.format,
    })
    await db[USER_RECIPES].update_one(
        {"_id": oid},
        {"$set": {f"steps.{idx}": step, "updatedAt": datetime.now(timezone.utc)}},
    )
    await _after_write(db, oid)
    return {k: step.get(k) for k in ("type", *STEP_MEDIA_FIELDS)}


async def delete_step_media(db, store, user_id: ObjectId, recipe_id: Any, step_index: Any) -> None:
    oid = parse_oid(recipe_id, "recipeId")
    idx = parse_step_index(step_index)

    recipe = await load_for_owner(db, user_id, oid)
    step = _step_at(recipe, idx)

    # publicId가 없으면 저장소 호출 없이 DB만 정리
    if step.get("mediaPublicId"):
        await destroy_with_fallback(store, step["mediaPublicId"])

    for k in STEP_MEDIA_FIELDS:
        step.pop(k, None)
    step["type"] = "text"
    await db[USER_RECIPES].update_one(
        {"_id": oid},
        {"$set": {f"steps.{idx}": step, "updatedAt": datetime.now(timezone.utc)}},
    )
    await _after_write(db, oid)
