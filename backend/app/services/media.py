# app/services/media.py
# 미디어 저장소 (Cloudinary)
# - upload(data, folder) → UploadResult(url, id, width, height, format, resource_type)
# - destroy(id, resource_type) → 실패 시 MediaStoreError
# - SDK는 동기 → 스레드로 돌리고 호출자 쪽 타임아웃 적용

from __future__ import annotations
import asyncio
import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from app.core.config import settings

log = logging.getLogger(__name__)


class MediaStoreError(Exception):
    pass


class MediaNotReady(MediaStoreError):
    # 자격증명 미설정
    pass


@dataclass
class UploadResult:
    url: str
    id: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    resource_type: str = "image"

    @property
    def is_video(self) -> bool:
        return self.resource_type == "video"


class CloudinaryMediaStore:
    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        timeout: float = 30.0,
    ):
        self.timeout = timeout
        self.ready = bool(cloud_name and api_key and api_secret)
        if self.ready:
            cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    async def _call(self, fn, *args, **kwargs) -> Dict[str, Any]:
        if not self.ready:
            raise MediaNotReady("Cloudinary credentials are not configured")
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise MediaStoreError(f"media store timed out after {self.timeout:.0f}s")
        except cloudinary.exceptions.Error as e:
            raise MediaStoreError(str(e)) from e

    async def upload(self, data: bytes, folder: str) -> UploadResult:
        res = await self._call(
            cloudinary.uploader.upload,
            io.BytesIO(data),
            folder=folder,
            resource_type="auto",  # 이미지/비디오 자동 판별
            transformation=[{"quality": "auto", "fetch_format": "auto"}],
        )
        if not res or not res.get("public_id"):
            raise MediaStoreError("media store returned no public_id")
        return UploadResult(
            url=res.get("secure_url") or res.get("url") or "",
            id=res["public_id"],
            width=res.get("width"),
            height=res.get("height"),
            format=res.get("format"),
            resource_type=res.get("resource_type") or "image",
        )

    async def destroy(self, public_id: str, resource_type: str = "auto") -> None:
        res = await self._call(cloudinary.uploader.destroy, public_id, resource_type=resource_type, invalidate=True)
        # {"result": "ok"} 외에는 ("not found" 포함) 실패로 취급
        result = (res or {}).get("result")
        if result != "ok":
            raise MediaStoreError(f"destroy {public_id} ({resource_type}) -> {result}")


# 저장소 삭제 API가 리소스 타입에 민감 → auto, image, video 순서로 시도
DESTROY_FALLBACK = ("auto", "image", "video")


async def destroy_with_fallback(store, public_id: Optional[str], resource_types=DESTROY_FALLBACK) -> bool:
    """
    하나라도 성공하면 True. 전부 실패해도 예외 없이 경고 로그만 남긴다
    (새 첨부/DB 정리가 우선, 고아 파일은 허용).
    """
    if not public_id:
        return False
    errors = []
    for rt in resource_types:
        try:
            await store.destroy(public_id, resource_type=rt)
            return True
        except MediaStoreError as e:
            errors.append(f"{rt}: {e}")
    log.warning("media destroy failed for %s | %s", public_id, " | ".join(errors))
    return False


async def destroy_recipe_media(store, doc: Dict[str, Any]) -> None:
    # 커버 + 단계별 미디어 best-effort 정리
    cover = (doc.get("image") or {}).get("publicId")
    if cover:
        await destroy_with_fallback(store, cover)
    for step in doc.get("steps") or []:
        if isinstance(step, dict) and step.get("mediaPublicId"):
            await destroy_with_fallback(store, step["mediaPublicId"])


@lru_cache(maxsize=1)
def get_media_store() -> CloudinaryMediaStore:
    store = CloudinaryMediaStore(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        timeout=settings.MEDIA_TIMEOUT_SECONDS,
    )
    if not store.ready:
        log.warning("media store not configured; uploads will fail")
    return store
