# 환경변수 로딩 (.env)
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "stressfreechef"
    DB_INIT_RETRIES: int = 20

    # 인증 토큰
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60 * 24 * 30  # 30일

    # 미디어 저장소 (Cloudinary)
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None
    CLOUDINARY_FOLDER: str = "stressfreechef/recipes"
    MEDIA_TIMEOUT_SECONDS: float = 30.0
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024  # 5MB

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://localhost:8081",  # expo
    ]
    LOG_LEVEL: str = "INFO"

    # 공식 레시피 시드 파일 (scripts/seed_recipes.py)
    SEED_FILE: str = "data/recipes.json"


settings = Settings()
