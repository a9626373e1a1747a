import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_name: str = "gymwear"
    jwt_secret: str = "devsecret"
    jwt_expires_days: int = 7
    frontend_origin: str = "http://localhost:3000"
    cors_origins: List[str] = []
    stripe_secret_key: Optional[str] = None
    stripe_publishable_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    uploads_dir: str = "uploads"
    public_base_url: str = ""
    upload_max_file_size_mb: int = 5
    hero_upload_max_file_size_mb: int = 20
    log_level: str = "INFO"


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        database_name=os.getenv("DATABASE_NAME", "gymwear"),
        jwt_secret=os.getenv("JWT_SECRET", "devsecret"),
        jwt_expires_days=int(os.getenv("JWT_EXPIRES_DAYS", "7")),
        frontend_origin=os.getenv("FRONTEND_ORIGIN", "http://localhost:3000"),
        cors_origins=_split(os.getenv("CORS_ORIGINS")),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
        stripe_publishable_key=os.getenv("STRIPE_PUBLISHABLE_KEY"),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
        uploads_dir=os.getenv("UPLOADS_DIR", "uploads"),
        public_base_url=os.getenv("PUBLIC_BASE_URL", ""),
        upload_max_file_size_mb=int(os.getenv("UPLOAD_MAX_FILE_SIZE_MB", "5")),
        hero_upload_max_file_size_mb=int(os.getenv("HERO_UPLOAD_MAX_FILE_SIZE_MB", "20")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def setup_logging(level: str = "INFO"):
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(getattr(h, "_gymwear", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - [%(levelname)-7s] - %(message)s")
    )
    handler._gymwear = True
    root.addHandler(handler)
