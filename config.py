"""
Application settings and logging setup.

Values come from the environment (a local .env file is loaded first).
"""
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()


class Settings(BaseModel):
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    database_name: Optional[str] = os.getenv("DATABASE_NAME")

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_algorithm: str = os.getenv("JWT_ALG", "HS256")
    jwt_expire_days: int = int(os.getenv("JWT_EXPIRE_DAYS", "30"))

    environment: str = os.getenv("ENVIRONMENT", "development").strip().lower()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    port: int = int(os.getenv("PORT", "8000"))

    default_image_url: str = os.getenv(
        "DEFAULT_IMAGE_URL", "https://via.placeholder.com/300x200?text=Kazakh+Dish"
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()


def configure_logging() -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
