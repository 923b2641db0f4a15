from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_name: str = "Order Desk"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    data_dir: Path = Path.home() / ".order-desk"
    database_filename: str = "orders.db"
    fsync_on_persist: bool = True

    # Listing
    max_page_size: int = 500

    # Local shell that talks to the API
    cors_origins: List[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_prefix = "ORDER_DESK_"
        extra = "allow"

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_filename


@lru_cache()
def get_settings() -> Settings:
    return Settings()
