from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "ReviewHub"
    session_ttl_seconds: int = 3600
    # Search is cursor-only; oversize limits are clamped, never rejected.
    search_default_limit: int = 20
    search_max_limit: int = 50
    # Offset endpoints (latest reviews, feed) reject page sizes above the max.
    default_page_size: int = 20
    max_page_size: int = 100
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000
    # Accounts registered under these usernames may moderate reviews.
    moderator_usernames: list[str] = []

    @property
    def db_path(self) -> Path:
        return self.data_path / "reviewhub.sqlite"

    model_config = {"env_prefix": "REVIEWHUB_"}


settings = Settings()
