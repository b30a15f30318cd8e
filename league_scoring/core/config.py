from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "League Scoring Engine"
    debug: bool = False

    # Database
    database_url: str = "postgresql://localhost:5432/league_scoring"
    sql_echo: bool = False

    # JWT (tokens are issued by the identity provider, only verified here)
    secret_key: str = "change-me"
    algorithm: str = "HS256"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def async_database_url(self) -> str:
        url = self.database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return url


@lru_cache()
def get_settings() -> Settings:
    return Settings()
