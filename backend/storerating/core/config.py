from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "dev"
    secret_key: str = "change_me_super_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    database_url: str = "postgresql+psycopg2://storeuser:storepass@db:5432/store_rating"
    backend_cors_origins: str = "http://localhost:3000"
    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    request_timeout_seconds: float = 30.0
    host: str = "0.0.0.0"
    port: int = 8000

    # Bootstrap admin, created on startup when no admin exists
    seed_admin: bool = True
    default_admin_name: str = "System Administrator Account"
    default_admin_email: str = "admin@store-rating.com"
    default_admin_password: str = "Admin@123"

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from a comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
