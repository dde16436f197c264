"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "LastMile Delivery API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./lastmile.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    admin_email: str = getenv("ADMIN_EMAIL", "admin@lastmile.local")
    admin_password: str = getenv("ADMIN_PASSWORD", "admin123")
    redis_url: str = getenv("REDIS_URL", "")
    cache_key_prefix: str = getenv("CACHE_KEY_PREFIX", "lastmile:")
    cache_ttl_seconds: dict[str, int] = {
        "offer": 300,
        "nearby_offers": 180,
        "user_profile": 3600,
    }
    nearby_default_radius_km: float = float(getenv("NEARBY_DEFAULT_RADIUS_KM", "10"))
    nearby_max_radius_km: float = float(getenv("NEARBY_MAX_RADIUS_KM", "100"))
    page_size_limit: int = 50


settings: Settings = Settings()
