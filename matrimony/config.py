import os
from functools import lru_cache
from pydantic import BaseModel, Field
from pathlib import Path as _Path

# Fallback: attempt to load .env early if not already loaded
try:
    from dotenv import load_dotenv as _load_dotenv  # type: ignore
    _load_dotenv(dotenv_path=_Path(__file__).resolve().parent.parent / ".env", override=False)
except Exception:
    pass


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings(BaseModel):
    # Support multiple common env var names for Mongo connection string
    mongo_uri: str = Field(
        default_factory=lambda: (
            os.getenv("MONGO_URI")
            or os.getenv("MONGODB_URI")
            or os.getenv("MONGO_URL")
            or ""
        )
    )
    mongo_db: str = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME", "matrimony"))
    # Optional: provide a non-SRV fallback URI (e.g., mongodb://127.0.0.1:27017)
    mongo_alt_uri: str = Field(default_factory=lambda: os.getenv("MONGO_ALT_URI", ""))
    # Optional: force direct connection (applies to non-SRV URIs)
    mongo_direct: bool = Field(default_factory=lambda: _env_flag("MONGO_DIRECT"))
    cors_origin: str = Field(default_factory=lambda: os.getenv("CORS_ORIGIN", "http://localhost:5173"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "8081")))

    # Auth (token issuance lives here, verification happens in routers.auth)
    jwt_secret: str = Field(default_factory=lambda: os.getenv("JWT_SECRET", "matrimony-dev-secret"))
    auth_token_ttl: int = Field(default_factory=lambda: int(os.getenv("AUTH_TOKEN_TTL_SECONDS", str(7 * 24 * 3600))))
    auth_rate_limit_window: int = Field(default_factory=lambda: int(os.getenv("AUTH_RATE_LIMIT_WINDOW", "900")))
    auth_rate_limit_max: int = Field(default_factory=lambda: int(os.getenv("AUTH_RATE_LIMIT_MAX", "20")))

    # Wallet: coins spent to unlock one profile's contact details
    unlock_cost: int = Field(default_factory=lambda: int(os.getenv("WALLET_UNLOCK_COST", "10")), gt=0)

    # Recommendations
    recommendation_default_page_size: int = Field(
        default_factory=lambda: int(os.getenv("RECOMMENDATION_PAGE_SIZE", "10"))
    )
    recommendation_max_page_size: int = Field(
        default_factory=lambda: int(os.getenv("RECOMMENDATION_MAX_PAGE_SIZE", "50"))
    )

    # Shared secret for the admin router; empty disables admin endpoints
    admin_api_token: str = Field(default_factory=lambda: os.getenv("ADMIN_API_TOKEN", ""))


@lru_cache()
def get_settings() -> Settings:
    return Settings()
