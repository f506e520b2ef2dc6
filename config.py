from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

from decision import RateLimitTier, Role


class Settings(BaseSettings):
    # =========================
    # Environment
    # =========================
    ENV: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")

    # =========================
    # Database (PostgreSQL)
    # =========================
    DATABASE_URL: str
    AUTO_CREATE_TABLES: bool = Field(default=False)

    # =========================
    # Redis (rate limit windows)
    # =========================
    REDIS_URL: str

    # =========================
    # Auth (tokens, cookies, hashing)
    # =========================
    JWT_SECRET: str
    JWT_EXPIRES_IN_SECONDS: int = Field(default=24 * 60 * 60)
    COOKIE_MAX_AGE_SECONDS: int = Field(default=15 * 60)
    BCRYPT_ROUNDS: int = Field(default=10)

    # =========================
    # Request gate
    # =========================
    RATE_LIMIT_ADMIN: int = Field(default=20)
    RATE_LIMIT_USER: int = Field(default=10)
    RATE_LIMIT_GUEST: int = Field(default=5)
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=60)

    GATE_EXCLUDED_PATHS: List[str] = Field(default_factory=lambda: ["/health"])
    TRUSTED_PROXIES: List[str] = Field(default_factory=list)
    BOT_ALLOWLIST: List[str] = Field(
        default_factory=lambda: [
            "googlebot",
            "bingbot",
            "duckduckbot",
            "applebot",
            "slackbot",
            "twitterbot",
            "facebookexternalhit",
            "linkedinbot",
        ]
    )

    # =========================
    # Policy classifier ("local" rules or "remote" hosted service)
    # =========================
    CLASSIFIER_MODE: str = Field(default="local")
    CLASSIFIER_URL: Optional[str] = None
    CLASSIFIER_API_KEY: Optional[str] = None
    CLASSIFIER_TIMEOUT_SECONDS: float = Field(default=2.0)

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


class GateConfig(BaseModel):
    """
    Immutable request gate configuration, built once at startup
    and handed to the gate and classifiers.
    """

    model_config = ConfigDict(frozen=True)

    admin: RateLimitTier
    user: RateLimitTier
    guest: RateLimitTier
    excluded_paths: Tuple[str, ...] = ()
    trusted_proxies: Tuple[str, ...] = ()
    bot_allowlist: Tuple[str, ...] = ()

    def tier_for(self, role: Role) -> RateLimitTier:
        return getattr(self, role.value)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GateConfig":
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        return cls(
            admin=RateLimitTier(max_requests=settings.RATE_LIMIT_ADMIN, window_seconds=window),
            user=RateLimitTier(max_requests=settings.RATE_LIMIT_USER, window_seconds=window),
            guest=RateLimitTier(max_requests=settings.RATE_LIMIT_GUEST, window_seconds=window),
            excluded_paths=tuple(settings.GATE_EXCLUDED_PATHS),
            trusted_proxies=tuple(settings.TRUSTED_PROXIES),
            bot_allowlist=tuple(a.lower() for a in settings.BOT_ALLOWLIST),
        )


# Singletons
settings = Settings()
gate_config = GateConfig.from_settings(settings)
