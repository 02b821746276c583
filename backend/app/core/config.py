from pydantic_settings import BaseSettings
from typing import List, Union, Optional
from pydantic import field_validator


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./ledgerline.db"

    # LLM
    OPENAI_API_KEY: Optional[str] = None  # Generation is disabled when unset
    LLM_MODEL: str = "gpt-4o"
    LLM_TPM_LIMIT: int = 90000  # Tokens per minute limit (adjust per your tier)

    # Cron
    CRON_SECRET: Optional[str] = None  # Unset means the cron endpoint always refuses

    # Application
    SECRET_KEY: str = "change-me-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    DEBUG: bool = False
    SITE_URL: str = "https://finance-crypto-blog.com"
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Split by comma or keep as single item
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("SITE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # Cookie Security
    COOKIE_SECURE: bool = True  # Set to False for local development without HTTPS
    COOKIE_SAMESITE: str = "lax"  # Options: "strict", "lax", "none"
    COOKIE_DOMAIN: Optional[str] = None  # Optional: restrict cookies to specific domain
    ENABLE_HSTS: bool = True  # HTTP Strict Transport Security
    HSTS_MAX_AGE: int = 31536000  # 1 year in seconds
    HSTS_INCLUDE_SUBDOMAINS: bool = True  # Apply HSTS to all subdomains
    HSTS_PRELOAD: bool = False  # Submit to browser HSTS preload lists

    @property
    def is_production(self) -> bool:
        """Detect if running in production environment."""
        return self.COOKIE_SECURE and not self.DEBUG

    @property
    def generation_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
