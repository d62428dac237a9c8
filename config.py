import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


# ------------------------------------------------------------
# Configuration
# ------------------------------------------------------------

def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # MongoDB
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "storefront"

    # Server
    port: int = 5000

    # JWT config, the secret has no default and must come from the environment
    jwt_secret_key: str | None = None
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = 30

    # Uploaded and static assets
    static_dir: str = "./public"

    # Outbound email, disabled when no API key is set
    resend_api_key: str | None = None
    mail_from: str = "Storefront <no-reply@storefront.local>"

    # Book names refused by the pre-create hook
    rejected_book_names: tuple[str, ...] = ("book1",)

    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("*",))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            mongo_url=os.getenv("MONGO_URL", cls.mongo_url),
            mongo_db=os.getenv("MONGO_DB", cls.mongo_db),
            port=int(os.getenv("PORT", cls.port)),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            token_expire_minutes=int(os.getenv("TOKEN_EXPIRE_MINUTES", cls.token_expire_minutes)),
            static_dir=os.getenv("STATIC_DIR", cls.static_dir),
            resend_api_key=os.getenv("RESEND_API_KEY"),
            mail_from=os.getenv("MAIL_FROM", cls.mail_from),
            rejected_book_names=_split_csv(os.getenv("REJECTED_BOOK_NAMES", "book1")),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()
