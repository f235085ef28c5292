from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "sniket"
    DB_PASSWORD: str = ""
    DB_NAME: str = "sniket"

    # Full SQLAlchemy URL; wins over the DB_* parts when set (sqlite for tests)
    DATABASE_URI: Optional[str] = None

    # Service-account JSON path. Firebase is initialised on first use.
    FIREBASE_CREDENTIALS: Optional[str] = None

    FCM_DEFAULT_CLICK_ACTION: str = "/"
    FCM_NOTIFICATION_ICON: str = "/assets/logo.png"
    FCM_NOTIFICATION_BADGE: str = "/assets/badge.png"
    FCM_STALE_TOKEN_DAYS: int = 30

    # Bearer key for server-to-server send routes; open when unset
    INTERNAL_API_KEY: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def DATABASE_URL(self) -> str:
        """SQLAlchemy connection URL (MySQL unless DATABASE_URI overrides it)."""
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return (
            f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
