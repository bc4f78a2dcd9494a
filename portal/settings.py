from typing import List, Optional

from pydantic_settings import BaseSettings
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    jwt_secret: str
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    postgres_db: str = "hackathon"
    # Полный DSN, если задан, заменяет сборку из postgres_* (локальный запуск, тесты)
    database_dsn: Optional[str] = None
    db_echo: bool = False

    # SMTP settings
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_sender: str = "noreply@hackathon.local"
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True

    base_url: str = "http://localhost:9002"
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:9002", "http://localhost:5173"]

    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_dsn:
            return self.database_dsn
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    class Config:
        env_file = BASE_DIR / ".env"


settings = Settings()
