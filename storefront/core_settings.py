from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    SERVICE_NAME: str = "orders-service"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "storefront"
    POSTGRES_USER: str = "storefront"
    POSTGRES_PASSWORD: str = "storefront"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts
    DATABASE_URL: Optional[str] = None

    # Decrement Product.stock when an order is committed
    TRACK_STOCK: bool = True
    DB_LOCK_TIMEOUT_MS: int = 5000
    DB_STATEMENT_TIMEOUT_MS: int = 15000
    RUN_MIGRATIONS: bool = False

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
