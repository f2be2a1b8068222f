from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from decimal import Decimal
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'facturacion_user'
    POSTGRES_PASSWORD: str = 'facturacion_pass'
    POSTGRES_DB: str = 'facturacion_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Sobrescribe la URL de Postgres (ej. sqlite:// en pruebas)
    SQL_ECHO: bool = False

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Reglas de negocio de facturación
    BILLING_TAX_PERCENTAGE: Decimal = Decimal("19")
    BILLING_DISCOUNT_PERCENTAGE: Decimal = Decimal("5")
    BILLING_DISCOUNT_MIN_AMOUNT: Decimal = Decimal("500000")
    BILLING_PRICE_DEVIATION_WARNING: Decimal = Decimal("20")
    BILLING_MAX_LINE_ITEMS: int = 50
    BILLING_MAX_QUANTITY_PER_ITEM: int = 1000
    BILLING_MAX_UNIT_PRICE: Decimal = Decimal("50000000")
    BILLING_MAX_INVOICE_TOTAL: Decimal = Decimal("100000000")

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "SQL_ECHO", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
