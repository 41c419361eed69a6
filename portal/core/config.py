"""
Portal de Matrículas - Configuration
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
import secrets
from pathlib import Path
from dotenv import load_dotenv

# Carrega .env com override para sobrescrever variáveis do sistema
env_file = Path(__file__).parent.parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file, override=True)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Portal de Matrículas"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Database (aceita DATABASE_URL ou PORTAL_DATABASE_URL)
    DATABASE_URL: Optional[str] = None
    PORTAL_DATABASE_URL: str = "sqlite+aiosqlite:///./portal.db"

    @property
    def db_url(self) -> str:
        """Retorna DATABASE_URL se definido, senão PORTAL_DATABASE_URL"""
        return self.DATABASE_URL or self.PORTAL_DATABASE_URL

    # Security
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Admin
    ADMIN_EMAIL: str = "admin@portal.local"
    ADMIN_PASSWORD: str = "change-me-in-production"

    # CORS
    CORS_ORIGINS: list = ["*"]

    # URL pública do portal (usada no link de verificação de certificados)
    PUBLIC_APP_URL: str = "http://localhost:5173"

    # Asaas (as chaves ficam na tabela payment_settings)
    ASAAS_PRODUCTION_URL: str = "https://api.asaas.com/v3"
    ASAAS_SANDBOX_URL: str = "https://sandbox.asaas.com/api/v3"
    ASAAS_TIMEOUT_SECONDS: float = 15.0
    PIX_QR_CODE_DELAY_SECONDS: float = 2.0

    # Valores
    MINIMUM_CHARGE_AMOUNT: float = 5.00
    DEFAULT_PRE_ENROLLMENT_FEE: float = 57.00

    # Webhook de automação (n8n)
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0

    # Rate limiting nos endpoints públicos
    RATE_LIMIT_ENABLED: bool = True

    class Config:
        extra = "ignore"
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
