from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8098
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # Database
    DATABASE_PATH: str = ":memory:"
    DATABASE_ECHO: bool = False

    # Telegram launch data
    TELEGRAM_BOT_TOKEN: str = ""
    ALLOW_DEMO_IDENTITY: bool = False
    SEED_DEMO_DATA: bool = False

    # CryptoCloud
    CRYPTOCLOUD_API_URL: str = "https://api.cryptocloud.plus/v1"
    CRYPTOCLOUD_API_KEY: str = ""
    CRYPTOCLOUD_SHOP_ID: str = ""
    TOPUP_CURRENCY: str = "USDT"
    TOPUP_MIN_AMOUNT: Decimal = Decimal("10")
    PUBLIC_BASE_URL: str = ""

    # Lookup providers
    IP_LOOKUP_URL: str = "https://ipapi.co"
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(",") if item.strip()] or ["*"]


settings = Settings()
