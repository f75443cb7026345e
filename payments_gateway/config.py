"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # External Services
    gnosis_pay_api_base: str = "https://api.gnosispay.com"
    gnosis_pay_rewards_path: str = "/api/v1/rewards"
    gnosis_pay_transactions_path: str = "/api/v1/cards/transactions"

    # Service
    service_name: str = "payments-gateway"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 30.0
    gnosis_pay_max_retries: int = 3
    gnosis_pay_retry_delay_seconds: float = 1.0  # Linear backoff: delay * attempt

    # Rewards
    default_currency: str = "EUR"
    og_bonus_rate: float = 1.0
    projection_months: int = 6


settings = Settings()
