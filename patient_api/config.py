"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: Database connection string
        secret_key: Secret key for JWT token encoding
        algorithm: Algorithm used for JWT encoding (typically HS256)
        access_token_expire_minutes: Access token expiration time in minutes
        impersonation_token_expire_minutes: Lifetime of admin impersonation tokens
        environment: development, production or test
        log_level: Root log level

        # Payment processor settings
        stripe_secret_key: Secret API key for the payment processor
        stripe_api_base: Base URL of the payment processor REST API
        stripe_webhook_secret: Signing secret for incoming webhooks
        stripe_platform_account_id: Platform account receiving refund coverage transfers

        # Background jobs
        cron_enabled: Whether the cron registry starts with the application
        ticket_auto_close_days: Days a resolved ticket waits for a patient reply
    """
    # Database settings
    database_url: str

    # JWT settings
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    impersonation_token_expire_minutes: int = 30

    # Runtime settings
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = [
        "http://localhost:3000",  # Patient frontend
        "http://localhost:3002",  # Admin portal
        "http://localhost:3003",  # Tenant portal
        "http://localhost:3004",  # Doctor portal
        "http://localhost:3005",  # Affiliate portal
    ]

    # Payment processor settings
    stripe_secret_key: str = ""
    stripe_api_base: str = "https://api.stripe.com/v1"
    stripe_webhook_secret: Optional[str] = None
    stripe_platform_account_id: str = ""
    stripe_timeout_seconds: float = 30.0
    webhook_tolerance_seconds: int = 300
    webhook_dedup_size: int = 1000

    # Background job settings
    cron_enabled: bool = True
    ticket_auto_close_days: int = 3

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

# Create settings instance
settings = Settings()
