from decimal import Decimal
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Administrator override: this email bypasses the whitelist and always gets the admin role
    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    smtp_host: Optional[str] = Field(None, alias="SMTP_HOST")
    smtp_port: int = Field(587, alias="SMTP_PORT")
    smtp_user: Optional[str] = Field(None, alias="SMTP_USER")
    smtp_password: Optional[str] = Field(None, alias="SMTP_PASS")
    from_email: Optional[str] = Field(None, alias="FROM_EMAIL")

    import_batch_size: int = Field(450, alias="IMPORT_BATCH_SIZE", ge=1)
    auto_pair_batch_size: int = Field(450, alias="AUTO_PAIR_BATCH_SIZE", ge=1)
    # Full-year liabilities that count as standard fee tiers in student statistics
    standard_tiers: List[Decimal] = Field(
        default_factory=lambda: [Decimal("200.00"), Decimal("300.00")],
        alias="STANDARD_TIERS",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def sender_email(self) -> Optional[str]:
        return self.from_email or self.admin_email

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.sender_email)


settings = Settings()
