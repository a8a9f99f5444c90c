import re
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", alias="LOG_LEVEL")


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    env: str = Field(default="development", alias="APP_ENV")
    host: str = Field(default="0.0.0.0", alias="APP_HOST")
    port: int = Field(default=8000, alias="APP_PORT")

    database_url: str = Field(default="sqlite:///./data/garage.db", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Comma separated list of frontend origins allowed by CORS
    client_url: str = Field(default="http://localhost:3001", alias="CLIENT_URL")

    jwt_secret: str = Field(default="change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_expires_minutes: int = Field(default=1440, alias="JWT_SESSION_EXPIRES_MINUTES")

    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")
    login_max_failures: int = Field(default=5, alias="LOGIN_MAX_FAILURES")

    # Registrations and logins from these addresses get the admin role
    admin_emails: str = Field(default="", alias="ADMIN_EMAILS")
    # Created at startup when both are set and the address is not registered yet
    bootstrap_admin_email: str = Field(default="", alias="BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: str = Field(default="", alias="BOOTSTRAP_ADMIN_PASSWORD")
    bootstrap_admin_name: str = Field(default="Administrator", alias="BOOTSTRAP_ADMIN_NAME")

    # Public base URL used to build links in outgoing mail
    base_url: str = Field(default="http://localhost:8000", alias="BASE_URL")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def client_urls(self) -> list[str]:
        return [origin.strip() for origin in self.client_url.split(",") if origin.strip()]

    @property
    def admin_email_list(self) -> set[str]:
        return {email.lower() for email in re.split(r"[\s,;]+", self.admin_emails) if email}


@lru_cache
def get_settings() -> AppConfig:
    return AppConfig()
