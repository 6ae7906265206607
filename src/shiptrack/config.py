"""Configuration management for shiptrack."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_SECRET_KEY = "change-me-shiptrack-secret"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field("0.0.0.0", description="Interface to bind")
    port: int = Field(3009, description="Port to listen on")


class AuthConfig(BaseModel):
    """Admin authentication configuration."""

    secret_key: str = Field(DEFAULT_SECRET_KEY, description="HMAC key used to sign admin JWTs")
    admin_username: str = Field("admin", description="Admin login name")
    admin_password: str = Field("change-me", description="Admin password")
    token_ttl_hours: int = Field(24, description="Lifetime of an admin token")
    cookie_name: str = Field("token", description="Cookie carrying the admin token")
    cookie_secure: bool = Field(False, description="Send the cookie over HTTPS only")
    cookie_httponly: bool = Field(True, description="Hide the cookie from page scripts")


class StorageConfig(BaseModel):
    """Shipment document store configuration."""

    backend: Literal["sqlite", "firestore"] = Field("sqlite", description="Store backend")
    sqlite_path: str = Field("shiptrack.db", description="SQLite database file")
    firestore_project_id: Optional[str] = Field(None, description="Google Cloud project id")
    firestore_credentials_path: Optional[str] = Field(
        None, description="Service account JSON; application default credentials when unset"
    )
    collection: str = Field("shipments", description="Collection holding shipment documents")


class EmailConfig(BaseModel):
    """Notification email configuration."""

    enabled: bool = Field(True, description="Send shipment notifications")
    from_email: str = Field("no-reply@shiptrack.local", description="Default sender address")
    from_name: str = Field("Shiptrack", description="Default sender display name")
    reply_to: Optional[str] = Field(None, description="Reply-To address for notifications")
    track_base_url: str = Field(
        "http://localhost:3009/track", description="Public tracking page; the tracking id is appended"
    )
    templates_dir: Optional[str] = Field(None, description="Override the bundled email templates")
    ethereal_enabled: bool = Field(True, description="Fall back to an Ethereal test inbox")


class SMTPConfig(BaseModel):
    """SMTP relay configuration."""

    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = Field(False, description="Implicit TLS instead of STARTTLS")

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)


class MailerSendConfig(BaseModel):
    """MailerSend configuration."""

    api_key: Optional[str] = Field(None, description="MailerSend API token")
    from_email: Optional[str] = None
    from_name: Optional[str] = None


class SendGridConfig(BaseModel):
    """SendGrid configuration."""

    api_key: Optional[str] = Field(None, description="SendGrid API key")
    from_email: Optional[str] = None
    from_name: Optional[str] = None


class CorsConfig(BaseModel):
    """Origins allowed to call the admin API with credentials."""

    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )


class RateLimitConfig(BaseModel):
    """Request rate limiting."""

    enabled: bool = True
    default: str = Field("100 per 15 minutes", description="Limit applied to every route")
    login: str = Field("10 per minute", description="Extra limit on the login route")
    storage_uri: str = Field("memory://", description="Flask-Limiter storage backend")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Logging level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )
    file_path: Optional[str] = Field(None, description="Path to log file")
    max_file_size: int = Field(10 * 1024 * 1024, description="Maximum log file size in bytes")
    backup_count: int = Field(5, description="Number of backup log files to keep")
    console_output: bool = Field(True, description="Enable console logging")


class Settings(BaseSettings):
    """Main application settings.

    Environment variables use the ``SHIPTRACK_`` prefix and ``__`` between
    nested keys, e.g. ``SHIPTRACK_SMTP__HOST``.
    """

    app_name: str = Field("shiptrack", description="Application name")
    debug: bool = Field(False, description="Enable debug mode")

    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    smtp: SMTPConfig = Field(default_factory=SMTPConfig)
    mailersend: MailerSendConfig = Field(default_factory=MailerSendConfig)
    sendgrid: SendGridConfig = Field(default_factory=SendGridConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SHIPTRACK_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats values passed in from a config file.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @property
    def uses_default_secret(self) -> bool:
        return self.auth.secret_key == DEFAULT_SECRET_KEY


def _load_config_file(config_file: Path) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file."""
    if not config_file.exists():
        return {}

    with open(config_file, 'r', encoding='utf-8') as f:
        if config_file.suffix.lower() in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        elif config_file.suffix.lower() == '.json':
            return json.load(f)
        else:
            raise ConfigurationError(f"Unsupported config file format: {config_file.suffix}")


@lru_cache()
def load_settings(
    config_dir: Optional[Path] = None,
    env_file: Optional[str] = None,
    config_file: Optional[str] = None
) -> Settings:
    """
    Load application settings from multiple sources.

    Sources are loaded in order of precedence (later sources override earlier):
    1. Default values
    2. Configuration file (YAML/JSON)
    3. Environment file (.env), which never overrides real environment variables
    4. Environment variables

    Args:
        config_dir: Directory containing config files (default: current directory)
        env_file: Path to environment file (default: .env in config_dir)
        config_file: Path to configuration file (default: shiptrack.yaml in config_dir)

    Returns:
        Loaded settings instance
    """
    if config_dir is None:
        config_dir = Path.cwd()

    env_path = Path(env_file) if env_file else config_dir / ".env"
    config_path = Path(config_file) if config_file else config_dir / "shiptrack.yaml"

    if env_path.exists():
        load_dotenv(env_path, override=False)

    file_config = _load_config_file(config_path)

    try:
        return Settings(**file_config)
    except ValueError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}", cause=e)
