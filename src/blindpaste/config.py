"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
Values come from, highest priority first: environment variables
(``BLINDPASTE_`` prefix, ``__`` between section and key), a YAML config
file, then the defaults declared here. Invalid values fail at startup.
"""

import ipaddress
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

DEFAULT_CSP = (
    "default-src 'none'; base-uri 'self'; form-action 'none'; manifest-src 'self'; "
    "connect-src * blob:; script-src 'self' 'unsafe-eval'; style-src 'self'; "
    "font-src 'self'; frame-ancestors 'none'; img-src 'self' data: blob:; "
    "media-src blob:; object-src blob:; "
    "sandbox allow-same-origin allow-scripts allow-forms allow-popups allow-modals allow-downloads"
)


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("BLINDPASTE_CONFIG_FILE")

    if config_path is None:
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/blindpaste
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class MainSettings(BaseModel):
    """General service behaviour."""

    name: str = Field(default="BlindPaste", description="Service name shown to users")
    basepath: str = Field(default="", description="Public base URL; empty means derive from the request")
    discussion: bool = Field(default=True, description="Allow comments on pastes")
    opendiscussion: bool = Field(default=False, description="Preselect open discussion in the client")
    discussiondatedisplay: bool = Field(default=True, description="Return comment creation dates")
    sizelimit: int = Field(default=10485760, gt=0, description="Maximum ciphertext size in bytes (10MiB)")
    cspheader: str = Field(default=DEFAULT_CSP, description="Content-Security-Policy for the document view")


class ExpireSettings(BaseModel):
    """Expiration defaults."""

    default: str = Field(default="1week", description="Expiration used for unknown or missing choices")


class TrafficSettings(BaseModel):
    """Submission rate limiting."""

    limit: int = Field(default=10, description="Seconds between two submissions per client (<1 disables)")
    header: str = Field(default="", description="Request header carrying the client address, e.g. X-Forwarded-For")
    exempted: List[str] = Field(default_factory=list, description="Addresses or CIDR ranges not rate limited")
    creators: List[str] = Field(default_factory=list, description="If set, only these addresses may create")

    @field_validator("exempted", "creators")
    def validate_networks(cls, v: List[str]) -> List[str]:
        """Reject entries that are not IP addresses or CIDR ranges."""
        for entry in v:
            try:
                ipaddress.ip_network(entry.strip(), strict=False)
            except ValueError as e:
                raise ValueError(f"Invalid address or range '{entry}': {e}")
        return [entry.strip() for entry in v]


class PurgeSettings(BaseModel):
    """Expired paste housekeeping."""

    limit: int = Field(default=300, description="Seconds between two purge passes (<1 purges on every create)")
    batchsize: int = Field(default=10, ge=0, description="Maximum pastes removed per purge pass")


class ModelSettings(BaseModel):
    """Storage backend selection."""

    backend: str = Field(default="memory", description="Registered store backend name")
    options: Dict[str, Any] = Field(default_factory=dict, description="Backend specific options")


class YourlsSettings(BaseModel):
    """YOURLS URL shortener proxy."""

    apiurl: str = Field(default="", description="YOURLS API endpoint")
    signature: str = Field(default="", description="YOURLS signature token")
    timeout_seconds: int = Field(default=10, gt=0, description="Request timeout")


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Component settings
    main: MainSettings = Field(default_factory=MainSettings)
    expire: ExpireSettings = Field(default_factory=ExpireSettings)
    expire_options: Dict[str, int] = Field(
        default={
            "5min": 300,
            "10min": 600,
            "1hour": 3600,
            "1day": 86400,
            "1week": 604800,
            "1month": 2592000,
            "1year": 31536000,
            "never": 0,
        },
        description="Expiration choices, label to seconds (0 means never)",
    )
    formatter_options: Dict[str, str] = Field(
        default={
            "plaintext": "Plain Text",
            "syntaxhighlighting": "Source Code",
            "markdown": "Markdown",
        },
        description="Accepted formatter keys and their labels",
    )
    traffic: TrafficSettings = Field(default_factory=TrafficSettings)
    purge: PurgeSettings = Field(default_factory=PurgeSettings)
    model: ModelSettings = Field(default_factory=ModelSettings)
    yourls: YourlsSettings = Field(default_factory=YourlsSettings)

    model_config = SettingsConfigDict(
        env_prefix="BLINDPASTE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        protected_namespaces=(),
    )

    @model_validator(mode="after")
    def validate_expire_default(self) -> "Settings":
        """The default expiration must be one of the offered choices."""
        if self.expire.default not in self.expire_options:
            raise ValueError(
                f"expire.default '{self.expire.default}' is not one of expire_options: "
                f"{sorted(self.expire_options)}"
            )
        for label, seconds in self.expire_options.items():
            if seconds < 0:
                raise ValueError(f"expire_options['{label}'] must not be negative")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Config file data arrives as init kwargs; environment wins over it.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""
    config_data = load_config_file()
    return Settings(**config_data)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
