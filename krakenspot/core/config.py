"""
Configuration Manager - Loads and validates client configuration.

Merges YAML config with environment variables. Environment variables take
precedence over YAML values so credentials never have to live on disk.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_REST_URL = "https://api.kraken.com"
DEFAULT_API_VERSION = "0"
DEFAULT_USER_AGENT = "krakenspot-python"


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------

def _as_bool(v: str) -> bool:
    return v.lower() in ("1", "true", "yes", "on")


_ENV_MAPPINGS = {
    "KRAKEN_API_KEY": ("credentials", "api_key"),
    "KRAKEN_API_SECRET": ("credentials", "api_secret"),
    "KRAKEN_OTP": ("credentials", "otp"),
    "KRAKEN_REST_URL": ("rest", "base_url", lambda v: v.rstrip("/")),
    "KRAKEN_API_VERSION": ("rest", "api_version"),
    "KRAKEN_USER_AGENT": ("rest", "user_agent"),
    "KRAKEN_TIMEOUT_SECONDS": ("rest", "timeout_seconds", float),
    "KRAKEN_MAX_RETRIES": ("rest", "max_retries", int),
    "KRAKEN_TRACING_ENABLED": ("tracing", "enabled", _as_bool),
    "LOG_LEVEL": ("logging", "log_level"),
    "LOG_JSON": ("logging", "json_output", _as_bool),
}


def _apply_env_overrides(config: Dict[str, Any]) -> None:
    """Override YAML values with environment variables where set."""
    for env_key, mapping in _ENV_MAPPINGS.items():
        value = os.getenv(env_key)
        if value is None:
            continue
        section, key = mapping[0], mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str
        try:
            config.setdefault(section, {})[key] = converter(value)
        except (ValueError, TypeError) as e:
            import logging
            logging.getLogger("config").warning(
                "Env %s=%r failed to convert: %s. Using YAML value.",
                env_key, value, e,
            )


def _deep_update(base: Dict[str, Any], updates: Dict[str, Any]) -> None:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value


# ---------------------------------------------------------------------------
# Pydantic Configuration Models
# ---------------------------------------------------------------------------

class RESTConfig(BaseModel):
    base_url: str = DEFAULT_REST_URL
    api_version: str = DEFAULT_API_VERSION
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 20.0
    # Connection retries performed by the httpx transport, not by the client.
    max_retries: int = 3

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v

    @field_validator("api_version")
    @classmethod
    def _check_api_version(cls, v: str) -> str:
        return (v or "").strip().strip("/")

    @field_validator("user_agent")
    @classmethod
    def _check_user_agent(cls, v: str) -> str:
        return (v or "").strip() or DEFAULT_USER_AGENT

    @field_validator("timeout_seconds")
    @classmethod
    def _check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @field_validator("max_retries")
    @classmethod
    def _check_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v


class CredentialsConfig(BaseModel):
    api_key: str = ""
    api_secret: str = ""  # base64, as displayed when the key was created
    otp: str = ""  # second factor, only when 2FA is enabled on the key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_secret)


class TracingConfig(BaseModel):
    enabled: bool = False
    logger_name: str = "krakenspot.tracing"


class LoggingConfig(BaseModel):
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    json_output: bool = False


class ClientConfig(BaseModel):
    """Master configuration model with full validation."""
    rest: RESTConfig = Field(default_factory=RESTConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Configuration Manager (Singleton)
# ---------------------------------------------------------------------------

class ConfigManager:
    """
    Thread-safe configuration manager.

    Loads configuration from a YAML file, then overlays environment
    variables. Validates all values through Pydantic models.
    """

    _instance: Optional[ConfigManager] = None
    _config: Optional[ClientConfig] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> ConfigManager:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self.load()

    def load(self, config_path: str = "config/krakenspot.yaml") -> ClientConfig:
        """Load configuration from YAML + environment variables."""
        self._config = load_config_with_overrides(config_path)
        return self._config

    @property
    def config(self) -> ClientConfig:
        if self._config is None:
            self.load()
        return self._config

    def reload(self, config_path: str = "config/krakenspot.yaml") -> ClientConfig:
        return self.load(config_path)

    def get(self, dotpath: str, default: Any = None) -> Any:
        """
        Access config values using dot notation.

        Example: config.get("rest.timeout_seconds") -> 20.0
        """
        obj = self._config
        for key in dotpath.split("."):
            if hasattr(obj, key):
                obj = getattr(obj, key)
            elif isinstance(obj, dict) and key in obj:
                obj = obj[key]
            else:
                return default
        return obj


def get_config() -> ClientConfig:
    """Get the global configuration instance."""
    return ConfigManager().config


def load_config_with_overrides(
    config_path: str = "config/krakenspot.yaml",
    overrides: Optional[Dict[str, Any]] = None,
) -> ClientConfig:
    """Build a fresh ClientConfig from YAML, env vars and explicit overrides."""
    load_dotenv()

    yaml_config: Dict[str, Any] = {}
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file, "r") as f:
            yaml_config = yaml.safe_load(f) or {}

    _apply_env_overrides(yaml_config)

    if overrides:
        _deep_update(yaml_config, overrides)

    return ClientConfig(**yaml_config)
