"""Configuration loading and Pydantic models for netstorage."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """Signing credentials."""

    key: str = ""
    key_name: str = ""


class ConnectionConfig(BaseModel):
    """Upstream host and HTTP settings."""

    host: str = ""
    scheme: str = "https"
    timeout: float = 30.0


class StorageConfig(BaseModel):
    """Storage account and backend variant configuration."""

    cp_code: str = ""
    path_prefix: str = ""
    variant: str = "object-store"
    create_prefix: bool = True


class LoggingConfig(BaseModel):
    """Log output configuration."""

    level: str = "INFO"
    format: str = "text"


class MetricsConfig(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = True


class NetStorageConfig(BaseModel):
    """Top-level netstorage configuration."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def _parse_auth(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the auth section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "key": str(data.get("key", "")),
        "key_name": str(data.get("key_name", "")),
    }


def _parse_connection(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the connection section from YAML data."""
    if data is None:
        return {}
    return {
        "host": data.get("host", ""),
        "scheme": data.get("scheme", "https"),
        "timeout": data.get("timeout", 30.0),
    }


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    cp_code is coerced to a string since YAML reads bare digits as an int.
    """
    if data is None:
        return {}
    return {
        "cp_code": str(data.get("cp_code", "")),
        "path_prefix": data.get("path_prefix", "") or "",
        "variant": data.get("variant", "object-store"),
        "create_prefix": data.get("create_prefix", True),
    }


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def _parse_metrics(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the metrics section from YAML data."""
    if data is None:
        return {}
    return {"enabled": data.get("enabled", True)}


def load_config(path: Path) -> NetStorageConfig:
    """Load a NetStorageConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated NetStorageConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return NetStorageConfig(
        auth=AuthConfig(**_parse_auth(raw.get("auth"))),
        connection=ConnectionConfig(**_parse_connection(raw.get("connection"))),
        storage=StorageConfig(**_parse_storage(raw.get("storage"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
        metrics=MetricsConfig(**_parse_metrics(raw.get("metrics"))),
    )
