"""Configuration loading with environment variable substitution."""

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from insurcheck.exceptions import ConfigError

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class AuthConfig(BaseModel):
    """Bearer token validation settings."""

    jwt_secret: str = "insurcheck-development-secret-change-in-production"
    algorithm: str = "HS256"
    issuer: str | None = None
    public_paths: list[str] = Field(default_factory=lambda: ["/health"])


class FileStorageConfig(BaseModel):
    """Document file storage configuration."""

    backend: str = "local"
    path: str | None = None  # Defaults to ./data/documents


class DatabaseStorageConfig(BaseModel):
    """Database backend configuration."""

    backend: str = "sqlite"
    path: str | None = None  # ":memory:" for an in-memory database


class StorageConfig(BaseModel):
    """Storage backends configuration."""

    files: FileStorageConfig = Field(default_factory=FileStorageConfig)
    database: DatabaseStorageConfig = Field(default_factory=DatabaseStorageConfig)


class AccessConfig(BaseModel):
    """Path prefixes guarded by the document access gates."""

    document_prefixes: list[str] = Field(default_factory=lambda: ["/documents"])
    upload_prefixes: list[str] = Field(default_factory=lambda: ["/documents/upload"])


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"]
    )


class Config(BaseModel):
    """Main configuration for insurcheck."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
