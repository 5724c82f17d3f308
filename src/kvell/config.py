"""Configuration loading with environment variable substitution."""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")

BackendName = Literal["memory", "redis", "dynamodb"]


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


class TTLMixin(BaseModel):
    """TTL setting shared by every backend. Zero disables expiry."""

    ttl: timedelta = timedelta(0)  # seconds or ISO 8601 duration

    @field_validator("ttl")
    @classmethod
    def _non_negative(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("ttl cannot be negative")
        return v


class MemoryConfig(TTLMixin):
    """In-memory backend settings."""


class RedisConfig(TTLMixin):
    """Redis backend settings."""

    url: str | None = None  # redis://... takes precedence over host/port
    host: str = "localhost"
    port: int = 6379
    password: str | None = None
    db: int = 0
    max_connections: int | None = None  # None = unbounded
    idle_timeout: int = 240  # seconds before an idle connection is re-checked


class DynamoDBConfig(TTLMixin):
    """DynamoDB backend settings."""

    table_name: str = ""
    region: str | None = None
    endpoint_url: str | None = None  # e.g. http://localhost:8000 for DynamoDB Local
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    read_capacity_units: int = Field(default=1, gt=0)
    write_capacity_units: int = Field(default=1, gt=0)
    wait_for_table: bool = True


class StoreConfig(BaseModel):
    """Main configuration: which backend to use and its settings."""

    backend: BackendName = "memory"
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    dynamodb: DynamoDBConfig = Field(default_factory=DynamoDBConfig)

    def backend_settings(self) -> dict[str, Any]:
        """Keyword arguments for the selected backend's constructor."""
        section: BaseModel = getattr(self, self.backend)
        return section.model_dump()

    @classmethod
    def from_file(cls, path: str | Path) -> "StoreConfig":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        data = substitute_env_vars(data)
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreConfig":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)
