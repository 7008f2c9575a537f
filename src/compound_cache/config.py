"""Configuration models and loading utilities.

Configuration is layered: model defaults, then an optional YAML file, then
``COMPOUND_CACHE__SECTION__KEY`` environment variables, then explicit
overrides (for example from CLI options). The merged payload is validated by
:class:`AppConfig`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping, Sequence
from pathlib import Path
from typing import Annotated, Any, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, ValidationError

from compound_cache.exceptions import ConfigError
from compound_cache.logger import LogConfig, LogFormat

__all__ = [
    "ENV_PREFIX",
    "RetryConfig",
    "PubChemConfig",
    "CacheConfig",
    "LoggingConfig",
    "AppConfig",
    "load_config",
]

ENV_PREFIX = "COMPOUND_CACHE__"

StatusCode = Annotated[int, Field(ge=100, le=599)]


class RetryConfig(BaseModel):
    """Retry policy mounted on the HTTP session."""

    model_config = ConfigDict(extra="forbid")

    total: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Total number of retry attempts (excluding the first call).",
    )
    backoff_factor: Annotated[float, Field(ge=0)] = Field(
        default=1.0,
        description="Backoff factor passed to urllib3 between attempts.",
    )
    statuses: tuple[StatusCode, ...] = Field(
        default=(429, 500, 502, 503, 504),
        description="HTTP status codes that should trigger a retry.",
    )


class PubChemConfig(BaseModel):
    """Connection settings for the PubChem PUG-REST resolver."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(
        default="https://pubchem.ncbi.nlm.nih.gov/rest/pug",
        description="Root of the PUG-REST API.",
    )
    timeout_sec: PositiveFloat = Field(default=30.0, description="Read timeout in seconds.")
    connect_timeout_sec: PositiveFloat = Field(default=10.0, description="Connection timeout in seconds.")
    user_agent: str = Field(default="compound-cache", description="User-Agent header sent with every request.")
    retries: RetryConfig = Field(default_factory=RetryConfig)


class CacheConfig(BaseModel):
    """Location and layout of the persisted cache document."""

    model_config = ConfigDict(extra="forbid")

    path: Path = Field(default=Path("compounds.json"), description="JSON document holding the cache.")
    indent: Annotated[int, Field(ge=0)] | None = Field(
        default=None,
        description="Indentation for the written document; compact when unset.",
    )


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Log level for the structured logger.")
    format: LogFormat = Field(default=LogFormat.JSON, description="Log format (json, key_value).")

    def to_log_config(self) -> LogConfig:
        return LogConfig(level=self.level, format=self.format)


class AppConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra="forbid")

    pubchem: PubChemConfig = Field(default_factory=PubChemConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(
    path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load, merge and validate the application configuration."""

    payload: dict[str, Any] = {}
    if path is not None:
        payload = _load_yaml(Path(path))

    env_overrides = _collect_env_overrides(os.environ if env is None else env, prefix=ENV_PREFIX)
    if env_overrides:
        payload = _deep_merge(payload, env_overrides)
    if overrides:
        payload = _deep_merge(payload, overrides)

    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid configuration: {exc.error_count()} error(s)",
            config_file=str(path) if path is not None else None,
            cause=exc,
        ) from exc


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"Configuration file not readable: {path}", config_file=str(path), cause=exc) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file is not valid YAML: {path}", config_file=str(path), cause=exc) from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration root must be a mapping: {path}", config_file=str(path))
    return dict(cast(Mapping[str, Any], data))


def _deep_merge(
    base: Mapping[str, Any],
    override: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge two mapping-like objects."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], MutableMapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(
                cast(Mapping[str, Any], merged[key]),
                cast(Mapping[str, Any], value),
            )
        else:
            merged[key] = value
    return merged


def _assign_nested(target: MutableMapping[str, Any], parts: Sequence[str], value: Any) -> None:
    current = target
    for part in parts[:-1]:
        existing = current.get(part)
        if not isinstance(existing, MutableMapping):
            existing = {}
            current[part] = existing
        current = existing
    current[parts[-1]] = value


def _coerce_value(value: Any) -> Any:
    """Best-effort conversion of environment override values."""
    if isinstance(value, str):
        try:
            return yaml.safe_load(value)
        except yaml.YAMLError:
            return value
    return value


def _collect_env_overrides(env: Mapping[str, str], *, prefix: str) -> dict[str, Any]:
    """Collect prefixed environment variables and build a nested override tree."""
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(prefix):
            continue
        parts = [segment.strip().lower() for segment in key[len(prefix) :].split("__") if segment.strip()]
        if not parts:
            continue
        _assign_nested(overrides, parts, _coerce_value(raw_value))
    return overrides
