"""Exporter configuration.

Settings come from an optional YAML file and are then overridden by
environment variables, so the same file can be reused across hosts.
"""

from pathlib import Path
from typing import List, Mapping, Optional
import os

import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import (
    CONFIG_FILE,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_LISTEN_ADDR,
    DEFAULT_LISTEN_PORT,
    ENV_EXECUTABLE,
    ENV_INTERVAL,
    ENV_PORT,
    ENV_REPOSITORY,
    RESTIC_EXECUTABLE,
)
from .errors import ConfigError
from .models import RepositoryHandle


class ExporterConfig(BaseModel):
    """Configuration for the exporter (restic-exporter.yaml)."""

    repository: str = Field(..., min_length=1)
    executable: str = RESTIC_EXECUTABLE
    insecure_no_password: bool = True
    listen_addr: str = DEFAULT_LISTEN_ADDR
    listen_port: int = Field(DEFAULT_LISTEN_PORT, ge=1, le=65535)
    interval_seconds: float = Field(DEFAULT_INTERVAL_SECONDS, gt=0)
    check_flags: List[str] = Field(default_factory=list)

    def handle(self) -> RepositoryHandle:
        return RepositoryHandle(
            path=self.repository,
            executable=self.executable,
            insecure_no_password=self.insecure_no_password,
        )


_ENV_FIELDS = {
    ENV_REPOSITORY: "repository",
    ENV_EXECUTABLE: "executable",
    ENV_PORT: "listen_port",
    ENV_INTERVAL: "interval_seconds",
}


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides,
) -> ExporterConfig:
    """Load configuration from YAML, environment and explicit overrides.

    Precedence (highest first): ``overrides`` with non-None values,
    environment variables, the YAML file, field defaults.

    Args:
        path: YAML file; defaults to ./restic-exporter.yaml when it exists
        environ: Environment to read (defaults to os.environ)
        **overrides: Field values, e.g. from CLI options

    Raises:
        ConfigError: If the file is missing or invalid, or a value fails validation
    """
    environ = os.environ if environ is None else environ
    data = {}

    if path is None:
        default = Path.cwd() / CONFIG_FILE
        path = default if default.exists() else None
    elif not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    if path is not None:
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")

    for var, name in _ENV_FIELDS.items():
        if environ.get(var):
            data[name] = environ[var]

    data.update({k: v for k, v in overrides.items() if v is not None})

    if not data.get("repository"):
        raise ConfigError(
            f"No repository configured. Pass --repo, set {ENV_REPOSITORY} "
            f"or add 'repository:' to {CONFIG_FILE}"
        )

    try:
        return ExporterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
