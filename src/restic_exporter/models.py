"""Data models for restic-exporter."""

from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

from .constants import RESTIC_EXECUTABLE


class RepositoryHandle(BaseModel):
    """Reference to a restic repository and how to reach it.

    Immutable and hashable; every operation derives its argument vector
    from the handle. ``env`` accepts a mapping and is stored as sorted
    ``(name, value)`` pairs, so ``dict(handle.env)`` gives it back.
    """
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1)  # directory or backend URL
    executable: str = RESTIC_EXECUTABLE
    insecure_no_password: bool = True
    env: Tuple[Tuple[str, str], ...] = ()  # merged over os.environ

    @field_validator("env", mode="before")
    @classmethod
    def freeze_env(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return tuple(sorted(v.items()))
        return v


class StatsResult(BaseModel):
    """Output of `restic stats --json`."""
    total_size: NonNegativeInt
    total_file_count: NonNegativeInt
    snapshots_count: NonNegativeInt


class VersionInfo(BaseModel):
    """Output of `restic version --json`."""
    version: str
    go_version: Optional[str] = None
    go_os: Optional[str] = None
    go_arch: Optional[str] = None
