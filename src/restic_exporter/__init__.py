"""restic-exporter: typed access to restic output and Prometheus metrics."""

from .command import Command, CommandResult, FlagsOption, NoPasswordOption, RepoOption, SubcommandOption, build_args
from .constants import EXPORTER_VERSION as __version__
from .errors import (
    ConfigError,
    DecodeError,
    LaunchError,
    ProcessFailedError,
    ResticError,
    UnknownMessageTypeError,
)
from .events import BackupEvent, StatusEvent, SummaryEvent, decode_backup_events, decode_event
from .metrics import ResticMetrics, scrape
from .models import RepositoryHandle, StatsResult, VersionInfo
from .repository import ResticRepository, restic_version

__all__ = [
    "BackupEvent",
    "Command",
    "CommandResult",
    "ConfigError",
    "DecodeError",
    "FlagsOption",
    "LaunchError",
    "NoPasswordOption",
    "ProcessFailedError",
    "RepoOption",
    "RepositoryHandle",
    "ResticError",
    "ResticMetrics",
    "ResticRepository",
    "StatsResult",
    "StatusEvent",
    "SubcommandOption",
    "SummaryEvent",
    "UnknownMessageTypeError",
    "VersionInfo",
    "build_args",
    "decode_backup_events",
    "decode_event",
    "restic_version",
    "scrape",
]
