"""restic repository facade.

``ResticRepository`` turns a RepositoryHandle into restic invocations and
their captured output into typed results. It keeps no state between
calls: each method builds its own argv, runs restic once and returns.
"""

from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Type, TypeVar, Union
import logging
import re

from pydantic import BaseModel, ValidationError

from .command import (
    BACKUP,
    CHECK,
    INIT,
    LIST_LOCKS,
    STATS,
    VERSION,
    Command,
    CommandOption,
    FlagsOption,
    NoPasswordOption,
    RepoOption,
    SubcommandOption,
)
from .constants import JSON_FLAG, RESTIC_EXECUTABLE
from .errors import DecodeError, ProcessFailedError, UnknownMessageTypeError
from .events import BackupEvent, decode_backup_events, validate_backup_stream
from .jsonlines import decode_json_document
from .models import RepositoryHandle, StatsResult, VersionInfo

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_OBJECT_ID = re.compile(r"^[0-9a-f]{64}$")


def _run_json_document(command: Command, model: Type[M]) -> M:
    """Run ``command`` and validate its single JSON document against ``model``."""
    result = command.run().check()
    raw = decode_json_document(result.stdout)
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(
            f"unexpected {command.args[0]} output: {e}",
            line=result.stdout_text,
        ) from e


def restic_version(
    executable: str = RESTIC_EXECUTABLE,
    env: Optional[Mapping[str, str]] = None,
) -> VersionInfo:
    """Version of the restic executable (`restic version --json`).

    Raises:
        LaunchError: If restic cannot be started
        ProcessFailedError: If restic exits non-zero
        DecodeError: If output is not a version document
    """
    command = Command.build(VERSION, FlagsOption([JSON_FLAG]), executable=executable, env=env)
    return _run_json_document(command, VersionInfo)


class ResticRepository:
    """Operations on one restic repository.

    Concurrent calls against the same repository are not coordinated here;
    restic's own repository lock serialises them and lock contention comes
    back as an ordinary ProcessFailedError.
    """

    def __init__(self, handle: RepositoryHandle):
        self.handle = handle

    @classmethod
    def from_path(cls, path: Union[str, Path], **kwargs) -> "ResticRepository":
        """Shortcut for ``ResticRepository(RepositoryHandle(path=..., ...))``."""
        return cls(RepositoryHandle(path=str(path), **kwargs))

    def _command(self, subcommand: SubcommandOption, *opts: CommandOption) -> Command:
        base: List[CommandOption] = [subcommand, RepoOption(self.handle.path)]
        if self.handle.insecure_no_password:
            base.append(NoPasswordOption())
        return Command.build(
            *base, *opts,
            executable=self.handle.executable,
            env=dict(self.handle.env),
        )

    def init(self) -> None:
        """Create the repository (`restic init`).

        Raises:
            LaunchError: If restic cannot be started
            ProcessFailedError: If restic exits non-zero (e.g. already initialised)
        """
        self._command(INIT).run().check()
        logger.info("Initialized restic repository at %s", self.handle.path)

    def backup(
        self,
        content_path: Union[str, Path],
        flags: Sequence[str] = (),
    ) -> List[BackupEvent]:
        """Back up ``content_path`` and return the decoded event stream.

        Args:
            content_path: File or directory to back up
            flags: Extra flags passed verbatim before the path (e.g. ``--tag``)

        Returns:
            Status events in output order followed by the summary

        Raises:
            LaunchError: If restic cannot be started
            ProcessFailedError: If restic exits non-zero; ``events`` holds
                whatever was decoded before the failure
            DecodeError: If output is not valid JSON lines, or the stream
                does not end with exactly one summary
            UnknownMessageTypeError: If a line has an unrecognised message_type
        """
        command = self._command(
            BACKUP, FlagsOption([JSON_FLAG]), FlagsOption(flags), FlagsOption([str(content_path)])
        )
        result = command.run()

        if not result.ok:
            try:
                events = decode_backup_events(result.stdout)
            except (DecodeError, UnknownMessageTypeError) as e:
                events = e.events
            raise ProcessFailedError(
                argv=result.argv,
                exit_code=result.returncode,
                stderr=result.stderr_text,
                stdout=result.stdout,
                events=events,
            )

        events = decode_backup_events(result.stdout)
        summary = validate_backup_stream(events)
        logger.info(
            "Backup of %s finished: snapshot %s, %d new files, %d bytes processed",
            content_path, summary.snapshot_id, summary.files_new,
            summary.total_bytes_processed,
        )
        return events

    def stats(self) -> StatsResult:
        """Aggregate repository statistics (`restic stats --json`).

        Raises:
            LaunchError: If restic cannot be started
            ProcessFailedError: If restic exits non-zero
            DecodeError: If output is not a single stats document
        """
        stats = _run_json_document(self._command(STATS, FlagsOption([JSON_FLAG])), StatsResult)
        logger.debug("Stats for %s: %s", self.handle.path, stats)
        return stats

    def version(self) -> VersionInfo:
        """Version of the restic executable this repository is accessed with."""
        return restic_version(self.handle.executable, env=dict(self.handle.env))

    def check(self, flags: Sequence[str] = ()) -> bool:
        """Run `restic check` and report whether the repository is healthy.

        A non-zero exit is reported as False; launch errors still raise.
        """
        result = self._command(CHECK, FlagsOption(flags)).run()
        if not result.ok:
            logger.warning(
                "restic check failed for %s (exit %d)", self.handle.path, result.returncode
            )
            return False
        return True

    def locks(self) -> List[str]:
        """IDs of the locks currently held in the repository."""
        result = self._command(LIST_LOCKS).run().check()
        # Skip informational lines such as "repository ... opened"
        return [
            line.strip() for line in result.stdout_text.splitlines()
            if _OBJECT_ID.match(line.strip())
        ]


__all__ = ["ResticRepository", "restic_version"]
