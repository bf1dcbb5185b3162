"""Command construction and execution for the restic executable.

A command is described by an ordered list of options. Each option
contributes a fragment of argv; the fragments are concatenated in the
order given, without reordering or validation. Whether the flags make
sense is restic's business and shows up in its exit code and stderr.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple
import logging
import os
import subprocess

from .constants import INSECURE_NO_PASSWORD_FLAG, REPO_FLAG, RESTIC_EXECUTABLE
from .errors import LaunchError, ProcessFailedError

logger = logging.getLogger(__name__)


class CommandOption(Protocol):
    """Anything that contributes arguments to a restic command line."""

    def get_args(self) -> List[str]:
        ...


@dataclass(frozen=True)
class RepoOption:
    """`--repo <path>`"""
    repo: str

    def get_args(self) -> List[str]:
        return [REPO_FLAG, self.repo]


@dataclass(frozen=True)
class SubcommandOption:
    """Sub-command selector, e.g. `backup` or `list locks`."""
    name: str
    args: Tuple[str, ...] = ()

    def get_args(self) -> List[str]:
        return [self.name, *self.args]


@dataclass(frozen=True)
class FlagsOption:
    """Free-form flags, passed through verbatim."""
    flags: Sequence[str] = ()

    def __post_init__(self):
        # A bare str is a Sequence[str] too and would split into characters
        if isinstance(self.flags, (str, bytes)):
            raise TypeError(
                f"flags must be a sequence of strings, not {type(self.flags).__name__}: {self.flags!r}"
            )
        # Freeze lists handed in by callers
        object.__setattr__(self, "flags", tuple(self.flags))

    def get_args(self) -> List[str]:
        return list(self.flags)


@dataclass(frozen=True)
class NoPasswordOption:
    """`--insecure-no-password` for repositories created without a key."""

    def get_args(self) -> List[str]:
        return [INSECURE_NO_PASSWORD_FLAG]


INIT = SubcommandOption("init")
BACKUP = SubcommandOption("backup")
STATS = SubcommandOption("stats")
VERSION = SubcommandOption("version")
CHECK = SubcommandOption("check")
LIST_LOCKS = SubcommandOption("list", ("locks",))


def build_args(*opts: CommandOption) -> List[str]:
    """Flatten options into argv (executable not included)."""
    args: List[str] = []
    for opt in opts:
        args.extend(opt.get_args())
    return args


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one restic invocation."""
    argv: Tuple[str, ...]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    def check(self) -> "CommandResult":
        """Raise ProcessFailedError unless the process exited 0."""
        if not self.ok:
            raise ProcessFailedError(
                argv=self.argv,
                exit_code=self.returncode,
                stderr=self.stderr_text,
                stdout=self.stdout,
            )
        return self


@dataclass(frozen=True)
class Command:
    """A fully built restic invocation, ready to run."""
    args: Tuple[str, ...]
    executable: str = RESTIC_EXECUTABLE
    env: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *opts: CommandOption,
        executable: str = RESTIC_EXECUTABLE,
        env: Optional[Mapping[str, str]] = None,
    ) -> "Command":
        return cls(args=tuple(build_args(*opts)), executable=executable, env=dict(env or {}))

    @property
    def argv(self) -> List[str]:
        return [self.executable, *self.args]

    def run(self) -> CommandResult:
        return run_command(self.argv, env=self.env)


def run_command(argv: Sequence[str], env: Optional[Mapping[str, str]] = None) -> CommandResult:
    """Run a command to completion and capture stdout and stderr.

    Blocks until the child exits. Exit status is not checked here; use
    ``CommandResult.check()``. There is no timeout and no retry.

    Args:
        argv: Executable followed by its arguments
        env: Extra environment variables for the child process

    Returns:
        CommandResult with both output buffers and the exit code

    Raises:
        LaunchError: If the executable is missing or not invocable
    """
    argv = list(argv)
    child_env = None
    if env:
        child_env = {**os.environ, **env}

    logger.debug("Running %s", " ".join(argv))
    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            env=child_env,
            check=False,  # exit status handled by CommandResult.check
        )
    except FileNotFoundError as e:
        raise LaunchError(argv[0], "executable not found") from e
    except PermissionError as e:
        raise LaunchError(argv[0], "permission denied") from e
    except OSError as e:
        raise LaunchError(argv[0], str(e)) from e

    result = CommandResult(
        argv=tuple(argv),
        returncode=proc.returncode,
        stdout=proc.stdout or b"",
        stderr=proc.stderr or b"",
    )
    if not result.ok:
        logger.warning(
            "%s exited with code %d: %s",
            argv[0], result.returncode, result.stderr_text.strip()[:500],
        )
    return result
