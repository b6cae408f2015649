"""Child process execution for changer and extraction tools."""

import logging
import shlex
import subprocess
from dataclasses import dataclass

from rich.console import Console

from jukebox.config import JukeboxConfig
from jukebox.error_handling import CommandSpawnError

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("jukebox.audit")
console = Console()

# Return code reported for commands skipped in dry-run mode
NOT_RUN = None


@dataclass
class CommandResult:
    """Exit status and captured output of one external command."""

    args: list[str]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandExecutor:
    """Runs external commands and records every invocation in the audit log."""

    def __init__(self, config: JukeboxConfig):
        self.config = config

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run

    def run(self, args: list[str], *, timeout: int | None = None) -> CommandResult:
        """Run a command and capture its output.

        A non-zero exit status is returned to the caller. Only a command that
        could not be started, or that outlived its timeout, raises
        CommandSpawnError.
        """
        command_line = shlex.join(args)

        if self.dry_run:
            console.print(command_line, markup=False, highlight=False)
            audit_logger.info("[dry run] %s", command_line)
            return CommandResult(args=list(args), returncode=NOT_RUN, dry_run=True)

        audit_logger.info("%s", command_line)
        try:
            result = subprocess.run(
                args,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout or self.config.command_timeout,
            )
        except subprocess.TimeoutExpired as e:
            audit_logger.error("timed out: %s", command_line)
            raise CommandSpawnError(
                args[0],
                details=f"'{command_line}' did not finish within {e.timeout} seconds",
                original_error=e,
            ) from e
        except OSError as e:
            audit_logger.error("could not start: %s (%s)", command_line, e)
            raise CommandSpawnError(args[0], details=str(e), original_error=e) from e

        audit_logger.info("status:\t%s", result.returncode)
        if result.stdout:
            audit_logger.debug("stdout: %s", result.stdout.strip())
        if result.stderr:
            audit_logger.info("stderr: %s", result.stderr.strip())

        return CommandResult(
            args=list(args),
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
