"""Error handling for jukebox operations."""

import logging
import shutil
import sys
from enum import Enum
from pathlib import Path

from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()


class ErrorCategory(Enum):
    """Categories of errors for better user experience."""

    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    HARDWARE = "hardware"
    FILESYSTEM = "filesystem"
    EXTERNAL_TOOL = "external_tool"
    SYSTEM = "system"
    USER_INPUT = "user_input"


class JukeboxError(Exception):
    """Base exception for Jukebox with enhanced user experience."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        *,
        solution: str | None = None,
        details: str | None = None,
        recoverable: bool = True,
        log_level: int = logging.ERROR,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.solution = solution
        self.details = details
        self.recoverable = recoverable
        self.log_level = log_level
        self.original_error = original_error

    def display_to_user(self) -> None:
        """Display error to user with helpful context."""
        category_styles = {
            ErrorCategory.CONFIGURATION: ("⚙️", "yellow"),
            ErrorCategory.DEPENDENCY: ("📦", "red"),
            ErrorCategory.HARDWARE: ("🔌", "red"),
            ErrorCategory.FILESYSTEM: ("📁", "red"),
            ErrorCategory.EXTERNAL_TOOL: ("🔧", "red"),
            ErrorCategory.SYSTEM: ("💻", "red"),
            ErrorCategory.USER_INPUT: ("⌨️", "yellow"),
        }

        emoji, color = category_styles.get(self.category, ("❌", "red"))

        console.print(
            f"\n{emoji} [{color}bold]{self.category.value.title()} Error[/{color}bold]",
        )
        console.print(f"[{color}]{self.message}[/{color}]")

        if self.details:
            console.print(f"\n[dim]Details:[/dim] {self.details}")

        if self.solution:
            console.print(f"\n[green]💡 Solution:[/green] {self.solution}")

        if self.recoverable:
            console.print(
                "\n[dim]This error may be temporary. You can try again.[/dim]",
            )
        else:
            console.print(
                "\n[dim]This error requires intervention before continuing.[/dim]",
            )

        if self.original_error:
            logger.log(
                self.log_level,
                "%s: %s",
                self.category.value,
                self.message,
                exc_info=self.original_error,
            )
        else:
            logger.log(self.log_level, "%s: %s", self.category.value, self.message)


class ConfigurationError(JukeboxError):
    """Configuration-related errors."""

    def __init__(self, message: str, *, config_path: Path | None = None, **kwargs):
        solution = kwargs.pop("solution", None)
        if not solution and config_path:
            solution = f"Check your configuration file at {config_path}"
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            solution=solution,
            **kwargs,
        )


class DependencyError(JukeboxError):
    """Missing or broken dependency errors."""

    def __init__(
        self,
        dependency: str,
        *,
        install_command: str | None = None,
        **kwargs,
    ):
        message = f"Required dependency '{dependency}' is not available"
        solution = kwargs.pop("solution", None)
        if not solution and install_command:
            solution = f"Install with: {install_command}"
        super().__init__(
            message,
            ErrorCategory.DEPENDENCY,
            solution=solution,
            recoverable=False,
            **kwargs,
        )


class InvalidArgumentError(JukeboxError):
    """A slot, drive or cassette number outside the configured ranges."""

    def __init__(self, message: str, **kwargs):
        solution = kwargs.pop("solution", "Check the slot banks in your configuration")
        super().__init__(
            message,
            ErrorCategory.USER_INPUT,
            solution=solution,
            recoverable=False,
            **kwargs,
        )


class InvalidSlotError(InvalidArgumentError):
    """Slot number rejected before any device interaction."""

    def __init__(self, slot: object, kind: str = "any", **kwargs):
        self.slot = slot
        self.kind = kind
        super().__init__(f"Invalid {kind} slot number: {slot!r}", **kwargs)


class InvalidDriveError(InvalidArgumentError):
    """Drive number rejected before any device interaction."""

    def __init__(self, drive: object, **kwargs):
        self.drive = drive
        solution = kwargs.pop("solution", "Drive numbers start at 0")
        super().__init__(
            f"Invalid drive number: {drive!r}",
            solution=solution,
            **kwargs,
        )


class CommandSpawnError(JukeboxError):
    """An external command could not be started or did not finish."""

    def __init__(self, tool: str, **kwargs):
        self.tool = tool
        solution = kwargs.pop(
            "solution",
            f"Check {tool} is installed and the device is accessible",
        )
        super().__init__(
            f"Could not run {tool}",
            ErrorCategory.EXTERNAL_TOOL,
            solution=solution,
            **kwargs,
        )


class DeviceFailureError(JukeboxError):
    """The carousel or a drive refused an operation."""

    def __init__(self, message: str, **kwargs):
        solution = kwargs.pop(
            "solution",
            "Check the changer status with 'jukebox status'",
        )
        super().__init__(message, ErrorCategory.HARDWARE, solution=solution, **kwargs)


class ExtractionError(JukeboxError):
    """dvdbackup failed to mirror a disc."""

    def __init__(
        self,
        tool: str,
        exit_code: int | None = None,
        stderr: str | None = None,
        **kwargs,
    ):
        message = f"{tool} failed"
        if exit_code is not None:
            message += f" with exit code {exit_code}"

        details = kwargs.pop("details", stderr)
        solution = kwargs.pop(
            "solution",
            "Try cleaning the disc or ripping it manually",
        )

        super().__init__(
            message,
            ErrorCategory.EXTERNAL_TOOL,
            details=details,
            solution=solution,
            **kwargs,
        )


class ResourceExhaustedError(JukeboxError):
    """No slot in the error bank can take a disc."""

    def __init__(self, drive: int, tried: list[int], **kwargs):
        self.drive = drive
        self.tried = tried
        solution = kwargs.pop(
            "solution",
            f"Empty the error bank and remove the disc from drive {drive} by hand",
        )
        super().__init__(
            f"Disc in drive {drive} could not be unloaded to any slot",
            ErrorCategory.HARDWARE,
            solution=solution,
            details=f"Tried slots: {', '.join(str(s) for s in tried)}",
            recoverable=False,
            log_level=logging.CRITICAL,
            **kwargs,
        )


def handle_error(
    error: Exception,
    *,
    category: ErrorCategory | None = None,
    **kwargs,
) -> None:
    """Convert generic exceptions to JukeboxError and display to user."""
    if isinstance(error, JukeboxError):
        error.display_to_user()
        return

    if category is None:
        if isinstance(error, FileNotFoundError | PermissionError):
            category = ErrorCategory.FILESYSTEM
        else:
            category = ErrorCategory.SYSTEM

    jukebox_error = JukeboxError(
        message=str(error) or "An unexpected error occurred",
        category=category,
        original_error=error,
        **kwargs,
    )
    jukebox_error.display_to_user()


def check_dependencies(
    mtx: str = "mtx",
    dvdbackup: str = "dvdbackup",
    df: str = "df",
) -> list[DependencyError]:
    """Check for missing dependencies and return list of errors."""
    errors = []

    if not shutil.which(mtx):
        errors.append(
            DependencyError(
                "mtx",
                install_command="sudo apt install mtx",
                details="mtx is required to move discs between slots and drives",
            ),
        )

    if not shutil.which(dvdbackup):
        errors.append(
            DependencyError(
                "dvdbackup",
                install_command="sudo apt install dvdbackup",
                details="dvdbackup is required for disc extraction",
            ),
        )

    if not shutil.which(df):
        errors.append(
            DependencyError(
                "df",
                solution="Install coreutils",
                details="df is used to detect mounted discs",
            ),
        )

    return errors


def graceful_exit(exit_code: int = 1) -> None:
    """Exit gracefully with helpful message."""
    if exit_code == 0:
        console.print("\n[green]✨ Jukebox completed successfully[/green]")
    else:
        console.print("\n[red]Jukebox encountered errors and had to stop[/red]")
        console.print("[dim]Check the logs above for details on what went wrong[/dim]")
        console.print(
            "[dim]Run 'jukebox config validate' to check your configuration[/dim]",
        )

    sys.exit(exit_code)
