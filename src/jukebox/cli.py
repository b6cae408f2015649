"""Command-line interface for Jukebox."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import JukeboxConfig, create_sample_config, load_config
from .device.operations import DeviceOperations
from .device.outcomes import CommandOutcome
from .device.slots import SlotKind, SlotMap
from .error_handling import (
    ConfigurationError,
    DeviceFailureError,
    ExtractionError,
    JukeboxError,
    check_dependencies,
    graceful_exit,
    handle_error,
)
from .process_lock import ProcessLock
from .rip.diagnostics import CassetteChecker
from .rip.scheduler import BatchScheduler
from .rip.workflow import SlotRipper

console = Console()

OUTCOME_COLORS = {
    CommandOutcome.SUCCESS: "green",
    CommandOutcome.EMPTY: "yellow",
    CommandOutcome.FAILURE: "red",
}


def setup_logging(
    *,
    verbose: bool = False,
    config: JukeboxConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    cleanup_logging()

    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    if config and config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / "jukebox.log"
        file_handler = TimedRotatingFileHandler(log_file, when="midnight")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


@contextmanager
def device_errors() -> Iterator[None]:
    """Show jukebox and filesystem errors to the user and exit non-zero."""
    try:
        yield
    except (JukeboxError, OSError) as e:
        handle_error(e)
        graceful_exit(1)


def _slot_map(ctx: click.Context) -> SlotMap:
    return SlotMap(ctx.obj["config"])


def _check_drive(ctx: click.Context, drive: int) -> int:
    if not _slot_map(ctx).is_valid_drive(drive):
        drives = len(ctx.obj["config"].drives)
        msg = f"must be a valid drive number (0-{drives - 1})"
        raise click.BadParameter(msg, param_hint="--drive")
    return drive


def _check_slot(ctx: click.Context, slot: int, kind: SlotKind = SlotKind.ANY) -> int:
    if not _slot_map(ctx).is_valid_slot(slot, kind):
        msg = f"must be a valid {kind.value} slot number"
        raise click.BadParameter(msg, param_hint="--slot")
    return slot


def _outcome_text(outcome: CommandOutcome) -> str:
    color = OUTCOME_COLORS[outcome]
    return f"[{color}]{outcome.value}[/{color}]"


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Display commands without doing anything",
)
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool, dry_run: bool) -> None:
    """Jukebox - automated ripping for optical disc changers."""
    try:
        ctx.ensure_object(dict)
        loaded_config = load_config(config)
        if dry_run:
            loaded_config = loaded_config.model_copy(update={"dry_run": True})
        ctx.obj["config"] = loaded_config
        ctx.obj["verbose"] = verbose

        setup_logging(verbose=verbose, config=loaded_config)
    except (OSError, ValueError, ValidationError) as e:
        config_error = ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config,
            solution="Run 'jukebox config validate' to check your configuration file",
        )
        console.print(f"[red]Configuration Error:[/red] {config_error}")
        sys.exit(1)

    logging.getLogger(__name__).info("jukebox %s", " ".join(sys.argv[1:]))


@cli.command()
@click.option("--slot", "-s", type=int, required=True, help="Slot number")
@click.option("--drive", "-d", type=int, required=True, help="Drive number")
@click.pass_context
def load(ctx: click.Context, slot: int, drive: int) -> None:
    """Load from slot into drive."""
    _check_drive(ctx, drive)
    _check_slot(ctx, slot)
    with device_errors():
        outcome = DeviceOperations(ctx.obj["config"]).load(drive, slot)
    console.print(f"load slot {slot} into drive {drive}: {_outcome_text(outcome)}")
    if outcome is CommandOutcome.FAILURE:
        DeviceFailureError(
            f"Changer refused to load slot {slot} into drive {drive}",
        ).display_to_user()
        graceful_exit(1)


@cli.command()
@click.option("--slot", "-s", type=int, required=True, help="Slot number")
@click.option("--drive", "-d", type=int, required=True, help="Drive number")
@click.pass_context
def unload(ctx: click.Context, slot: int, drive: int) -> None:
    """Unload from drive into slot."""
    _check_drive(ctx, drive)
    _check_slot(ctx, slot)
    with device_errors():
        outcome = DeviceOperations(ctx.obj["config"]).unload(drive, slot)
    console.print(f"unload drive {drive} into slot {slot}: {_outcome_text(outcome)}")
    if outcome is CommandOutcome.FAILURE:
        DeviceFailureError(
            f"Changer refused to unload drive {drive} into slot {slot}",
        ).display_to_user()
        graceful_exit(1)


@cli.command()
@click.option("--drive", "-d", type=int, required=True, help="Drive number")
@click.pass_context
def rip(ctx: click.Context, drive: int) -> None:
    """Rip disc in drive."""
    _check_drive(ctx, drive)
    with device_errors():
        outcome = DeviceOperations(ctx.obj["config"]).extract(drive)
    console.print(f"rip drive {drive}: {_outcome_text(outcome)}")
    if outcome is not CommandOutcome.SUCCESS:
        ExtractionError(
            ctx.obj["config"].dvdbackup_binary,
            details="See the jukebox log for the dvdbackup output",
        ).display_to_user()
        graceful_exit(1)


@cli.command()
@click.option("--drive", "-d", type=int, required=True, help="Drive number")
@click.pass_context
def info(ctx: click.Context, drive: int) -> None:
    """Show info on disc in drive."""
    _check_drive(ctx, drive)
    with device_errors():
        click.echo(DeviceOperations(ctx.obj["config"]).disc_info(drive))


@cli.command()
@click.option("--drive", "-d", type=int, required=True, help="Drive number")
@click.pass_context
def title(ctx: click.Context, drive: int) -> None:
    """Show title of disc in drive."""
    _check_drive(ctx, drive)
    with device_errors():
        outcome, disc_title = DeviceOperations(ctx.obj["config"]).disc_title(drive)
    if disc_title:
        click.echo(disc_title)
    elif outcome is CommandOutcome.EMPTY:
        console.print(f"[yellow]No disc mounted in drive {drive}[/yellow]")
    else:
        console.print(f"[red]Could not read title from drive {drive}[/red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show raw changer status."""
    with device_errors():
        click.echo(DeviceOperations(ctx.obj["config"]).status())


@cli.command("rip-slot")
@click.argument("slot", type=int)
@click.pass_context
def rip_slot(ctx: click.Context, slot: int) -> None:
    """Rip one input slot end to end."""
    if not _slot_map(ctx).is_valid_slot(slot, SlotKind.INPUT):
        msg = "must be a valid input slot number"
        raise click.BadParameter(msg, param_hint="SLOT")

    with device_errors():
        record = SlotRipper(ctx.obj["config"]).rip_slot(slot)

    destination = record.destination if record.destination is not None else "-"
    console.print(
        f"slot {slot} (drive {record.drive}): {record.result.value}, "
        f"title {record.title or 'unknown'}, now in slot {destination}",
    )


@cli.command("rip-all")
@click.option("--first", type=int, help="First input slot to rip")
@click.option("--last", type=int, help="Last input slot to rip")
@click.pass_context
def rip_all(ctx: click.Context, first: int | None, last: int | None) -> None:
    """Rip every input slot using all drives."""
    config: JukeboxConfig = ctx.obj["config"]
    slot_map = _slot_map(ctx)
    input_slots = slot_map.input_slots()
    first = input_slots.start if first is None else first
    last = input_slots.stop - 1 if last is None else last

    for name, value in (("--first", first), ("--last", last)):
        if not slot_map.is_valid_slot(value, SlotKind.INPUT):
            msg = "must be a valid input slot number"
            raise click.BadParameter(msg, param_hint=name)
    if last < first:
        msg = "must not be lower than --first"
        raise click.BadParameter(msg, param_hint="--last")

    if not config.dry_run:
        missing_deps = check_dependencies(
            config.mtx_binary,
            config.dvdbackup_binary,
            config.df_binary,
        )
        if missing_deps:
            console.print("[red bold]🚫 Missing Dependencies[/red bold]")
            for dep in missing_deps:
                console.print(f"  • {dep}")
            sys.exit(1)

    lock = ProcessLock(config)
    if not lock.acquire():
        pid = lock.holder_pid()
        console.print(
            f"[red]Another jukebox process is already running"
            f"{f' (PID {pid})' if pid else ''}[/red]",
        )
        sys.exit(1)

    try:
        scheduler = BatchScheduler(config)
        with device_errors():
            if not config.dry_run:
                config.ensure_directories()
            report = scheduler.run_sync(range(first, last + 1))
            report_path = None if config.dry_run else scheduler.write_report(report)
    finally:
        lock.release()

    table = Table(title="Batch Report")
    table.add_column("Result")
    table.add_column("Count", justify="right")
    table.add_row("Ripped", str(report.ripped))
    table.add_row("Empty", str(report.empty))
    table.add_row("Failed", str(report.failed))
    table.add_row("Elapsed", f"{report.elapsed_seconds:.0f}s")
    console.print(table)
    if report_path is None:
        console.print("[dim]Dry run: no report written[/dim]")
    else:
        console.print(f"Report written to {report_path}")


@cli.command("check-cassette")
@click.argument("cassette", type=int)
@click.option("--drive", "-d", type=int, default=0, help="Drive used for the sweep")
@click.pass_context
def check_cassette(ctx: click.Context, cassette: int, drive: int) -> None:
    """Load and unload every slot of a cassette."""
    _check_drive(ctx, drive)
    with device_errors():
        report = CassetteChecker(ctx.obj["config"]).check(cassette, drive)

    table = Table(title=f"Cassette {cassette}")
    table.add_column("Slot", justify="right")
    table.add_column("Outcome")
    for slot, outcome in report.outcomes.items():
        table.add_row(str(slot), _outcome_text(outcome))
    console.print(table)


@cli.group("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Configuration management commands."""


@config_cmd.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: JukeboxConfig = ctx.obj["config"]

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Carousel Device", config.carousel_device)
    for index, device in enumerate(config.drives):
        table.add_row(f"Drive {index}", device)
    table.add_row("Rip Directory", str(config.rip_dir))
    table.add_row("Log Directory", str(config.log_dir))
    table.add_row("Report Directory", str(config.reports_path))
    table.add_row(
        "Input Slots",
        f"{config.first_input_slot}-{config.last_input_slot}",
    )
    table.add_row(
        "Output Slots",
        f"{config.first_output_slot}-{config.last_output_slot}",
    )
    table.add_row(
        "Error Slots",
        f"{config.first_error_slot}-{config.last_error_slot}",
    )
    table.add_row("Dry Run", "yes" if config.dry_run else "no")

    console.print(table)


@config_cmd.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate current configuration."""
    config: JukeboxConfig = ctx.obj["config"]

    console.print("[bold]Configuration Validation[/bold]")

    errors = []

    for name, path in [
        ("Rip", config.rip_dir),
        ("Log", config.log_dir),
        ("Report", config.reports_path),
    ]:
        try:
            path.mkdir(parents=True, exist_ok=True)
            console.print(f"[green]✓[/green] {name} directory: {path}")
        except OSError as e:
            console.print(f"[red]✗[/red] {name} directory: {e}")
            errors.append(f"{name} directory: {e}")

    for device in [config.carousel_device, *config.drives]:
        if Path(device).exists():
            console.print(f"[green]✓[/green] Device: {device}")
        else:
            console.print(f"[yellow]⚠[/yellow] Device not found: {device}")

    for dep in check_dependencies(
        config.mtx_binary,
        config.dvdbackup_binary,
        config.df_binary,
    ):
        console.print(f"[red]✗[/red] {dep}")
        errors.append(str(dep))

    if errors:
        console.print(f"\n[red]Found {len(errors)} configuration errors[/red]")
        sys.exit(1)
    else:
        console.print("\n[green]Configuration is valid[/green]")


@config_cmd.command("init")
@click.option(
    "--path",
    "-p",
    type=click.Path(path_type=Path),
    default=Path.home() / ".config" / "jukebox" / "config.toml",
    help="Path for the configuration file",
)
def config_init(path: Path) -> None:
    """Create a sample configuration file."""
    try:
        create_sample_config(path)
        console.print(f"[green]Created sample configuration at {path}[/green]")
        console.print("Please edit the configuration file with your settings.")
    except OSError as e:
        console.print(f"[red]Error creating configuration: {e}[/red]")
        sys.exit(1)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
