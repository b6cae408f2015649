"""Changer, mount probe and dvdbackup operations."""

import logging
from datetime import datetime
from pathlib import PurePosixPath

from jukebox.config import JukeboxConfig
from jukebox.device.executor import CommandExecutor, CommandResult
from jukebox.device.outcomes import (
    EXTRACT_NAME_COLLISION,
    CommandKind,
    CommandOutcome,
    classify,
)
from jukebox.device.slots import SlotKind, SlotMap
from jukebox.error_handling import CommandSpawnError

logger = logging.getLogger(__name__)

# Title reported for a drive while commands are only being displayed
DRY_RUN_TITLE = "dry_run"


def generic_title() -> str:
    """Unique name for a disc whose own title collides with an earlier rip."""
    return f"generic_rip_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"


def parse_mount_point(df_output: str, device: str) -> str | None:
    """Find the mount point of device in POSIX df output."""
    for line in df_output.splitlines()[1:]:
        parts = line.split()
        # Filesystem 1024-blocks Used Available Capacity Mounted on
        if len(parts) >= 6 and parts[0] == device:
            return " ".join(parts[5:])
    return None


class DeviceOperations:
    """Semantic wrappers over the changer and disc tools.

    Slot and drive arguments are validated before any command is issued.
    """

    def __init__(
        self,
        config: JukeboxConfig,
        executor: CommandExecutor | None = None,
        slot_map: SlotMap | None = None,
    ):
        self.config = config
        self.executor = executor or CommandExecutor(config)
        self.slot_map = slot_map or SlotMap(config)

    def _run(self, args: list[str], *, timeout: int | None = None) -> CommandResult | None:
        """Run a command, returning None when it could not be started."""
        try:
            return self.executor.run(args, timeout=timeout)
        except CommandSpawnError as e:
            logger.error("%s: %s", e.message, e.details)
            return None

    def _mtx(self, *args: object) -> list[str]:
        return [
            self.config.mtx_binary,
            "-f",
            self.config.carousel_device,
            *(str(arg) for arg in args),
        ]

    def _move(self, kind: CommandKind, drive: int, slot: int) -> CommandOutcome:
        verb = kind.value
        result = self._run(self._mtx(verb, slot, drive))
        if result is None:
            return CommandOutcome.FAILURE

        classification = classify(kind, result)
        if classification.outcome is not CommandOutcome.FAILURE:
            logger.info(f"{verb} slot {slot} / drive {drive}: {classification.label}")
        else:
            logger.error(
                f"{verb} slot {slot} / drive {drive} failed: {classification.label} "
                f"({result.stderr.strip() or 'no error output'})",
            )
        return classification.outcome

    def load(self, drive: int, slot: int) -> CommandOutcome:
        """Move the disc in slot into drive."""
        self.slot_map.require_drive(drive)
        self.slot_map.require_slot(slot, SlotKind.ANY)
        return self._move(CommandKind.LOAD, drive, slot)

    def unload(self, drive: int, slot: int) -> CommandOutcome:
        """Move the disc in drive back into slot."""
        self.slot_map.require_drive(drive)
        self.slot_map.require_slot(slot, SlotKind.ANY)
        return self._move(CommandKind.UNLOAD, drive, slot)

    def status(self) -> str:
        """Raw changer status, for diagnostics only."""
        result = self._run(self._mtx("status"))
        if result is None:
            return ""
        return result.stdout

    def disc_title(self, drive: int) -> tuple[CommandOutcome, str | None]:
        """Volume title of the disc mounted from drive.

        EMPTY means nothing is mounted yet, which is what the mount wait polls
        for.
        """
        device = self.slot_map.device_for(drive)
        result = self._run([self.config.df_binary, "-P", device])
        if result is None:
            return CommandOutcome.FAILURE, None
        if result.dry_run:
            return CommandOutcome.SUCCESS, DRY_RUN_TITLE

        classification = classify(CommandKind.MOUNT_PROBE, result)
        if classification.outcome is not CommandOutcome.SUCCESS:
            if classification.outcome is CommandOutcome.FAILURE:
                logger.error(f"Mount probe on {device} failed: {classification.label}")
            return classification.outcome, None

        mount_point = parse_mount_point(result.stdout, device)
        if not mount_point:
            return CommandOutcome.EMPTY, None

        title = PurePosixPath(mount_point).name
        logger.info(f"Drive {drive} title:\t{title}")
        return CommandOutcome.SUCCESS, title

    def disc_info(self, drive: int) -> str:
        """Raw dvdbackup description of the disc in drive."""
        device = self.slot_map.device_for(drive)
        result = self._run(
            [self.config.dvdbackup_binary, "--info", f"--input={device}"],
        )
        if result is None:
            return ""
        return result.stdout

    def extract(self, drive: int, *, force_generic_name: bool = False) -> CommandOutcome:
        """Mirror the disc in drive into rip_dir.

        A title name collision is retried once under a generated name.
        """
        device = self.slot_map.device_for(drive)
        args = [
            self.config.dvdbackup_binary,
            "--mirror",
            f"--input={device}",
            f"--output={self.config.rip_dir}",
        ]
        if force_generic_name:
            args.append(f"--name={generic_title()}")

        result = self._run(args, timeout=self.config.extract_timeout)
        if result is None:
            return CommandOutcome.FAILURE

        classification = classify(CommandKind.EXTRACT, result)
        if classification.outcome is CommandOutcome.SUCCESS:
            logger.info(f"Extracted disc in drive {drive}")
            return CommandOutcome.SUCCESS

        if result.returncode == EXTRACT_NAME_COLLISION:
            if not force_generic_name:
                logger.warning("title name invalid; retrying with a generic name")
                return self.extract(drive, force_generic_name=True)
            logger.error("error ripping with generic name!")
            return CommandOutcome.FAILURE

        logger.error(
            f"Extraction from drive {drive} failed: {classification.label} "
            f"({result.stderr.strip() or 'no error output'})",
        )
        return CommandOutcome.FAILURE
