"""Per-slot rip workflow: load, wait for mount, extract, unload."""

import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from jukebox.config import JukeboxConfig
from jukebox.device.operations import DeviceOperations
from jukebox.device.outcomes import CommandOutcome
from jukebox.device.slots import SlotKind, SlotMap
from jukebox.error_handling import DeviceFailureError, ResourceExhaustedError

logger = logging.getLogger(__name__)


class RipState(Enum):
    """Stages a slot passes through."""

    IDLE = "idle"
    LOADING = "loading"
    WAITING_FOR_MOUNT = "waiting_for_mount"
    EXTRACTING = "extracting"
    UNLOADING = "unloading"
    DONE = "done"


class RipResult(Enum):
    """Terminal outcome of one slot."""

    RIPPED = "ripped"
    SLOT_EMPTY = "slot_empty"
    RIP_FAILED = "rip_failed"


@dataclass
class SlotRipRecord:
    """What happened to one input slot."""

    slot: int
    drive: int
    state: RipState = RipState.IDLE
    result: RipResult | None = None
    title: str | None = None
    destination: int | None = None
    disc_log: Path | None = None
    history: list[RipState] = field(default_factory=list)

    def enter(self, state: RipState) -> None:
        logger.debug(f"slot {self.slot}: {self.state.value} -> {state.value}")
        self.history.append(self.state)
        self.state = state

    def finish(self, result: RipResult) -> "SlotRipRecord":
        self.enter(RipState.DONE)
        self.result = result
        logger.info(f"slot {self.slot}: {result.value}")
        return self


def disc_log_name(title: str | None, slot: int) -> str:
    """File name of the per-disc info log, unique per slot."""
    if title:
        safe = re.sub(r"[^\w.\- ]", "_", title).strip()
        if safe:
            return f"{safe}-slot-{slot:03d}.log"
    return f"slot-{slot:03d}.log"


class SlotRipper:
    """Runs one input slot through the rip state machine."""

    def __init__(
        self,
        config: JukeboxConfig,
        operations: DeviceOperations | None = None,
        slot_map: SlotMap | None = None,
    ):
        self.config = config
        self.slot_map = slot_map or SlotMap(config)
        self.operations = operations or DeviceOperations(config, slot_map=self.slot_map)

    def rip_slot(self, slot: int) -> SlotRipRecord:
        """Rip the disc in an input slot and park it in its destination.

        Per-slot problems end in RIP_FAILED. Only a disc that cannot be
        parked anywhere raises (ResourceExhaustedError).
        """
        self.slot_map.require_slot(slot, SlotKind.INPUT)
        record = SlotRipRecord(slot=slot, drive=self.slot_map.drive_for(slot))
        drive = record.drive

        record.enter(RipState.LOADING)
        loaded = self.operations.load(drive, slot)
        if loaded is CommandOutcome.EMPTY:
            return record.finish(RipResult.SLOT_EMPTY)
        if loaded is CommandOutcome.FAILURE:
            return record.finish(RipResult.RIP_FAILED)

        record.enter(RipState.WAITING_FOR_MOUNT)
        try:
            record.title = self.wait_for_mount(drive)
        except DeviceFailureError as e:
            logger.error(f"slot {slot}: {e.message}")
            extracted = CommandOutcome.FAILURE
        else:
            record.enter(RipState.EXTRACTING)
            extracted = self.operations.extract(drive)

        if extracted is CommandOutcome.SUCCESS:
            out_slot = self.slot_map.output_slot_for(slot)
        else:
            # Failed discs go back where they came from
            out_slot = slot

        if self.config.dry_run:
            logger.info(f"[dry run] skipping disc log for slot {slot}")
        else:
            try:
                record.disc_log = self.write_disc_log(record, extracted)
            except OSError as e:
                logger.error(f"slot {slot}: could not write disc log: {e}")

        record.enter(RipState.UNLOADING)
        record.destination = self.unload_with_fallback(drive, out_slot)
        if record.destination is None:
            return record.finish(RipResult.RIP_FAILED)

        if extracted is CommandOutcome.SUCCESS:
            return record.finish(RipResult.RIPPED)
        return record.finish(RipResult.RIP_FAILED)

    def wait_for_mount(self, drive: int) -> str | None:
        """Poll until the disc in drive is mounted and return its title.

        A failing probe also ends the wait; extraction then decides. Raises
        DeviceFailureError when mount_timeout elapses first.
        """
        timeout = self.config.mount_timeout
        deadline = time.monotonic() + timeout if timeout else None

        while True:
            outcome, title = self.operations.disc_title(drive)
            if outcome is not CommandOutcome.EMPTY:
                return title

            if deadline is not None and time.monotonic() >= deadline:
                msg = f"Disc in drive {drive} did not mount within {timeout:g} seconds"
                raise DeviceFailureError(msg)

            logger.debug(f"Waiting for disc in drive {drive} to mount")
            time.sleep(self.config.mount_poll_interval)

    def write_disc_log(self, record: SlotRipRecord, extracted: CommandOutcome) -> Path:
        """Write the title and dvdbackup info of the loaded disc."""
        info = self.operations.disc_info(record.drive)
        log_path = self.config.rip_dir / disc_log_name(record.title, record.slot)

        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "w") as f:
            f.write(f"outcome: {extracted.value}\n")
            f.write(f"slot: {record.slot}\n")
            f.write(f"drive: {record.drive}\n")
            f.write(f"title: {record.title or 'unknown'}\n\n")
            f.write(info)

        logger.info(f"Disc info written to {log_path}")
        return log_path

    def unload_with_fallback(self, drive: int, out_slot: int) -> int | None:
        """Unload into out_slot, falling back through the error bank.

        Returns the slot the disc ended up in, or None when the changer
        reports the drive empty.
        """
        tried: list[int] = []
        for candidate in [out_slot, *self.slot_map.error_slots()]:
            if candidate in tried:
                continue
            if tried:
                logger.warning(f"Unload to slot {tried[-1]} failed; trying error slot {candidate}")
            tried.append(candidate)

            outcome = self.operations.unload(drive, candidate)
            if outcome is CommandOutcome.SUCCESS:
                return candidate
            if outcome is CommandOutcome.EMPTY:
                logger.error(f"Drive {drive} is empty; no disc to unload")
                return None

        raise ResourceExhaustedError(drive, tried)
