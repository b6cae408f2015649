"""Batch ripping across all drives of the changer."""

import asyncio
import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from jukebox.config import JukeboxConfig
from jukebox.device.slots import SlotKind
from jukebox.error_handling import ResourceExhaustedError
from jukebox.rip.workflow import RipResult, SlotRipper, SlotRipRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchReport:
    """Summary of one batch run."""

    ripped: int
    empty: int
    failed: int
    elapsed_seconds: float
    started_at: datetime

    @property
    def total(self) -> int:
        return self.ripped + self.empty + self.failed

    def to_text(self) -> str:
        return (
            f"Rip report for batch started {self.started_at:%Y-%m-%d %H:%M:%S}\n"
            f"ripped: {self.ripped}\n"
            f"empty: {self.empty}\n"
            f"failed: {self.failed}\n"
            f"elapsed: {self.elapsed_seconds:.1f} seconds\n"
        )


def tally(slots: Iterable[int], results: dict[int, SlotRipRecord]) -> dict[RipResult, int]:
    """Count terminal results; every slot must have one."""
    counts = dict.fromkeys(RipResult, 0)
    missing = []
    for slot in slots:
        record = results.get(slot)
        if record is None or record.result is None:
            missing.append(slot)
            continue
        counts[record.result] += 1

    if missing:
        msg = f"Slots never reached a result: {missing}"
        raise RuntimeError(msg)
    return counts


class BatchScheduler:
    """Runs the rip workflow over many slots with one worker per drive."""

    def __init__(self, config: JukeboxConfig, ripper: SlotRipper | None = None):
        self.config = config
        self.ripper = ripper or SlotRipper(config)
        self.slot_map = self.ripper.slot_map
        self.results: dict[int, SlotRipRecord] = {}
        self._abort = threading.Event()

    def partition(self, slots: Iterable[int]) -> dict[int, list[int]]:
        """Group slots by the drive that serves them, in increasing order."""
        partitions: dict[int, list[int]] = {
            drive: [] for drive in range(len(self.config.drives))
        }
        for slot in sorted(slots):
            partitions[self.slot_map.drive_for(slot)].append(slot)
        return partitions

    def _drive_worker(self, drive: int, slots: list[int]) -> None:
        """Process one drive's slots one at a time."""
        logger.info(f"Drive {drive} worker starting with {len(slots)} slots")
        for slot in slots:
            if self._abort.is_set():
                logger.warning(f"Drive {drive} worker stopping: batch aborted")
                return
            try:
                self.results[slot] = self.ripper.rip_slot(slot)
            except ResourceExhaustedError:
                self._abort.set()
                raise
        logger.info(f"Drive {drive} worker finished")

    async def run(self, slots: Iterable[int] | None = None) -> BatchReport:
        """Rip every slot (the whole input bank by default) and report."""
        slots = list(self.slot_map.input_slots() if slots is None else slots)
        for slot in slots:
            self.slot_map.require_slot(slot, SlotKind.INPUT)

        self.results = {}
        self._abort.clear()
        partitions = self.partition(slots)

        started_at = datetime.now()
        start = time.monotonic()
        logger.info(f"Starting batch of {len(slots)} slots on {len(partitions)} drives")

        loop = asyncio.get_running_loop()
        outcomes = await asyncio.gather(
            *(
                loop.run_in_executor(None, self._drive_worker, drive, drive_slots)
                for drive, drive_slots in partitions.items()
                if drive_slots
            ),
            return_exceptions=True,
        )
        elapsed = time.monotonic() - start

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                logger.critical(f"Batch aborted after {elapsed:.1f} seconds: {outcome}")
                raise outcome

        counts = tally(slots, self.results)
        report = BatchReport(
            ripped=counts[RipResult.RIPPED],
            empty=counts[RipResult.SLOT_EMPTY],
            failed=counts[RipResult.RIP_FAILED],
            elapsed_seconds=elapsed,
            started_at=started_at,
        )
        logger.info(
            f"Batch complete: {report.ripped} ripped, {report.empty} empty, "
            f"{report.failed} failed in {elapsed:.1f}s",
        )
        return report

    def run_sync(self, slots: Iterable[int] | None = None) -> BatchReport:
        return asyncio.run(self.run(slots))

    def write_report(self, report: BatchReport) -> Path:
        """Write the report file into the report directory."""
        report_dir = self.config.reports_path
        report_dir.mkdir(parents=True, exist_ok=True)
        report_path = report_dir / f"rip_report_{report.started_at:%Y%m%d_%H%M%S}.txt"

        with open(report_path, "w") as f:
            f.write(report.to_text())

        logger.info(f"Report written to {report_path}")
        return report_path
