"""Cassette-level diagnostic sweeps."""

import logging
from dataclasses import dataclass, field

from jukebox.config import JukeboxConfig
from jukebox.device.operations import DeviceOperations
from jukebox.device.outcomes import CommandOutcome
from jukebox.device.slots import SlotMap
from jukebox.error_handling import DeviceFailureError

logger = logging.getLogger(__name__)


@dataclass
class CassetteReport:
    """Load outcome of every slot in a cassette."""

    cassette: int
    drive: int
    outcomes: dict[int, CommandOutcome] = field(default_factory=dict)

    def slots_with(self, outcome: CommandOutcome) -> list[int]:
        return [slot for slot, o in self.outcomes.items() if o is outcome]

    @property
    def occupied(self) -> list[int]:
        return self.slots_with(CommandOutcome.SUCCESS)

    @property
    def empty(self) -> list[int]:
        return self.slots_with(CommandOutcome.EMPTY)

    @property
    def failed(self) -> list[int]:
        return self.slots_with(CommandOutcome.FAILURE)


class CassetteChecker:
    """Loads and unloads each slot of a cassette to see which respond."""

    def __init__(
        self,
        config: JukeboxConfig,
        operations: DeviceOperations | None = None,
        slot_map: SlotMap | None = None,
    ):
        self.config = config
        self.slot_map = slot_map or SlotMap(config)
        self.operations = operations or DeviceOperations(config, slot_map=self.slot_map)

    def check(self, cassette: int, drive: int = 0) -> CassetteReport:
        slots = self.slot_map.cassette_slots(cassette)
        self.slot_map.require_drive(drive)

        report = CassetteReport(cassette=cassette, drive=drive)
        logger.info(f"Checking cassette {cassette} (slots {slots[0]}-{slots[-1]}) in drive {drive}")

        for slot in slots:
            outcome = self.operations.load(drive, slot)
            report.outcomes[slot] = outcome
            if outcome is not CommandOutcome.SUCCESS:
                continue

            if self.operations.unload(drive, slot) is not CommandOutcome.SUCCESS:
                msg = f"Disc from slot {slot} is stuck in drive {drive}"
                raise DeviceFailureError(msg, recoverable=False)

        logger.info(
            f"Cassette {cassette}: {len(report.occupied)} occupied, "
            f"{len(report.empty)} empty, {len(report.failed)} failed",
        )
        return report
