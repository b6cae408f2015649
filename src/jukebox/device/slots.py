"""Slot and drive addressing for the changer carousel."""

from enum import Enum

from jukebox.config import JukeboxConfig
from jukebox.error_handling import (
    InvalidArgumentError,
    InvalidDriveError,
    InvalidSlotError,
)


class SlotKind(Enum):
    """Slot banks of the carousel."""

    INPUT = "input"
    OUTPUT = "output"
    ERROR = "error"
    ANY = "any"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SlotMap:
    """Maps slot numbers onto the configured input, output and error banks."""

    def __init__(self, config: JukeboxConfig):
        self.config = config

    def _bank(self, kind: SlotKind) -> range:
        config = self.config
        if kind is SlotKind.INPUT:
            return range(config.first_input_slot, config.last_input_slot + 1)
        if kind is SlotKind.OUTPUT:
            return range(config.first_output_slot, config.last_output_slot + 1)
        return range(config.first_error_slot, config.last_error_slot + 1)

    def is_valid_slot(self, slot: object, kind: SlotKind = SlotKind.ANY) -> bool:
        """Check that slot is an integer inside the named bank.

        An input slot is also accepted as an error destination.
        """
        if not _is_int(slot):
            return False
        if kind is SlotKind.ANY:
            return any(
                slot in self._bank(bank)
                for bank in (SlotKind.INPUT, SlotKind.OUTPUT, SlotKind.ERROR)
            )
        if kind is SlotKind.ERROR:
            return slot in self._bank(SlotKind.ERROR) or slot in self._bank(
                SlotKind.INPUT,
            )
        return slot in self._bank(kind)

    def is_valid_drive(self, drive: object) -> bool:
        return _is_int(drive) and 0 <= drive < len(self.config.drives)

    def require_slot(self, slot: object, kind: SlotKind = SlotKind.ANY) -> int:
        if not self.is_valid_slot(slot, kind):
            raise InvalidSlotError(slot, kind.value)
        return slot

    def require_drive(self, drive: object) -> int:
        if not self.is_valid_drive(drive):
            raise InvalidDriveError(drive)
        return drive

    def output_slot_for(self, input_slot: object) -> int:
        """Return the output slot mirroring an input slot."""
        slot = self.require_slot(input_slot, SlotKind.INPUT)
        return slot - self.config.first_input_slot + self.config.first_output_slot

    def drive_for(self, slot: int) -> int:
        """Drive that serves a slot; even slots go to drive 0 with two drives."""
        return slot % len(self.config.drives)

    def input_slots(self) -> range:
        return self._bank(SlotKind.INPUT)

    def error_slots(self) -> list[int]:
        """Error bank slots in the order they are tried as fallbacks."""
        return list(self._bank(SlotKind.ERROR))

    def device_for(self, drive: int) -> str:
        return self.config.drives[self.require_drive(drive)]

    # Cassettes are only used for diagnostic sweeps

    def cassette_for(self, slot: int) -> int:
        slot = self.require_slot(slot)
        return (slot - 1) // self.config.cassette_size

    def cassette_slots(self, cassette: int) -> list[int]:
        """Valid slots belonging to a cassette."""
        if not _is_int(cassette) or cassette < 0:
            raise InvalidArgumentError(f"Invalid cassette number: {cassette!r}")

        size = self.config.cassette_size
        first = cassette * size + 1
        slots = [s for s in range(first, first + size) if self.is_valid_slot(s)]
        if not slots:
            raise InvalidArgumentError(
                f"Cassette {cassette} has no configured slots",
            )
        return slots
