"""Tests for slot and drive addressing."""

import pytest

from jukebox.config import JukeboxConfig
from jukebox.device.slots import SlotKind, SlotMap
from jukebox.error_handling import (
    InvalidArgumentError,
    InvalidDriveError,
    InvalidSlotError,
)


class TestSlotValidation:
    """Test is_valid_slot against the configured banks."""

    @pytest.mark.parametrize(
        ("slot", "kind", "expected"),
        [
            (1, SlotKind.INPUT, True),
            (10, SlotKind.INPUT, True),
            (11, SlotKind.INPUT, False),
            (11, SlotKind.OUTPUT, True),
            (20, SlotKind.OUTPUT, True),
            (21, SlotKind.OUTPUT, False),
            (21, SlotKind.ERROR, True),
            (25, SlotKind.ERROR, True),
            (26, SlotKind.ERROR, False),
            (15, SlotKind.ERROR, False),
            (25, SlotKind.ANY, True),
            (26, SlotKind.ANY, False),
        ],
    )
    def test_banks(self, slot_map, slot, kind, expected):
        assert slot_map.is_valid_slot(slot, kind) is expected

    def test_error_kind_accepts_input_slots(self, slot_map):
        assert slot_map.is_valid_slot(3, SlotKind.ERROR)

    @pytest.mark.parametrize("slot", [0, -1, -25, 3.0, "3", None, True, [3]])
    def test_rejects_non_slots(self, slot_map, slot):
        for kind in SlotKind:
            assert slot_map.is_valid_slot(slot, kind) is False

    def test_require_slot_raises(self, slot_map):
        with pytest.raises(InvalidSlotError) as exc_info:
            slot_map.require_slot(11, SlotKind.INPUT)

        assert exc_info.value.slot == 11
        assert exc_info.value.kind == "input"


class TestDriveValidation:
    @pytest.mark.parametrize("drive", [0, 1])
    def test_valid_drives(self, slot_map, drive):
        assert slot_map.is_valid_drive(drive)

    @pytest.mark.parametrize("drive", [-1, 2, 1.0, "0", None, False])
    def test_invalid_drives(self, slot_map, drive):
        assert not slot_map.is_valid_drive(drive)

    def test_require_drive_raises(self, slot_map):
        with pytest.raises(InvalidDriveError):
            slot_map.require_drive(2)

    def test_device_for(self, slot_map):
        assert slot_map.device_for(0) == "/dev/sr1"
        assert slot_map.device_for(1) == "/dev/sr2"


class TestOutputMapping:
    def test_output_slot_for(self, slot_map):
        assert slot_map.output_slot_for(1) == 11
        assert slot_map.output_slot_for(10) == 20

    def test_mapping_is_injective_into_output_bank(self, slot_map):
        outputs = [slot_map.output_slot_for(s) for s in slot_map.input_slots()]

        assert len(set(outputs)) == len(outputs)
        assert all(slot_map.is_valid_slot(s, SlotKind.OUTPUT) for s in outputs)

    def test_default_banks(self):
        slot_map = SlotMap(JukeboxConfig())

        assert slot_map.output_slot_for(1) == 351
        assert slot_map.output_slot_for(350) == 700

    @pytest.mark.parametrize("slot", [0, 11, 21, "1"])
    def test_output_slot_for_rejects_non_input(self, slot_map, slot):
        with pytest.raises(InvalidSlotError):
            slot_map.output_slot_for(slot)


class TestDriveAssignment:
    def test_parity_split(self, slot_map):
        assert [slot_map.drive_for(s) for s in range(1, 5)] == [1, 0, 1, 0]

    def test_error_slots_in_order(self, slot_map):
        assert slot_map.error_slots() == [21, 22, 23, 24, 25]


class TestCassettes:
    def test_cassette_for(self, slot_map):
        assert slot_map.cassette_for(1) == 0
        assert slot_map.cassette_for(5) == 0
        assert slot_map.cassette_for(6) == 1

    def test_cassette_slots(self, slot_map):
        assert slot_map.cassette_slots(1) == [6, 7, 8, 9, 10]

    def test_cassette_beyond_banks(self, slot_map):
        with pytest.raises(InvalidArgumentError):
            slot_map.cassette_slots(99)

    def test_negative_cassette(self, slot_map):
        with pytest.raises(InvalidArgumentError):
            slot_map.cassette_slots(-1)
