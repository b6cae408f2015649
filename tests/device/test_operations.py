"""Tests for changer, mount probe and dvdbackup operations."""

import logging
import re

import pytest

from jukebox.device.executor import CommandResult
from jukebox.device.operations import (
    DRY_RUN_TITLE,
    DeviceOperations,
    generic_title,
    parse_mount_point,
)
from jukebox.device.outcomes import CommandOutcome
from jukebox.error_handling import CommandSpawnError, InvalidDriveError, InvalidSlotError

from conftest import df_output


def res(returncode=0, stdout="", stderr=""):
    return CommandResult([], returncode, stdout, stderr)


class TestValidation:
    """Arguments are checked before any command runs."""

    @pytest.mark.parametrize("slot", [0, 26, -3, "4", None])
    def test_load_rejects_bad_slot(self, operations, executor, slot):
        with pytest.raises(InvalidSlotError):
            operations.load(0, slot)
        assert executor.calls == []

    @pytest.mark.parametrize("drive", [-1, 2, "0", None])
    def test_unload_rejects_bad_drive(self, operations, executor, drive):
        with pytest.raises(InvalidDriveError):
            operations.unload(drive, 3)
        assert executor.calls == []

    def test_extract_rejects_bad_drive(self, operations, executor):
        with pytest.raises(InvalidDriveError):
            operations.extract(5)
        assert executor.calls == []

    def test_disc_title_rejects_bad_drive(self, operations, executor):
        with pytest.raises(InvalidDriveError):
            operations.disc_title(-1)
        assert executor.calls == []


class TestLoadUnload:
    def test_load_command_line(self, operations, executor):
        assert operations.load(1, 3) is CommandOutcome.SUCCESS
        assert executor.calls == [["mtx", "-f", "/dev/sg8", "load", "3", "1"]]

    def test_load_empty_slot(self, operations, executor, caplog):
        executor.script(("load", 3), res(1, stderr="Source Element Address 3 is Empty"))

        with caplog.at_level(logging.INFO):
            assert operations.load(1, 3) is CommandOutcome.EMPTY

        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_load_into_occupied_drive(self, operations, executor, caplog):
        executor.script(("load", 3), res(1, stderr="Drive 1 Full (Storage Element 7 Loaded)"))

        assert operations.load(1, 3) is CommandOutcome.FAILURE
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_unload_command_line(self, operations, executor):
        assert operations.unload(0, 12) is CommandOutcome.SUCCESS
        assert executor.calls == [["mtx", "-f", "/dev/sg8", "unload", "12", "0"]]

    def test_unload_into_full_slot(self, operations, executor):
        executor.script(("unload", 12), res(1, stderr="Storage Element 12 is Already Full"))

        assert operations.unload(0, 12) is CommandOutcome.FAILURE

    def test_unclassified_failure(self, operations, executor):
        executor.script(("load", 4), res(1, stderr="SCSI error"))

        assert operations.load(0, 4) is CommandOutcome.FAILURE

    def test_spawn_error_is_a_failure(self, config, slot_map, executor):
        def broken(args, *, timeout=None):
            raise CommandSpawnError("mtx", details="No such file or directory")

        executor.run = broken
        ops = DeviceOperations(config, executor=executor, slot_map=slot_map)

        assert ops.load(0, 4) is CommandOutcome.FAILURE

    def test_status_returns_raw_output(self, operations, executor):
        executor.script(("status",), res(0, stdout="Storage Element 1:Full\n"))

        assert operations.status() == "Storage Element 1:Full\n"


class TestDiscTitle:
    def test_title_from_mount_point(self, operations, executor):
        executor.script(("mount", "/dev/sr1"), res(0, df_output("/dev/sr1", "/media/MY_MOVIE")))

        assert operations.disc_title(0) == (CommandOutcome.SUCCESS, "MY_MOVIE")
        assert executor.calls == [["df", "-P", "/dev/sr1"]]

    def test_title_uses_last_path_segment(self, operations, executor):
        executor.script(
            ("mount", "/dev/sr2"),
            res(0, df_output("/dev/sr2", "/media/ripper/SOME_DISC")),
        )

        assert operations.disc_title(1) == (CommandOutcome.SUCCESS, "SOME_DISC")

    def test_not_mounted_yet(self, operations, executor):
        executor.script(("mount", "/dev/sr1"), res(0, df_output("/dev/sr1", None)))

        assert operations.disc_title(0) == (CommandOutcome.EMPTY, None)

    def test_probe_exit_one_is_empty(self, operations, executor):
        executor.script(("mount", "/dev/sr1"), res(1, stderr="df: /dev/sr1: No medium found"))

        assert operations.disc_title(0) == (CommandOutcome.EMPTY, None)

    def test_probe_failure(self, operations, executor):
        executor.script(("mount", "/dev/sr1"), res(2))

        assert operations.disc_title(0) == (CommandOutcome.FAILURE, None)

    def test_dry_run_title(self, config, slot_map):
        from jukebox.device.executor import CommandExecutor

        dry = config.model_copy(update={"dry_run": True})
        ops = DeviceOperations(dry, executor=CommandExecutor(dry), slot_map=slot_map)

        assert ops.disc_title(0) == (CommandOutcome.SUCCESS, DRY_RUN_TITLE)


class TestParseMountPoint:
    def test_mount_point_with_spaces(self):
        output = df_output("/dev/sr1", "/media/My Movie")

        assert parse_mount_point(output, "/dev/sr1") == "/media/My Movie"

    def test_other_device(self):
        assert parse_mount_point(df_output("/dev/sr2", "/media/X"), "/dev/sr1") is None


class TestDiscInfo:
    def test_disc_info(self, operations, executor):
        executor.script(("info", "/dev/sr2"), res(0, stdout="Title set 1\n"))

        assert operations.disc_info(1) == "Title set 1\n"
        assert executor.calls == [["dvdbackup", "--info", "--input=/dev/sr2"]]


class TestExtract:
    def test_extract_success(self, operations, executor, config):
        assert operations.extract(0) is CommandOutcome.SUCCESS
        assert executor.calls == [
            ["dvdbackup", "--mirror", "--input=/dev/sr1", f"--output={config.rip_dir}"],
        ]

    def test_name_collision_retries_once_with_generic_name(self, operations, executor):
        executor.script(("extract", "/dev/sr1"), res(2), res(0))

        assert operations.extract(0) is CommandOutcome.SUCCESS

        calls = executor.calls_for("extract")
        assert len(calls) == 2
        assert not any(a.startswith("--name=") for a in calls[0])
        assert calls[1][-1].startswith("--name=generic_rip_")

    def test_repeated_collision_fails_without_third_attempt(self, operations, executor):
        executor.script(("extract", "/dev/sr1"), res(2))

        assert operations.extract(0) is CommandOutcome.FAILURE
        assert len(executor.calls_for("extract")) == 2

    def test_forced_generic_name_does_not_retry(self, operations, executor):
        executor.script(("extract", "/dev/sr1"), res(2))

        assert operations.extract(0, force_generic_name=True) is CommandOutcome.FAILURE
        assert len(executor.calls_for("extract")) == 1

    @pytest.mark.parametrize("returncode", [1, -1, 255])
    def test_other_failures_do_not_retry(self, operations, executor, returncode):
        executor.script(("extract", "/dev/sr1"), res(returncode))

        assert operations.extract(0) is CommandOutcome.FAILURE
        assert len(executor.calls_for("extract")) == 1

    def test_generic_title_format(self):
        assert re.fullmatch(r"generic_rip_\d{8}_\d{6}_\d{6}", generic_title())
