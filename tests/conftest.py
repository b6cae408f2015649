"""Shared test configuration and fixtures."""

import logging
import threading
from collections import defaultdict

import pytest

from jukebox.cli import cleanup_logging
from jukebox.config import JukeboxConfig
from jukebox.device.executor import CommandResult
from jukebox.device.operations import DeviceOperations
from jukebox.device.slots import SlotMap


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging_handlers():
    """Automatically cleanup logging handlers after each test to prevent ResourceWarnings."""
    yield
    cleanup_logging()


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)


def df_output(device: str, mount_point: str | None) -> str:
    """POSIX df output for a device, mounted or not."""
    header = "Filesystem     1024-blocks  Used Available Capacity Mounted on\n"
    if mount_point is None:
        return header + "udev             8000000     0   8000000       0% /dev\n"
    return header + f"{device}          7000000 7000000   0     100% {mount_point}\n"


class ScriptedExecutor:
    """Stands in for CommandExecutor, answering from per-command scripts.

    Results are keyed by ("load", slot), ("unload", slot), ("mount", device),
    ("info", device) or ("extract", device). Each key holds a queue; the last
    entry keeps answering once the queue runs down. Unscripted commands
    succeed and every drive reports a mounted disc.
    """

    def __init__(self, config: JukeboxConfig):
        self.config = config
        self.calls: list[list[str]] = []
        self.scripts: dict[tuple, list[CommandResult]] = defaultdict(list)
        self._lock = threading.Lock()

    def script(self, key: tuple, *results: CommandResult) -> None:
        self.scripts[key].extend(results)

    @staticmethod
    def key_for(args: list[str]) -> tuple:
        program = args[0]
        if program == "mtx":
            verb = args[3]
            if verb == "status":
                return ("status",)
            return (verb, int(args[4]))
        if program == "df":
            return ("mount", args[-1])
        device = next(a.split("=", 1)[1] for a in args if a.startswith("--input="))
        if "--info" in args:
            return ("info", device)
        return ("extract", device)

    def default_result(self, args: list[str], key: tuple) -> CommandResult:
        if key[0] == "mount":
            device = key[1]
            label = "DISC_" + device.rsplit("/", 1)[-1].upper()
            return CommandResult(args, 0, df_output(device, f"/media/{label}"))
        if key[0] == "info":
            return CommandResult(args, 0, f"DVD-Video information of {key[1]}\n")
        return CommandResult(args, 0)

    def run(self, args: list[str], *, timeout: int | None = None) -> CommandResult:
        key = self.key_for(args)
        with self._lock:
            self.calls.append(list(args))
            queue = self.scripts.get(key)
            if not queue:
                return self.default_result(args, key)
            result = queue.pop(0) if len(queue) > 1 else queue[0]
        return CommandResult(list(args), result.returncode, result.stdout, result.stderr)

    def calls_for(self, verb: str) -> list[list[str]]:
        with self._lock:
            return [call for call in self.calls if self.key_for(call)[0] == verb]


@pytest.fixture
def config(tmp_path):
    """Small changer: inputs 1-10, outputs 11-20, errors 21-25."""
    return JukeboxConfig(
        rip_dir=tmp_path / "rip",
        log_dir=tmp_path / "logs",
        first_input_slot=1,
        last_input_slot=10,
        first_output_slot=11,
        first_error_slot=21,
        last_error_slot=25,
        cassette_size=5,
        mount_poll_interval=0,
        mount_timeout=5,
    )


@pytest.fixture
def slot_map(config):
    return SlotMap(config)


@pytest.fixture
def executor(config):
    return ScriptedExecutor(config)


@pytest.fixture
def operations(config, executor, slot_map):
    return DeviceOperations(config, executor=executor, slot_map=slot_map)
