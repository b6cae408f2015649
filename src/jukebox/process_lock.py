"""Single instance locking for the changer."""

import fcntl
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jukebox.config import JukeboxConfig


class ProcessLock:
    """Keeps two jukebox processes from driving the carousel at once."""

    def __init__(self, config: "JukeboxConfig") -> None:
        self.lock_file = config.log_dir / "jukebox.lock"
        self.lock_fd: int | None = None

    def acquire(self) -> bool:
        """Try to acquire exclusive lock. Returns True if successful."""
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            self.lock_fd = os.open(str(self.lock_file), os.O_CREAT | os.O_WRONLY)
            fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            # PID is informational only
            os.ftruncate(self.lock_fd, 0)
            os.write(self.lock_fd, str(os.getpid()).encode())
            os.fsync(self.lock_fd)
            return True
        except OSError:
            if self.lock_fd is not None:
                os.close(self.lock_fd)
                self.lock_fd = None
            return False

    def release(self) -> None:
        """Release the lock."""
        if self.lock_fd is not None:
            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
                os.close(self.lock_fd)
            except OSError:
                pass
            finally:
                self.lock_fd = None

    def holder_pid(self) -> int | None:
        """PID recorded by the current lock holder, if any."""
        try:
            content = self.lock_file.read_text().strip()
        except OSError:
            return None
        return int(content) if content.isdigit() else None

