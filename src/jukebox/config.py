"""Configuration management for Jukebox."""

from pathlib import Path

import tomli
from pydantic import BaseModel, Field, field_validator, model_validator


class JukeboxConfig(BaseModel):
    """Main configuration for Jukebox."""

    # Hardware - MUST match the changer wiring on your system
    carousel_device: str = Field(default="/dev/sg8")
    drives: list[str] = Field(default_factory=lambda: ["/dev/sr1", "/dev/sr2"])

    # Paths
    rip_dir: Path = Field(default=Path("/rip"))
    log_dir: Path = Field(default=Path("~/.local/share/jukebox/logs"))
    report_dir: Path | None = None

    # Slot banks (inclusive bounds)
    first_input_slot: int = Field(default=1)
    last_input_slot: int = Field(default=350)
    first_output_slot: int = Field(default=351)
    first_error_slot: int = Field(default=701)
    last_error_slot: int = Field(default=720)
    cassette_size: int = Field(default=50)

    # External tools
    mtx_binary: str = Field(default="mtx")
    dvdbackup_binary: str = Field(default="dvdbackup")
    df_binary: str = Field(default="df")

    # Timeout Settings (seconds)
    command_timeout: int = Field(default=120)  # 2 minutes per carousel move
    extract_timeout: int = Field(default=7200)  # 2 hours
    mount_timeout: float = Field(default=900)  # 15 minutes, 0 waits forever

    # Processing Intervals (seconds)
    mount_poll_interval: float = Field(default=10)

    # Display commands without running them
    dry_run: bool = Field(default=False)

    @field_validator("rip_dir", "log_dir", "report_dir", mode="before")
    @classmethod
    def expand_paths(cls, v: Path | str | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None:
            return None
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @field_validator("drives")
    @classmethod
    def drives_required(cls, v: list[str]) -> list[str]:
        """At least one drive must be configured."""
        if not v:
            msg = "At least one drive device must be configured"
            raise ValueError(msg)
        return v

    @field_validator("cassette_size", "command_timeout", "extract_timeout")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            msg = "must be greater than zero"
            raise ValueError(msg)
        return v

    @field_validator("mount_timeout", "mount_poll_interval")
    @classmethod
    def not_negative(cls, v: float) -> float:
        if v < 0:
            msg = "must not be negative"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_slot_banks(self) -> "JukeboxConfig":
        """Slot banks must be well-formed and must never overlap."""
        if self.first_input_slot < 1:
            msg = "first_input_slot must be at least 1"
            raise ValueError(msg)
        if self.last_input_slot < self.first_input_slot:
            msg = "Input bank is empty"
            raise ValueError(msg)
        if self.last_error_slot < self.first_error_slot:
            msg = "Error bank is empty"
            raise ValueError(msg)

        banks = sorted(
            [
                ("input", self.first_input_slot, self.last_input_slot),
                ("output", self.first_output_slot, self.last_output_slot),
                ("error", self.first_error_slot, self.last_error_slot),
            ],
            key=lambda bank: bank[1],
        )
        for (name_a, _, last_a), (name_b, first_b, _) in zip(banks, banks[1:]):
            if first_b <= last_a:
                msg = f"The {name_a} and {name_b} slot banks overlap"
                raise ValueError(msg)
        return self

    @property
    def last_output_slot(self) -> int:
        """Last slot of the output bank, sized to match the input bank."""
        return self.first_output_slot + self.last_input_slot - self.first_input_slot

    @property
    def reports_path(self) -> Path:
        """Directory batch reports are written to."""
        return self.report_dir or self.rip_dir

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [self.rip_dir, self.log_dir, self.reports_path]:
            dir_path.mkdir(parents=True, exist_ok=True)


def load_config(config_path: Path | None = None) -> JukeboxConfig:
    """Load configuration from file or defaults."""
    if config_path is None:
        possible_paths = [
            Path.home() / ".config" / "jukebox" / "config.toml",
            Path.cwd() / "jukebox.toml",
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomli.load(f)
        return JukeboxConfig(**config_data)
    return JukeboxConfig()


def create_sample_config(path: Path) -> None:
    """Create a sample configuration file."""
    sample_config = """# Jukebox Configuration
# =====================

# ============================================================================
# REQUIRED SETTINGS - Check these against your changer before ripping
# ============================================================================

carousel_device = "/dev/sg8"                      # SCSI generic device of the changer robot
drives = ["/dev/sr1", "/dev/sr2"]                 # Block devices of drive 0, drive 1, ...
rip_dir = "/rip"                                  # Extracted discs and per-disc logs

# ============================================================================
# SLOT BANKS - inclusive bounds, banks must not overlap
# ============================================================================

first_input_slot = 1                              # Discs waiting to be ripped
last_input_slot = 350
first_output_slot = 351                           # Ripped discs, same size as the input bank
first_error_slot = 701                            # Overflow when an output slot is occupied
last_error_slot = 720
cassette_size = 50                                # Slots per cassette (diagnostics only)

# ============================================================================
# ADVANCED SETTINGS - Most users can leave these as defaults
# ============================================================================

log_dir = "~/.local/share/jukebox/logs"           # Operational log and process lock
# report_dir = "/rip/reports"                     # Batch reports, defaults to rip_dir

mtx_binary = "mtx"
dvdbackup_binary = "dvdbackup"
df_binary = "df"

command_timeout = 120                             # Carousel command timeout
extract_timeout = 7200                            # dvdbackup mirror timeout (2 hours)
mount_timeout = 900                               # Give up waiting for a mount (0 = wait forever)
mount_poll_interval = 10                          # Seconds between mount checks
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(sample_config)
