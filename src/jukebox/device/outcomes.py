"""Classification of tool exit codes and stderr into command outcomes.

The rules are kept as data so that they can be reviewed and tested without
running any external program. Bump RULES_VERSION whenever a rule changes
meaning.
"""

from dataclasses import dataclass
from enum import Enum

from jukebox.device.executor import CommandResult

RULES_VERSION = 1


class CommandOutcome(Enum):
    """Tri-state result of a device operation."""

    SUCCESS = "success"
    EMPTY = "empty"  # nothing to act on, not an error
    FAILURE = "failure"


class CommandKind(Enum):
    """External commands whose results are classified."""

    LOAD = "load"
    UNLOAD = "unload"
    MOUNT_PROBE = "mount_probe"
    EXTRACT = "extract"


# dvdbackup exit codes
EXTRACT_USAGE_ERROR = 1
EXTRACT_NAME_COLLISION = 2


@dataclass(frozen=True)
class OutcomeRule:
    """Maps an exit code and optional stderr substring to an outcome.

    A returncode of None matches any non-zero exit status.
    """

    kind: CommandKind
    returncode: int | None
    stderr_pattern: str | None
    outcome: CommandOutcome
    label: str

    def matches(self, kind: CommandKind, result: CommandResult) -> bool:
        if kind is not self.kind:
            return False
        if self.returncode is None:
            if result.ok:
                return False
        elif result.returncode != self.returncode:
            return False
        return self.stderr_pattern is None or self.stderr_pattern in result.stderr


OUTCOME_RULES: tuple[OutcomeRule, ...] = (
    OutcomeRule(CommandKind.LOAD, 0, None, CommandOutcome.SUCCESS, "loaded"),
    OutcomeRule(CommandKind.LOAD, None, "Empty", CommandOutcome.EMPTY, "source slot empty"),
    OutcomeRule(CommandKind.LOAD, None, "Full", CommandOutcome.FAILURE, "drive already occupied"),
    OutcomeRule(CommandKind.UNLOAD, 0, None, CommandOutcome.SUCCESS, "unloaded"),
    OutcomeRule(CommandKind.UNLOAD, None, "Empty", CommandOutcome.EMPTY, "drive empty"),
    OutcomeRule(CommandKind.UNLOAD, None, "Full", CommandOutcome.FAILURE, "slot already occupied"),
    OutcomeRule(CommandKind.MOUNT_PROBE, 0, None, CommandOutcome.SUCCESS, "mounted"),
    OutcomeRule(CommandKind.MOUNT_PROBE, 1, None, CommandOutcome.EMPTY, "not mounted"),
    OutcomeRule(CommandKind.EXTRACT, 0, None, CommandOutcome.SUCCESS, "extracted"),
    OutcomeRule(CommandKind.EXTRACT, EXTRACT_USAGE_ERROR, None, CommandOutcome.FAILURE, "usage error"),
    OutcomeRule(CommandKind.EXTRACT, EXTRACT_NAME_COLLISION, None, CommandOutcome.FAILURE, "title name collision"),
)


@dataclass(frozen=True)
class Classification:
    outcome: CommandOutcome
    label: str


def classify(
    kind: CommandKind,
    result: CommandResult,
    rules: tuple[OutcomeRule, ...] = OUTCOME_RULES,
) -> Classification:
    """Classify a command result using the first matching rule.

    Dry-run results always classify as success. Anything no rule covers is an
    unclassified failure.
    """
    if result.dry_run:
        return Classification(CommandOutcome.SUCCESS, "dry run")

    for rule in rules:
        if rule.matches(kind, result):
            return Classification(rule.outcome, rule.label)

    return Classification(
        CommandOutcome.FAILURE,
        f"unclassified exit status {result.returncode}",
    )
