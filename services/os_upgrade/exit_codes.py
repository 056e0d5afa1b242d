"""Classification of installer exit codes and the advice shown to the operator."""

from __future__ import annotations

from enum import Enum

from services.os_upgrade.constants import (
    COMPAT_BLOCK_CODES,
    EXIT_CANCELLED,
    EXIT_DEVICE_DRIVER_ERROR,
    EXIT_DOWNLOAD_FAILURE,
    EXIT_DRIVER_ROLLBACK,
    EXIT_GENERAL_ERROR,
    EXIT_HARD_BLOCK,
    EXIT_INCOMPATIBLE_APPLICATION,
    EXIT_RESTART_TO_CONTINUE,
    EXIT_SUCCESS,
    EXIT_SUCCESS_REBOOT_REQUIRED,
    EXIT_UNSUPPORTED_EDITION,
)
from services.os_upgrade.models import UpgradeResult


_CLASSIFICATIONS: dict[int, str] = {
    EXIT_SUCCESS: "Success",
    EXIT_RESTART_TO_CONTINUE: "Restart required to continue",
    EXIT_GENERAL_ERROR: "General error",
    EXIT_HARD_BLOCK: "Hard compatibility block",
    EXIT_DOWNLOAD_FAILURE: "Download or dynamic update failure",
    EXIT_CANCELLED: "Cancelled",
    EXIT_SUCCESS_REBOOT_REQUIRED: "Success, reboot required",
    EXIT_DRIVER_ROLLBACK: "Driver rollback",
    EXIT_INCOMPATIBLE_APPLICATION: "Incompatible application detected",
    EXIT_UNSUPPORTED_EDITION: "Unsupported edition or upgrade target",
    EXIT_DEVICE_DRIVER_ERROR: "Device or driver error during upgrade",
}

UNKNOWN_CLASSIFICATION = "Unknown"


class NextAction(str, Enum):
    NONE = "No further action is needed."
    REBOOT_AND_RERUN = "Reboot the machine, then run the upgrade again."
    REBOOT_LATER = "Reboot at your convenience to finish the upgrade."
    REVIEW_LOGS = "Review the setup logs before trying again."
    REVIEW_BLOCKERS = "Resolve the blocking applications or drivers listed in the log, then run the upgrade again."


def classify_exit_code(code: int) -> str:
    """Return the human-readable meaning of an installer exit code."""

    return _CLASSIFICATIONS.get(code, UNKNOWN_CLASSIFICATION)


def next_action(result: UpgradeResult) -> NextAction:
    if result.deferred_for_reboot:
        return NextAction.REBOOT_AND_RERUN
    if result.code == EXIT_SUCCESS:
        return NextAction.NONE
    if result.code == EXIT_SUCCESS_REBOOT_REQUIRED:
        return NextAction.REBOOT_LATER
    if result.code == EXIT_RESTART_TO_CONTINUE:
        return NextAction.REBOOT_AND_RERUN
    if result.code in COMPAT_BLOCK_CODES:
        return NextAction.REVIEW_BLOCKERS
    return NextAction.REVIEW_LOGS


def format_code(code: int) -> str:
    if code > 0xFFFF:
        return f"0x{code:08X}"
    return str(code)


def process_exit_status(code: int) -> int:
    """Return ``code`` as the signed 32-bit value passed to ``SystemExit``."""

    code &= 0xFFFFFFFF
    return code - 0x1_0000_0000 if code > 0x7FFFFFFF else code


def describe_result(result: UpgradeResult) -> str:
    """Build the single summary line shown for a terminal outcome."""

    if result.deferred_for_reboot:
        summary = (
            f"Exit code {format_code(result.code)} ({classify_exit_code(result.code)}): "
            "installed updates are waiting for a reboot, the OS upgrade was not started."
        )
    else:
        summary = f"Exit code {format_code(result.code)} ({classify_exit_code(result.code)})."
    return f"{summary} {next_action(result).value}"


__all__ = [
    "NextAction",
    "UNKNOWN_CLASSIFICATION",
    "classify_exit_code",
    "describe_result",
    "format_code",
    "next_action",
    "process_exit_status",
]
