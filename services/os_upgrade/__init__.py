"""Public API for the in-place OS upgrade package."""

from __future__ import annotations

from services.os_upgrade.builder import build_upgrade_options, build_upgrade_orchestrator
from services.os_upgrade.compat_report import CompatReporter
from services.os_upgrade.constants import (
    EXIT_GENERAL_ERROR,
    EXIT_SUCCESS,
    EXIT_SUCCESS_REBOOT_REQUIRED,
    IMAGE_EXTENSIONS,
    SETUP_EXECUTABLE_NAME,
)
from services.os_upgrade.context import SystemContext, UpdateSession
from services.os_upgrade.exit_codes import classify_exit_code, describe_result, process_exit_status
from services.os_upgrade.launcher import UpgradeLauncher
from services.os_upgrade.models import (
    DynamicUpdateMode,
    InstallerLaunchError,
    InstallSource,
    MountResolutionError,
    PowerTimeoutSnapshot,
    SetupNotFoundError,
    SourceNotFoundError,
    UpdateOutcome,
    UpgradeError,
    UpgradeResult,
)
from services.os_upgrade.orchestrator import UpgradeOptions, UpgradeOrchestrator
from services.os_upgrade.power import PowerStateGuard
from services.os_upgrade.source import SourceResolver
from services.os_upgrade.status_log import StatusLog
from services.os_upgrade.system import WindowsSystemContext
from services.os_upgrade.updates import UpdateRunner

__all__ = [
    "EXIT_GENERAL_ERROR",
    "EXIT_SUCCESS",
    "EXIT_SUCCESS_REBOOT_REQUIRED",
    "IMAGE_EXTENSIONS",
    "SETUP_EXECUTABLE_NAME",
    "CompatReporter",
    "DynamicUpdateMode",
    "InstallSource",
    "InstallerLaunchError",
    "MountResolutionError",
    "PowerStateGuard",
    "PowerTimeoutSnapshot",
    "SetupNotFoundError",
    "SourceNotFoundError",
    "SourceResolver",
    "StatusLog",
    "SystemContext",
    "UpdateOutcome",
    "UpdateRunner",
    "UpdateSession",
    "UpgradeError",
    "UpgradeLauncher",
    "UpgradeOptions",
    "UpgradeOrchestrator",
    "UpgradeResult",
    "WindowsSystemContext",
    "build_upgrade_options",
    "build_upgrade_orchestrator",
    "classify_exit_code",
    "describe_result",
    "process_exit_status",
]
