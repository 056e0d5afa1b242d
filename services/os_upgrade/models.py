"""Data models used by the OS upgrade workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import Tuple

from services.os_upgrade.constants import EXIT_SUCCESS, EXIT_SUCCESS_REBOOT_REQUIRED


class PowerSetting(str, Enum):
    """Idle timeouts managed while the upgrade runs."""

    STANDBY_AC = "standby_ac"
    STANDBY_DC = "standby_dc"
    HIBERNATE_AC = "hibernate_ac"
    HIBERNATE_DC = "hibernate_dc"

    @property
    def powercfg_alias(self) -> str:
        if self in (PowerSetting.STANDBY_AC, PowerSetting.STANDBY_DC):
            return "STANDBYIDLE"
        return "HIBERNATEIDLE"

    @property
    def on_battery(self) -> bool:
        return self in (PowerSetting.STANDBY_DC, PowerSetting.HIBERNATE_DC)


@dataclass(frozen=True)
class PowerTimeoutSnapshot:
    """Idle timeouts (seconds) captured before the upgrade; ``None`` means unreadable."""

    standby_ac: int | None = None
    standby_dc: int | None = None
    hibernate_ac: int | None = None
    hibernate_dc: int | None = None

    def get(self, setting: PowerSetting) -> int | None:
        return getattr(self, setting.value)

    def restore_value(self, setting: PowerSetting) -> int:
        value = self.get(setting)
        return 0 if value is None else value

    @property
    def missing(self) -> tuple[PowerSetting, ...]:
        return tuple(setting for setting in PowerSetting if self.get(setting) is None)


class DynamicUpdateMode(str, Enum):
    """Value passed to the installer's ``/DynamicUpdate`` switch."""

    ENABLE = "Enable"
    DISABLE = "Disable"

    @classmethod
    def parse(cls, value: str) -> "DynamicUpdateMode":
        for mode in cls:
            if mode.value.lower() == value.strip().lower():
                return mode
        raise ValueError(f"Unsupported dynamic update mode: {value}")


class OperationResultCode(IntEnum):
    """Result codes reported by the Windows Update agent."""

    NOT_STARTED = 0
    IN_PROGRESS = 1
    SUCCEEDED = 2
    SUCCEEDED_WITH_ERRORS = 3
    FAILED = 4
    ABORTED = 5


INSTALLED_RESULT_CODES = frozenset(
    {OperationResultCode.SUCCEEDED, OperationResultCode.SUCCEEDED_WITH_ERRORS}
)


@dataclass(frozen=True)
class UpdateItem:
    """A single update known to the update agent."""

    update_id: str
    title: str
    is_downloaded: bool = False


@dataclass(frozen=True)
class DownloadReport:
    result_code: int
    updates: Tuple[UpdateItem, ...] = ()


@dataclass(frozen=True)
class InstallReport:
    result_code: int
    reboot_required: bool
    item_result_codes: Tuple[int, ...] = ()


@dataclass(frozen=True)
class UpdateOutcome:
    """Summary of one update run."""

    installed: int = 0
    reboot_required: bool = False
    result_code: int | None = None


@dataclass(frozen=True)
class MountHandle:
    """A mounted disk image; ``root`` is ``None`` when no drive letter was assigned."""

    image_path: Path
    root: Path | None = None


@dataclass(frozen=True)
class InstallSource:
    root: Path
    setup_path: Path
    mount: MountHandle | None = None


@dataclass(frozen=True)
class UpgradeResult:
    """Final installer exit code, or 3010 when deferred for a pending reboot."""

    code: int
    deferred_for_reboot: bool = False

    @classmethod
    def pending_reboot(cls) -> "UpgradeResult":
        return cls(EXIT_SUCCESS_REBOOT_REQUIRED, deferred_for_reboot=True)

    @property
    def is_clean_success(self) -> bool:
        return self.code == EXIT_SUCCESS and not self.deferred_for_reboot


class UpgradePhase(str, Enum):
    """Phases of the upgrade workflow."""

    CAPTURING_POWER = "capturing_power"
    POWER_DISABLED = "power_disabled"
    RUNNING_UPDATE = "running_update"
    UPDATE_PENDING_REBOOT = "update_pending_reboot"
    RESOLVING_SOURCE = "resolving_source"
    LAUNCHING = "launching"
    COMPLETED = "completed"
    TEARDOWN = "teardown"


@dataclass(frozen=True)
class LogEvent:
    """One line of the status log."""

    phase: UpgradePhase
    message: str
    level: str = "INFO"
    code: int | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def render(self) -> str:
        stamp = self.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        line = f"{stamp} [{self.phase.value}] {self.level} {self.message}"
        if self.code is not None:
            line = f"{line} (code={self.code})"
        return line


@dataclass(frozen=True)
class CompatBlocker:
    name: str
    resolution: str


@dataclass(frozen=True)
class CompatReport:
    """Blocking applications and drivers listed in an installer compatibility report."""

    path: Path | None = None
    applications: Tuple[CompatBlocker, ...] = ()
    drivers: Tuple[CompatBlocker, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.applications and not self.drivers


class UpgradeError(RuntimeError):
    """Raised when the upgrade cannot proceed to the installer."""


class SourceResolutionError(UpgradeError):
    """Base for installation source failures; ``mount`` is set when an image was mounted."""

    def __init__(self, message: str, *, mount: MountHandle | None = None) -> None:
        super().__init__(message)
        self.mount = mount


class SourceNotFoundError(SourceResolutionError):
    """Raised when the installation source path does not exist."""


class MountResolutionError(SourceResolutionError):
    """Raised when a mounted image exposes no drive root."""


class SetupNotFoundError(SourceResolutionError):
    """Raised when the installer executable is missing from the source root."""


class InstallerLaunchError(UpgradeError):
    """Raised when the installer process cannot be started."""


class SystemCommandError(RuntimeError):
    """Raised when a system tool exits unsuccessfully or returns unusable output."""
