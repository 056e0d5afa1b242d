from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from services.os_upgrade.models import (
    DownloadReport,
    InstallReport,
    MountHandle,
    OperationResultCode,
    PowerSetting,
    UpdateItem,
)


DEFAULT_TIMEOUTS = {
    PowerSetting.STANDBY_AC: 1800,
    PowerSetting.STANDBY_DC: 900,
    PowerSetting.HIBERNATE_AC: 3600,
    PowerSetting.HIBERNATE_DC: 1800,
}


def make_updates(count: int) -> list[UpdateItem]:
    return [UpdateItem(update_id=f"update-{index}", title=f"Update {index}") for index in range(count)]


@dataclass
class FakeUpdateSession:
    """Return queued update agent results and record every call."""

    found: list[UpdateItem] = field(default_factory=list)
    downloaded_ids: set[str] | None = None
    download_result_code: int = OperationResultCode.SUCCEEDED
    item_result_codes: list[int] | None = None
    install_result_code: int = OperationResultCode.SUCCEEDED
    reboot_required: bool = False
    fail_on: str | None = None
    calls: list[tuple[str, tuple[str, ...]]] = field(default_factory=list)
    criteria: list[str] = field(default_factory=list)

    def search(self, criteria: str) -> list[UpdateItem]:
        self.criteria.append(criteria)
        self.calls.append(("search", ()))
        self._maybe_fail("search")
        return list(self.found)

    def download(self, updates: Sequence[UpdateItem]) -> DownloadReport:
        self.calls.append(("download", tuple(update.update_id for update in updates)))
        self._maybe_fail("download")
        wanted = self.downloaded_ids
        refreshed = tuple(
            UpdateItem(
                update.update_id,
                update.title,
                is_downloaded=wanted is None or update.update_id in wanted,
            )
            for update in updates
        )
        return DownloadReport(result_code=self.download_result_code, updates=refreshed)

    def install(self, updates: Sequence[UpdateItem]) -> InstallReport:
        self.calls.append(("install", tuple(update.update_id for update in updates)))
        self._maybe_fail("install")
        codes = self.item_result_codes
        if codes is None:
            codes = [OperationResultCode.SUCCEEDED] * len(updates)
        return InstallReport(
            result_code=self.install_result_code,
            reboot_required=self.reboot_required,
            item_result_codes=tuple(int(code) for code in codes),
        )

    def _maybe_fail(self, step: str) -> None:
        if self.fail_on == step:
            raise RuntimeError(f"{step} failed: 0x80240022")


class FakeSystemContext:
    """In-memory machine: power settings, update agent, image mounts and setup runs."""

    def __init__(
        self,
        *,
        timeouts: dict[PowerSetting, int] | None = None,
        unreadable: Sequence[PowerSetting] = (),
        unwritable: Sequence[PowerSetting] = (),
        session: FakeUpdateSession | None = None,
        mount_root: Path | None = None,
        installer_exit_code: int = 0,
        installer_error: Exception | None = None,
        dismount_error: Exception | None = None,
        mount_error: Exception | None = None,
    ) -> None:
        self.timeouts: dict[PowerSetting, int] = dict(DEFAULT_TIMEOUTS if timeouts is None else timeouts)
        self.unreadable = set(unreadable)
        self.unwritable = set(unwritable)
        self.session = session or FakeUpdateSession()
        self.mount_root = mount_root
        self.installer_exit_code = installer_exit_code
        self.installer_error = installer_error
        self.dismount_error = dismount_error
        self.mount_error = mount_error
        self.writes: list[tuple[PowerSetting, int]] = []
        self.mounted: list[Path] = []
        self.dismounted: list[MountHandle] = []
        self.installer_commands: list[tuple[str, ...]] = []
        self.update_sessions_opened = 0

    def read_power_timeout(self, setting: PowerSetting) -> int:
        if setting in self.unreadable:
            raise RuntimeError(f"cannot read {setting.value}")
        return self.timeouts[setting]

    def write_power_timeout(self, setting: PowerSetting, seconds: int) -> None:
        self.writes.append((setting, seconds))
        if setting in self.unwritable:
            raise RuntimeError(f"cannot write {setting.value}")
        self.timeouts[setting] = seconds

    def update_session(self) -> FakeUpdateSession:
        self.update_sessions_opened += 1
        return self.session

    def mount_image(self, image_path: Path) -> MountHandle:
        self.mounted.append(image_path)
        if self.mount_error is not None:
            raise self.mount_error
        return MountHandle(image_path=image_path, root=self.mount_root)

    def dismount_image(self, handle: MountHandle) -> None:
        self.dismounted.append(handle)
        if self.dismount_error is not None:
            raise self.dismount_error

    def run_installer(self, command: Sequence[str]) -> int:
        self.installer_commands.append(tuple(command))
        if self.installer_error is not None:
            raise self.installer_error
        return self.installer_exit_code

    def restore_writes(self) -> list[tuple[PowerSetting, int]]:
        """Writes issued after the four "never" writes of ``disable_all``."""

        return self.writes[len(PowerSetting):]


def make_setup_dir(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "setup.exe").write_bytes(b"MZ")
    return root


def make_image(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"CD001")
    return path


__all__ = [
    "DEFAULT_TIMEOUTS",
    "FakeSystemContext",
    "FakeUpdateSession",
    "make_image",
    "make_setup_dir",
    "make_updates",
]
