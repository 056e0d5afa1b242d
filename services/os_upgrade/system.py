"""Windows implementation of :class:`~services.os_upgrade.context.SystemContext`."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from pathlib import Path
from typing import Any, Sequence

from services.os_upgrade.models import (
    DownloadReport,
    InstallerLaunchError,
    InstallReport,
    MountHandle,
    PowerSetting,
    SystemCommandError,
    UpdateItem,
)
from services.os_upgrade.powershell import (
    DISMOUNT_SCRIPT,
    DOWNLOAD_SCRIPT,
    INSTALL_SCRIPT,
    MOUNT_SCRIPT,
    SEARCH_SCRIPT,
    run_powershell_json,
)

_LOGGER = logging.getLogger(__name__)

_ACTIVE_SCHEME = "SCHEME_CURRENT"
_SLEEP_SUBGROUP = "SUB_SLEEP"
_INDEX_PATTERN = re.compile(
    r"Current (?P<source>AC|DC) Power Setting Index:\s*0x(?P<value>[0-9a-fA-F]+)"
)


def parse_powercfg_query(output: str, *, on_battery: bool) -> int:
    """Extract the AC or DC setting index (seconds) from ``powercfg /query`` output."""

    wanted = "DC" if on_battery else "AC"
    for match in _INDEX_PATTERN.finditer(output):
        if match.group("source") == wanted:
            return int(match.group("value"), 16)
    raise SystemCommandError(f"powercfg output did not include a {wanted} setting index")


def _unsigned_exit_code(code: int) -> int:
    return code & 0xFFFFFFFF


class WindowsUpdateSession:
    """Drive the Windows Update agent through its COM API in PowerShell.

    Each phase runs in its own PowerShell process, so download and install
    search again with the criteria of the last :meth:`search` and select the
    updates by identity.
    """

    def __init__(self) -> None:
        self._criteria = ""

    def search(self, criteria: str) -> list[UpdateItem]:
        self._criteria = criteria
        payload = run_powershell_json(
            SEARCH_SCRIPT, {"Criteria": criteria}, description="update search"
        )
        return _parse_items(payload.get("updates"))

    def download(self, updates: Sequence[UpdateItem]) -> DownloadReport:
        payload = run_powershell_json(
            DOWNLOAD_SCRIPT,
            {"Criteria": self._criteria, "UpdateIds": _join_ids(updates)},
            description="update download",
        )
        return DownloadReport(
            result_code=_coerce_int(payload.get("result_code")),
            updates=tuple(_parse_items(payload.get("updates"))),
        )

    def install(self, updates: Sequence[UpdateItem]) -> InstallReport:
        payload = run_powershell_json(
            INSTALL_SCRIPT,
            {"Criteria": self._criteria, "UpdateIds": _join_ids(updates)},
            description="update install",
        )
        codes = payload.get("item_result_codes") or []
        if not isinstance(codes, list):
            codes = [codes]
        return InstallReport(
            result_code=_coerce_int(payload.get("result_code")),
            reboot_required=bool(payload.get("reboot_required")),
            item_result_codes=tuple(_coerce_int(code) for code in codes),
        )


class WindowsSystemContext:
    """Reach power settings, the update agent, disk images and setup.exe on Windows."""

    def read_power_timeout(self, setting: PowerSetting) -> int:
        output = self._powercfg("/query", _ACTIVE_SCHEME, _SLEEP_SUBGROUP, setting.powercfg_alias)
        return parse_powercfg_query(output, on_battery=setting.on_battery)

    def write_power_timeout(self, setting: PowerSetting, seconds: int) -> None:
        switch = "/setdcvalueindex" if setting.on_battery else "/setacvalueindex"
        self._powercfg(switch, _ACTIVE_SCHEME, _SLEEP_SUBGROUP, setting.powercfg_alias, str(seconds))
        self._powercfg("/setactive", _ACTIVE_SCHEME)

    def update_session(self) -> WindowsUpdateSession:
        return WindowsUpdateSession()

    def mount_image(self, image_path: Path) -> MountHandle:
        payload = run_powershell_json(
            MOUNT_SCRIPT, {"ImagePath": str(image_path)}, description="image mount"
        )
        letter = str(payload.get("drive_letter") or "").strip().rstrip(":")
        root = Path(f"{letter}:\\") if letter else None
        _LOGGER.info("Mounted %s at %s", image_path, root or "<no drive letter>")
        return MountHandle(image_path=image_path, root=root)

    def dismount_image(self, handle: MountHandle) -> None:
        run_powershell_json(
            DISMOUNT_SCRIPT, {"ImagePath": str(handle.image_path)}, description="image dismount"
        )
        _LOGGER.info("Dismounted %s", handle.image_path)

    def run_installer(self, command: Sequence[str]) -> int:  # pragma: no cover - requires Windows
        popen_kwargs: dict[str, Any] = {"stdin": subprocess.DEVNULL}
        if os.name == "nt":
            creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
            if creationflags:
                popen_kwargs["creationflags"] = creationflags
        try:
            completed = subprocess.run(list(command), check=False, **popen_kwargs)
        except OSError as exc:
            raise InstallerLaunchError(f"Failed to launch installer: {exc}") from exc
        return _unsigned_exit_code(completed.returncode)

    def _powercfg(self, *arguments: str) -> str:
        command = ["powercfg", *arguments]
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                errors="replace",
                stdin=subprocess.DEVNULL,
                check=False,
            )
        except OSError as exc:
            raise SystemCommandError(f"Failed to run powercfg: {exc}") from exc
        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise SystemCommandError(
                f"powercfg {' '.join(arguments)} exited with code {completed.returncode}: {detail}"
            )
        return completed.stdout or ""


def _join_ids(updates: Sequence[UpdateItem]) -> str:
    return ",".join(update.update_id for update in updates)


def _parse_items(raw: Any) -> list[UpdateItem]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = [raw]
    items: list[UpdateItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        update_id = entry.get("id")
        if not update_id:
            continue
        items.append(
            UpdateItem(
                update_id=str(update_id),
                title=str(entry.get("title") or update_id),
                is_downloaded=bool(entry.get("downloaded")),
            )
        )
    return items


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SystemCommandError(f"Expected an integer result code, got {value!r}") from None


__all__ = [
    "WindowsSystemContext",
    "WindowsUpdateSession",
    "parse_powercfg_query",
]
