"""Capabilities the upgrade workflow needs from the machine it runs on.

Every side effect on machine-wide state goes through a :class:`SystemContext`
so the workflow can be exercised against a fake in tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence

from services.os_upgrade.models import (
    DownloadReport,
    InstallReport,
    MountHandle,
    PowerSetting,
    UpdateItem,
)


class UpdateSession(Protocol):
    """Search, download and install capability of the update agent."""

    def search(self, criteria: str) -> list[UpdateItem]:
        """Return updates matching ``criteria``."""

    def download(self, updates: Sequence[UpdateItem]) -> DownloadReport:
        """Download ``updates`` and report which ones are now on disk."""

    def install(self, updates: Sequence[UpdateItem]) -> InstallReport:
        """Install ``updates`` without user interaction."""


class SystemContext(Protocol):
    """Machine-level operations used by the upgrade components."""

    def read_power_timeout(self, setting: PowerSetting) -> int:
        """Return the idle timeout in seconds for the active power scheme."""

    def write_power_timeout(self, setting: PowerSetting, seconds: int) -> None:
        """Set the idle timeout in seconds for the active power scheme."""

    def update_session(self) -> UpdateSession:
        """Return a fresh update agent session."""

    def mount_image(self, image_path: Path) -> MountHandle:
        """Mount ``image_path`` read-only."""

    def dismount_image(self, handle: MountHandle) -> None:
        """Release a mount created by :meth:`mount_image`."""

    def run_installer(self, command: Sequence[str]) -> int:
        """Run ``command`` to completion and return its exit code."""


__all__ = ["SystemContext", "UpdateSession"]
