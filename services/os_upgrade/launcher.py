"""Run the OS installer unattended."""

from __future__ import annotations

import logging
from pathlib import Path

from services.os_upgrade.context import SystemContext
from services.os_upgrade.models import DynamicUpdateMode, InstallerLaunchError

_LOGGER = logging.getLogger(__name__)


def build_setup_command(
    setup_path: Path, log_dir: Path, dynamic_update: DynamicUpdateMode
) -> tuple[str, ...]:
    """Return the fixed unattended command line for ``setup_path``."""

    return (
        str(setup_path),
        "/Auto",
        "Upgrade",
        "/Quiet",
        "/EULA",
        "Accept",
        "/NoReboot",
        "/DynamicUpdate",
        dynamic_update.value,
        "/Telemetry",
        "Disable",
        "/CopyLogs",
        str(log_dir),
    )


class UpgradeLauncher:
    """Launch setup and block until it exits. Dynamic Update defaults to ``Disable``."""

    def __init__(self, context: SystemContext, log_dir: Path) -> None:
        self._context = context
        self._log_dir = Path(log_dir)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def launch(
        self, setup_path: Path, dynamic_update: DynamicUpdateMode = DynamicUpdateMode.DISABLE
    ) -> int:
        try:
            self._log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise InstallerLaunchError(
                f"Cannot create installer log directory {self._log_dir}: {exc}"
            ) from exc
        command = build_setup_command(setup_path, self._log_dir, dynamic_update)
        _LOGGER.info("Launching installer: %s", " ".join(command))
        exit_code = self._context.run_installer(command)
        _LOGGER.info("Installer exited with code %s", exit_code)
        return exit_code


__all__ = ["UpgradeLauncher", "build_setup_command"]
