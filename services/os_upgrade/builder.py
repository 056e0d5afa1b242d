"""Helpers for constructing the upgrade orchestrator for the current machine."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from services.os_upgrade.compat_report import CompatReporter
from services.os_upgrade.context import SystemContext
from services.os_upgrade.models import DynamicUpdateMode
from services.os_upgrade.orchestrator import UpgradeOptions, UpgradeOrchestrator
from services.os_upgrade.status_log import StatusLog
from services.os_upgrade.system import WindowsSystemContext

if TYPE_CHECKING:
    from app.config import UpgradeConfig


_LOGGER = logging.getLogger(__name__)


def build_upgrade_options(
    config: "UpgradeConfig",
    *,
    source: Path | None = None,
    dynamic_update: DynamicUpdateMode = DynamicUpdateMode.DISABLE,
) -> UpgradeOptions:
    return UpgradeOptions(
        source=Path(source) if source is not None else config.paths.source,
        staging_dir=config.paths.staging_dir,
        installer_log_dir=config.paths.installer_log_dir,
        dynamic_update=dynamic_update,
        run_updates=config.updates.enabled,
        include_drivers=config.updates.include_drivers,
    )


def build_upgrade_orchestrator(
    config: "UpgradeConfig",
    *,
    source: Path | None = None,
    dynamic_update: DynamicUpdateMode = DynamicUpdateMode.DISABLE,
    context: SystemContext | None = None,
    notify: Callable[[str], None] | None = None,
) -> UpgradeOrchestrator | None:
    """Construct an :class:`UpgradeOrchestrator`, or ``None`` when no context is available."""

    if context is None:
        if not sys.platform.startswith("win"):
            _LOGGER.error("In-place upgrades are only supported on Windows, not %s", sys.platform)
            return None
        context = WindowsSystemContext()

    options = build_upgrade_options(config, source=source, dynamic_update=dynamic_update)
    _LOGGER.debug("Upgrade options: %s", options)
    return UpgradeOrchestrator(
        context,
        options,
        status_log=StatusLog(config.paths.status_log),
        compat_reporter=CompatReporter(config.paths.compat_report_dirs),
        notify=notify,
    )


__all__ = ["build_upgrade_options", "build_upgrade_orchestrator"]
