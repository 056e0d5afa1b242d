"""Sequence the upgrade and always put the machine back the way it was."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from services.os_upgrade.compat_report import CompatReporter
from services.os_upgrade.constants import COMPAT_BLOCK_CODES
from services.os_upgrade.context import SystemContext
from services.os_upgrade.exit_codes import classify_exit_code, describe_result, format_code
from services.os_upgrade.launcher import UpgradeLauncher
from services.os_upgrade.models import (
    DynamicUpdateMode,
    MountHandle,
    PowerTimeoutSnapshot,
    SourceResolutionError,
    UpdateOutcome,
    UpgradePhase,
    UpgradeResult,
)
from services.os_upgrade.power import PowerStateGuard
from services.os_upgrade.source import SourceResolver
from services.os_upgrade.status_log import StatusLog
from services.os_upgrade.updates import UpdateRunner
from shared.result import best_effort

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpgradeOptions:
    source: Path
    staging_dir: Path
    installer_log_dir: Path
    dynamic_update: DynamicUpdateMode = DynamicUpdateMode.DISABLE
    run_updates: bool = True
    include_drivers: bool = False


class UpgradeOrchestrator:
    """Run one upgrade: power guard, optional updates, setup, teardown.

    Teardown runs on every exit path. It releases the mounted image, restores
    the power timeouts and removes the staging directory only after a clean
    success. Source resolution and launch errors propagate once teardown has
    finished.
    """

    def __init__(
        self,
        context: SystemContext,
        options: UpgradeOptions,
        *,
        status_log: StatusLog | None = None,
        compat_reporter: CompatReporter | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._options = options
        self._status_log = status_log or StatusLog()
        self._compat_reporter = compat_reporter
        self._notify = notify or print
        self._power = PowerStateGuard(context)
        self._updates = UpdateRunner(context)
        self._resolver = SourceResolver(context)
        self._launcher = UpgradeLauncher(context, options.installer_log_dir)
        self._context = context
        self.phase = UpgradePhase.CAPTURING_POWER

    @property
    def status_log(self) -> StatusLog:
        return self._status_log

    @property
    def power_warnings(self) -> list[str]:
        return list(self._power.warnings)

    def run(self) -> UpgradeResult:
        snapshot: PowerTimeoutSnapshot | None = None
        mount: MountHandle | None = None
        result: UpgradeResult | None = None
        try:
            self._enter(UpgradePhase.CAPTURING_POWER, "Capturing power timeouts")
            snapshot = best_effort(
                self._power.capture, "capture power timeouts", logger=_LOGGER
            ).value
            best_effort(self._power.disable_all, "disable power timeouts", logger=_LOGGER)
            self._enter(UpgradePhase.POWER_DISABLED, "Sleep and hibernate disabled")

            if self._options.run_updates:
                outcome = self._run_update_phase()
                if outcome.reboot_required:
                    result = UpgradeResult.pending_reboot()
                    self._enter(
                        UpgradePhase.UPDATE_PENDING_REBOOT,
                        "Updates require a reboot; skipping the OS upgrade",
                        code=result.code,
                    )
                    self._notify(describe_result(result))
                    return result

            self._enter(UpgradePhase.RESOLVING_SOURCE, f"Resolving installation source {self._options.source}")
            try:
                source = self._resolver.resolve(self._options.source)
            except SourceResolutionError as exc:
                mount = exc.mount
                self._status_log.record(UpgradePhase.RESOLVING_SOURCE, str(exc), level="ERROR")
                raise
            mount = source.mount

            self._enter(UpgradePhase.LAUNCHING, f"Launching {source.setup_path}")
            try:
                exit_code = self._launcher.launch(source.setup_path, self._options.dynamic_update)
            except Exception as exc:
                self._status_log.record(
                    UpgradePhase.LAUNCHING, f"Installer launch failed: {exc}", level="ERROR"
                )
                raise
            result = UpgradeResult(exit_code)
            self._enter(
                UpgradePhase.COMPLETED,
                f"Setup finished: {format_code(exit_code)} {classify_exit_code(exit_code)}",
                code=exit_code,
            )
            if exit_code in COMPAT_BLOCK_CODES:
                self._report_compat_blockers()
            self._notify(describe_result(result))
            return result
        finally:
            self._teardown(snapshot, mount, result)

    def _run_update_phase(self) -> UpdateOutcome:
        self._enter(UpgradePhase.RUNNING_UPDATE, "Checking for software updates")
        try:
            return self._updates.run(self._options.include_drivers, self._status_log)
        except Exception as exc:
            _LOGGER.debug("Update phase failed", exc_info=True)
            self._status_log.record(
                UpgradePhase.RUNNING_UPDATE, f"Update phase failed: {exc}", level="ERROR"
            )
            return UpdateOutcome()

    def _report_compat_blockers(self) -> None:
        if self._compat_reporter is None:
            return
        report = best_effort(
            self._compat_reporter.scan, "read the compatibility report", logger=_LOGGER
        ).value
        if report is None or report.is_empty:
            return
        for blocker in report.applications:
            self._status_log.record(
                UpgradePhase.COMPLETED,
                f"Blocking application: {blocker.name} ({blocker.resolution})",
                level="WARNING",
            )
        for blocker in report.drivers:
            self._status_log.record(
                UpgradePhase.COMPLETED,
                f"Blocking driver: {blocker.name} ({blocker.resolution})",
                level="WARNING",
            )

    def _teardown(
        self,
        snapshot: PowerTimeoutSnapshot | None,
        mount: MountHandle | None,
        result: UpgradeResult | None,
    ) -> None:
        self._enter(UpgradePhase.TEARDOWN, "Restoring system state")

        if mount is not None:
            released = best_effort(
                lambda: self._context.dismount_image(mount),
                f"dismount {mount.image_path}",
                logger=_LOGGER,
            )
            if released.is_ok():
                self._status_log.record(UpgradePhase.TEARDOWN, f"Dismounted {mount.image_path}")
            else:
                self._status_log.record(UpgradePhase.TEARDOWN, released.warning, level="WARNING")

        restored = best_effort(
            lambda: self._power.restore(snapshot), "restore power timeouts", logger=_LOGGER
        )
        if restored.value_or(False):
            self._status_log.record(UpgradePhase.TEARDOWN, "Power timeouts restored")
        else:
            self._status_log.record(
                UpgradePhase.TEARDOWN,
                "Power timeouts were not fully restored; check sleep settings",
                level="WARNING",
            )

        if result is not None and result.is_clean_success:
            removed = best_effort(
                lambda: remove_staging_dir(self._options.staging_dir),
                f"remove staging directory {self._options.staging_dir}",
                logger=_LOGGER,
            )
            if removed.value_or(False):
                self._status_log.record(
                    UpgradePhase.TEARDOWN, f"Removed staging directory {self._options.staging_dir}"
                )
            elif not removed.is_ok():
                self._status_log.record(UpgradePhase.TEARDOWN, removed.warning, level="WARNING")
        else:
            _LOGGER.info("Keeping staging directory %s", self._options.staging_dir)

    def _enter(self, phase: UpgradePhase, message: str, *, code: int | None = None) -> None:
        self.phase = phase
        self._status_log.record(phase, message, code=code)


def remove_staging_dir(staging_dir: Path) -> bool:
    """Delete ``staging_dir`` recursively; return ``False`` when it did not exist."""

    if not staging_dir.exists():
        _LOGGER.debug("Staging directory %s already absent", staging_dir)
        return False
    shutil.rmtree(staging_dir)
    return True


__all__ = ["UpgradeOptions", "UpgradeOrchestrator", "remove_staging_dir"]
