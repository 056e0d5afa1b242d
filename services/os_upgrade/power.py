"""Keep the machine awake for the duration of the upgrade."""

from __future__ import annotations

import logging

from services.os_upgrade.context import SystemContext
from services.os_upgrade.models import PowerSetting, PowerTimeoutSnapshot
from shared.result import best_effort

_LOGGER = logging.getLogger(__name__)


class PowerStateGuard:
    """Capture, disable and restore the sleep and hibernate idle timeouts.

    Every read and write is best-effort: a setting that cannot be read or
    written is logged, added to :attr:`warnings` and skipped.
    """

    def __init__(self, context: SystemContext) -> None:
        self._context = context
        self.warnings: list[str] = []

    def capture(self) -> PowerTimeoutSnapshot:
        values: dict[str, int | None] = {}
        for setting in PowerSetting:
            result = best_effort(
                lambda setting=setting: self._context.read_power_timeout(setting),
                f"read {setting.value} timeout",
                logger=_LOGGER,
                warnings=self.warnings,
            )
            values[setting.value] = result.value if result.is_ok() else None
        snapshot = PowerTimeoutSnapshot(**values)
        _LOGGER.info("Captured power timeouts: %s", snapshot)
        return snapshot

    def disable_all(self) -> bool:
        """Set every timeout to 0 ("never"); return ``True`` when all writes succeeded."""

        return self._write_all({setting: 0 for setting in PowerSetting}, "disable")

    def restore(self, snapshot: PowerTimeoutSnapshot | None) -> bool:
        if snapshot is None:
            message = "No power snapshot was captured; sleep and hibernate stay disabled"
            _LOGGER.warning(message)
            self.warnings.append(message)
            return False
        if snapshot.missing:
            _LOGGER.info(
                "Restoring unreadable timeouts as 0: %s",
                ", ".join(setting.value for setting in snapshot.missing),
            )
        values = {setting: snapshot.restore_value(setting) for setting in PowerSetting}
        return self._write_all(values, "restore")

    def _write_all(self, values: dict[PowerSetting, int], verb: str) -> bool:
        succeeded = True
        for setting, seconds in values.items():
            result = best_effort(
                lambda setting=setting, seconds=seconds: self._context.write_power_timeout(
                    setting, seconds
                ),
                f"{verb} {setting.value} timeout",
                logger=_LOGGER,
                warnings=self.warnings,
            )
            succeeded = succeeded and result.is_ok()
        return succeeded


__all__ = ["PowerStateGuard"]
