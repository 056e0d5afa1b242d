"""Apply pending software and driver updates before the OS upgrade."""

from __future__ import annotations

import logging

from services.os_upgrade.context import SystemContext
from services.os_upgrade.models import INSTALLED_RESULT_CODES, UpdateOutcome, UpgradePhase
from services.os_upgrade.status_log import LogSink

_LOGGER = logging.getLogger(__name__)

BASE_CRITERIA = "IsInstalled=0 and IsHidden=0"
SOFTWARE_ONLY_CRITERIA = "Type='Software'"


def build_search_criteria(include_drivers: bool) -> str:
    if include_drivers:
        return BASE_CRITERIA
    return f"{BASE_CRITERIA} and {SOFTWARE_ONLY_CRITERIA}"


class UpdateRunner:
    """Search, download and install applicable updates through the update agent."""

    def __init__(self, context: SystemContext) -> None:
        self._context = context

    def run(self, include_drivers: bool, log_sink: LogSink) -> UpdateOutcome:
        session = self._context.update_session()
        criteria = build_search_criteria(include_drivers)
        _LOGGER.debug("Searching for updates with criteria %r", criteria)

        found = session.search(criteria)
        log_sink.record(UpgradePhase.RUNNING_UPDATE, f"Search found {len(found)} update(s)")
        if not found:
            return UpdateOutcome()

        download = session.download(found)
        downloaded = [update for update in download.updates if update.is_downloaded]
        log_sink.record(
            UpgradePhase.RUNNING_UPDATE,
            f"Download finished; {len(downloaded)} of {len(found)} update(s) downloaded",
            code=download.result_code,
        )
        if not downloaded:
            return UpdateOutcome()

        report = session.install(downloaded)
        installed = sum(1 for code in report.item_result_codes if code in INSTALLED_RESULT_CODES)
        log_sink.record(
            UpgradePhase.RUNNING_UPDATE,
            f"Install finished; installed={installed} reboot_required={report.reboot_required}",
            code=report.result_code,
        )
        return UpdateOutcome(
            installed=installed,
            reboot_required=report.reboot_required,
            result_code=report.result_code,
        )


__all__ = ["BASE_CRITERIA", "SOFTWARE_ONLY_CRITERIA", "UpdateRunner", "build_search_criteria"]
