"""Read blocking applications and drivers from setup's compatibility report.

Setup writes ``CompatData_<timestamp>.xml`` files while it evaluates the
machine. The newest file is parsed for human inspection only; nothing here
feeds back into the upgrade decisions.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Iterable

from services.os_upgrade.constants import COMPAT_REPORT_PATTERN
from services.os_upgrade.models import CompatBlocker, CompatReport

_LOGGER = logging.getLogger(__name__)

HARD_BLOCK = "hard"
DEFAULT_APP_RESOLUTION = "Uninstall the application"
DEFAULT_DRIVER_RESOLUTION = "Remove or update the driver package"


def _qname(root: ET.Element, tag: str) -> str:
    match = re.match(r"\{(.+)\}", root.tag or "")
    return f"{{{match.group(1)}}}{tag}" if match else tag


def find_latest_compat_report(search_dirs: Iterable[Path]) -> Path | None:
    """Return the most recently written compatibility report under ``search_dirs``."""

    candidates: list[tuple[float, Path]] = []
    for directory in search_dirs:
        directory = Path(directory)
        if not directory.is_dir():
            continue
        for path in directory.rglob(COMPAT_REPORT_PATTERN):
            try:
                candidates.append((path.stat().st_mtime, path))
            except OSError:
                continue
    if not candidates:
        return None
    return max(candidates, key=lambda item: item[0])[1]


def _is_hard_block(element: ET.Element, q: Callable[[str], str]) -> bool:
    for info in element.iter(q("CompatibilityInfo")):
        if (info.get("BlockingType") or "").lower() == HARD_BLOCK:
            return True
    return False


def _resolution(element: ET.Element, q: Callable[[str], str], default: str) -> str:
    action = element.find(q("Action"))
    if action is not None:
        resolution = action.get("ResolutionName") or action.get("Name")
        if resolution:
            return resolution
    info = element.find(q("CompatibilityInfo"))
    if info is not None and info.get("Message"):
        return info.get("Message")
    return default


def parse_compat_report(path: Path) -> CompatReport:
    root = ET.parse(path).getroot()

    def q(tag: str) -> str:
        return _qname(root, tag)

    applications: list[CompatBlocker] = []
    for program in root.iter(q("Program")):
        if _is_hard_block(program, q):
            name = program.get("Name") or "Unknown application"
            applications.append(CompatBlocker(name, _resolution(program, q, DEFAULT_APP_RESOLUTION)))

    drivers: list[CompatBlocker] = []
    for package in root.iter(q("DriverPackage")):
        if (package.get("BlockMigration") or "").lower() == "true":
            drivers.append(CompatBlocker(package.get("Inf") or "Unknown driver", DEFAULT_DRIVER_RESOLUTION))
    for device in root.iter(q("Device")):
        if _is_hard_block(device, q):
            name = device.get("Model") or device.get("Class") or "Unknown device"
            drivers.append(CompatBlocker(name, _resolution(device, q, DEFAULT_DRIVER_RESOLUTION)))

    return CompatReport(path=path, applications=tuple(applications), drivers=tuple(drivers))


class CompatReporter:
    """Scan the configured directories for the newest report and parse it."""

    def __init__(self, search_dirs: Iterable[Path]) -> None:
        self._search_dirs = tuple(Path(directory) for directory in search_dirs)

    def scan(self) -> CompatReport:
        path = find_latest_compat_report(self._search_dirs)
        if path is None:
            _LOGGER.info("No compatibility report found in %s", [str(d) for d in self._search_dirs])
            return CompatReport()
        _LOGGER.info("Reading compatibility report %s", path)
        try:
            return parse_compat_report(path)
        except (OSError, ET.ParseError):
            _LOGGER.warning("Unable to parse compatibility report %s", path, exc_info=True)
            return CompatReport(path=path)


__all__ = ["CompatReporter", "find_latest_compat_report", "parse_compat_report"]
