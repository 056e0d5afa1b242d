"""Run an unattended in-place OS upgrade on this machine."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Sequence

from app.config import get_upgrade_config
from services.os_upgrade import (
    EXIT_GENERAL_ERROR,
    DynamicUpdateMode,
    UpgradeError,
    UpgradeResult,
    build_upgrade_orchestrator,
    describe_result,
    process_exit_status,
)
from shared.logging_config import ensure_app_logging, get_file_log_verbosity

_LOGGER = logging.getLogger(__name__)


def _dynamic_update_mode(value: str) -> DynamicUpdateMode:
    try:
        return DynamicUpdateMode.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--source",
        type=Path,
        default=None,
        help="Disk image or directory containing setup.exe (defaults to the configured staging source).",
    )
    parser.add_argument(
        "--dynamic-update",
        type=_dynamic_update_mode,
        default=DynamicUpdateMode.DISABLE,
        metavar="{Enable,Disable}",
        help="Whether setup may fetch Dynamic Update content (default: Disable).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, *, notify: Callable[[str], None] = print) -> int:
    args = parse_args(argv)
    config = get_upgrade_config()
    log_path = ensure_app_logging(config.log_verbosity)
    _LOGGER.info(
        "Starting upgrade run (source=%s, dynamic_update=%s); diagnostic log %s at %s verbosity",
        args.source or config.paths.source,
        args.dynamic_update.value,
        log_path,
        get_file_log_verbosity().value,
    )

    orchestrator = build_upgrade_orchestrator(
        config,
        source=args.source,
        dynamic_update=args.dynamic_update,
        notify=notify,
    )
    failure = describe_result(UpgradeResult(EXIT_GENERAL_ERROR))
    if orchestrator is None:
        notify(f"In-place upgrades require Windows. {failure}")
        return EXIT_GENERAL_ERROR

    try:
        result = orchestrator.run()
    except UpgradeError as exc:
        _LOGGER.error("Upgrade aborted: %s", exc)
        notify(f"Upgrade aborted: {exc}. {failure}")
        return EXIT_GENERAL_ERROR
    except Exception as exc:
        _LOGGER.exception("Upgrade failed unexpectedly")
        notify(f"Upgrade aborted: {exc}. {failure}")
        return EXIT_GENERAL_ERROR
    return process_exit_status(result.code)


if __name__ == "__main__":
    raise SystemExit(main())
