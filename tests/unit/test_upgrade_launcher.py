from __future__ import annotations

from pathlib import Path

import pytest

from services.os_upgrade.launcher import UpgradeLauncher, build_setup_command
from services.os_upgrade.models import DynamicUpdateMode, InstallerLaunchError
from tests.unit.upgrade_test_utils import FakeSystemContext


def test_setup_command_uses_fixed_unattended_flags(tmp_path: Path) -> None:
    setup = tmp_path / "setup.exe"
    log_dir = tmp_path / "logs"

    command = build_setup_command(setup, log_dir, DynamicUpdateMode.ENABLE)

    assert command == (
        str(setup),
        "/Auto",
        "Upgrade",
        "/Quiet",
        "/EULA",
        "Accept",
        "/NoReboot",
        "/DynamicUpdate",
        "Enable",
        "/Telemetry",
        "Disable",
        "/CopyLogs",
        str(log_dir),
    )


def test_launch_defaults_to_dynamic_update_disabled(tmp_path: Path) -> None:
    context = FakeSystemContext(installer_exit_code=3010)
    launcher = UpgradeLauncher(context, tmp_path / "SetupLogs")

    exit_code = launcher.launch(tmp_path / "setup.exe")

    assert exit_code == 3010
    command = context.installer_commands[0]
    assert command[command.index("/DynamicUpdate") + 1] == "Disable"


def test_launch_creates_log_directory(tmp_path: Path) -> None:
    log_dir = tmp_path / "nested" / "SetupLogs"
    launcher = UpgradeLauncher(FakeSystemContext(), log_dir)

    launcher.launch(tmp_path / "setup.exe", DynamicUpdateMode.DISABLE)

    assert log_dir.is_dir()


def test_launch_returns_vendor_codes_unmodified(tmp_path: Path) -> None:
    context = FakeSystemContext(installer_exit_code=0xC1900208)

    assert UpgradeLauncher(context, tmp_path).launch(tmp_path / "setup.exe") == 0xC1900208


def test_launch_errors_propagate(tmp_path: Path) -> None:
    context = FakeSystemContext(installer_error=InstallerLaunchError("Failed to launch installer"))

    with pytest.raises(InstallerLaunchError):
        UpgradeLauncher(context, tmp_path).launch(tmp_path / "setup.exe")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("enable", DynamicUpdateMode.ENABLE), (" DISABLE ", DynamicUpdateMode.DISABLE)],
)
def test_dynamic_update_mode_parse_is_case_insensitive(raw: str, expected: DynamicUpdateMode) -> None:
    assert DynamicUpdateMode.parse(raw) is expected


def test_dynamic_update_mode_rejects_unknown_values() -> None:
    with pytest.raises(ValueError, match="Unsupported dynamic update mode"):
        DynamicUpdateMode.parse("Auto")


def test_unusable_log_directory_is_a_launch_error(tmp_path: Path) -> None:
    blocker = tmp_path / "logs"
    blocker.write_text("not a directory", encoding="utf-8")
    context = FakeSystemContext()

    with pytest.raises(InstallerLaunchError, match="Cannot create installer log directory"):
        UpgradeLauncher(context, blocker / "SetupLogs").launch(tmp_path / "setup.exe")

    assert context.installer_commands == []
