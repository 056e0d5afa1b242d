import json
from pathlib import Path

from app.config import (
    UpgradeConfig,
    get_upgrade_config,
    load_upgrade_config,
    reset_upgrade_config_cache,
)
from shared.logging_config import LogVerbosity


def test_default_config_points_at_staging_image() -> None:
    reset_upgrade_config_cache()
    config = load_upgrade_config()
    assert isinstance(config, UpgradeConfig)
    assert config.paths.staging_dir == Path("C:\\Win11Upgrade")
    assert config.paths.source == Path("C:\\Win11Upgrade\\Win11.iso")
    assert config.paths.installer_log_dir == Path("C:\\ProgramData\\InPlaceUpgrade\\SetupLogs")
    assert config.updates.enabled is True
    assert config.updates.include_drivers is False
    assert config.log_verbosity is LogVerbosity.INFO


def test_load_upgrade_config_from_custom_path(tmp_path) -> None:
    custom_config = {
        "paths": {
            "staging_dir": "D:\\Stage",
            "status_log": "D:\\Logs\\status.log",
            "compat_report_dirs": ["D:\\Panther"],
        },
        "updates": {"enabled": "no", "include_drivers": "yes"},
        "logging": {"verbosity": "Verbose"},
    }
    config_path = tmp_path / "upgrade.json"
    config_path.write_text(json.dumps(custom_config), encoding="utf-8")

    config = load_upgrade_config(config_path)

    assert config.paths.staging_dir == Path("D:\\Stage")
    assert config.paths.source == Path("D:\\Stage")
    assert config.paths.status_log == Path("D:\\Logs\\status.log")
    assert config.paths.compat_report_dirs == (Path("D:\\Panther"),)
    assert config.updates.enabled is False
    assert config.updates.include_drivers is True
    assert config.log_verbosity is LogVerbosity.VERBOSE


def test_invalid_values_fall_back_to_defaults(tmp_path) -> None:
    config_path = tmp_path / "upgrade.json"
    config_path.write_text(
        json.dumps(
            {
                "paths": {"staging_dir": "   ", "compat_report_dirs": [1, 2]},
                "updates": {"enabled": 7},
                "logging": {"verbosity": "chatty"},
            }
        ),
        encoding="utf-8",
    )

    config = load_upgrade_config(config_path)

    assert config.paths.staging_dir == Path("C:\\Win11Upgrade")
    assert len(config.paths.compat_report_dirs) == 2
    assert config.updates.enabled is True
    assert config.log_verbosity is LogVerbosity.INFO


def test_unreadable_or_malformed_file_yields_defaults(tmp_path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert load_upgrade_config(broken) == load_upgrade_config(tmp_path / "missing.json")


def test_env_var_selects_config_file(tmp_path, monkeypatch) -> None:
    config_path = tmp_path / "env.json"
    config_path.write_text(json.dumps({"updates": {"enabled": False}}), encoding="utf-8")
    monkeypatch.setenv("OS_UPGRADE_CONFIG", str(config_path))
    reset_upgrade_config_cache()

    try:
        assert get_upgrade_config().updates.enabled is False
        assert get_upgrade_config() is get_upgrade_config()
    finally:
        reset_upgrade_config_cache()
