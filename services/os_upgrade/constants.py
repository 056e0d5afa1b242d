"""Constants shared across the OS upgrade modules."""

from __future__ import annotations

DEFAULT_STAGING_DIR = r"C:\Win11Upgrade"
DEFAULT_STATUS_LOG = r"C:\ProgramData\InPlaceUpgrade\upgrade-status.log"
DEFAULT_INSTALLER_LOG_DIR = r"C:\ProgramData\InPlaceUpgrade\SetupLogs"
DEFAULT_COMPAT_REPORT_DIRS = (
    r"C:\$WINDOWS.~BT\Sources\Panther",
    DEFAULT_INSTALLER_LOG_DIR,
)

SETUP_EXECUTABLE_NAME = "setup.exe"
IMAGE_EXTENSIONS = (".iso", ".img", ".vhd", ".vhdx")
COMPAT_REPORT_PATTERN = "CompatData_*.xml"

EXIT_SUCCESS = 0
EXIT_RESTART_TO_CONTINUE = 1
EXIT_GENERAL_ERROR = 3
EXIT_HARD_BLOCK = 4
EXIT_DOWNLOAD_FAILURE = 5
EXIT_CANCELLED = 302
EXIT_SUCCESS_REBOOT_REQUIRED = 3010
EXIT_DRIVER_ROLLBACK = 0xC1900101
EXIT_INCOMPATIBLE_APPLICATION = 0xC1900208
EXIT_UNSUPPORTED_EDITION = 0xC1900204
EXIT_DEVICE_DRIVER_ERROR = 0x800F0923

COMPAT_BLOCK_CODES = frozenset({EXIT_HARD_BLOCK, EXIT_INCOMPATIBLE_APPLICATION})

CONFIG_PATH_ENV = "OS_UPGRADE_CONFIG"
