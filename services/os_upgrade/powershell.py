"""PowerShell scripts used to reach the update agent and the disk image cmdlets."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import tempfile
import textwrap
from pathlib import Path
from typing import Any, Mapping

from services.os_upgrade.models import SystemCommandError


__all__ = [
    "DISMOUNT_SCRIPT",
    "DOWNLOAD_SCRIPT",
    "INSTALL_SCRIPT",
    "MOUNT_SCRIPT",
    "SEARCH_SCRIPT",
    "build_powershell_command",
    "parse_json_payload",
    "run_powershell_json",
]


_LOGGER = logging.getLogger(__name__)


_SELECT_UPDATES = textwrap.dedent(
    """
    function Select-Updates {
        param($Searcher, [string]$Criteria, [string]$UpdateIds, [bool]$DownloadedOnly)

        $wanted = @()
        if ($UpdateIds -ne '') {
            $wanted = $UpdateIds -split ','
        }

        $collection = New-Object -ComObject Microsoft.Update.UpdateColl
        $result = $Searcher.Search($Criteria)
        foreach ($update in $result.Updates) {
            if ($wanted -notcontains $update.Identity.UpdateID) {
                continue
            }
            if ($DownloadedOnly -and -not $update.IsDownloaded) {
                continue
            }
            [void]$collection.Add($update)
        }
        return ,$collection
    }

    function Convert-Updates {
        param($Collection)

        $items = @()
        for ($index = 0; $index -lt $Collection.Count; $index++) {
            $update = $Collection.Item($index)
            $items += [PSCustomObject]@{
                id = $update.Identity.UpdateID
                title = $update.Title
                downloaded = [bool]$update.IsDownloaded
            }
        }
        return ,$items
    }
    """
).strip()


SEARCH_SCRIPT = textwrap.dedent(
    """
    param([string]$Criteria)

    $ErrorActionPreference = 'Stop'

    $session = New-Object -ComObject Microsoft.Update.Session
    $searcher = $session.CreateUpdateSearcher()
    $result = $searcher.Search($Criteria)

    $items = @()
    foreach ($update in $result.Updates) {
        $items += [PSCustomObject]@{
            id = $update.Identity.UpdateID
            title = $update.Title
            downloaded = [bool]$update.IsDownloaded
        }
    }

    ConvertTo-Json -InputObject @{ updates = $items } -Depth 4 -Compress
    """
).strip()


DOWNLOAD_SCRIPT = (
    "param([string]$Criteria, [string]$UpdateIds)\n\n$ErrorActionPreference = 'Stop'\n\n"
    + _SELECT_UPDATES
    + "\n\n"
    + textwrap.dedent(
        """
        $session = New-Object -ComObject Microsoft.Update.Session
        $collection = Select-Updates $session.CreateUpdateSearcher() $Criteria $UpdateIds $false

        $downloader = $session.CreateUpdateDownloader()
        $downloader.Updates = $collection
        $download = $downloader.Download()

        ConvertTo-Json -InputObject @{
            result_code = [int]$download.ResultCode
            updates = Convert-Updates $collection
        } -Depth 4 -Compress
        """
    ).strip()
)


INSTALL_SCRIPT = (
    "param([string]$Criteria, [string]$UpdateIds)\n\n$ErrorActionPreference = 'Stop'\n\n"
    + _SELECT_UPDATES
    + "\n\n"
    + textwrap.dedent(
        """
        $session = New-Object -ComObject Microsoft.Update.Session
        $collection = Select-Updates $session.CreateUpdateSearcher() $Criteria $UpdateIds $true

        $installer = $session.CreateUpdateInstaller()
        $installer.ForceQuiet = $true
        $installer.Updates = $collection
        $install = $installer.Install()

        $codes = @()
        for ($index = 0; $index -lt $collection.Count; $index++) {
            $codes += [int]$install.GetUpdateResult($index).ResultCode
        }

        ConvertTo-Json -InputObject @{
            result_code = [int]$install.ResultCode
            reboot_required = [bool]$install.RebootRequired
            item_result_codes = $codes
        } -Depth 4 -Compress
        """
    ).strip()
)


MOUNT_SCRIPT = textwrap.dedent(
    """
    param([string]$ImagePath)

    $ErrorActionPreference = 'Stop'

    $image = Mount-DiskImage -ImagePath $ImagePath -Access ReadOnly -PassThru

    $letter = ''
    $maxAttempts = 10
    for ($attempt = 1; $attempt -le $maxAttempts; $attempt++) {
        $volume = $image | Get-Volume -ErrorAction SilentlyContinue | Where-Object { $_.DriveLetter } | Select-Object -First 1
        if ($volume) {
            $letter = [string]$volume.DriveLetter
            break
        }
        Start-Sleep -Milliseconds 500
    }

    ConvertTo-Json -InputObject @{ drive_letter = $letter } -Compress
    """
).strip()


DISMOUNT_SCRIPT = textwrap.dedent(
    """
    param([string]$ImagePath)

    $ErrorActionPreference = 'Stop'

    Dismount-DiskImage -ImagePath $ImagePath | Out-Null
    ConvertTo-Json -InputObject @{ dismounted = $true } -Compress
    """
).strip()


def build_powershell_command(script_path: Path, arguments: Mapping[str, str]) -> list[str]:
    command = [
        "powershell",
        "-NoProfile",
        "-NonInteractive",
        "-ExecutionPolicy",
        "Bypass",
        "-File",
        str(script_path),
    ]
    for name, value in arguments.items():
        command.extend([f"-{name}", value])
    return command


def parse_json_payload(stdout: str) -> dict[str, Any]:
    """Return the JSON object printed by a script, ignoring surrounding noise."""

    start = stdout.find("{")
    end = stdout.rfind("}") + 1
    if start < 0 or end <= start:
        raise SystemCommandError("PowerShell produced no JSON output")
    try:
        payload = json.loads(stdout[start:end])
    except json.JSONDecodeError as exc:
        raise SystemCommandError(f"PowerShell produced invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SystemCommandError("PowerShell output was not a JSON object")
    return payload


def run_powershell_json(
    script: str,
    arguments: Mapping[str, str] | None = None,
    *,
    description: str = "PowerShell script",
) -> dict[str, Any]:
    """Write ``script`` to a temporary file, run it and parse its JSON output."""

    script_dir = Path(tempfile.mkdtemp(prefix="os-upgrade-ps-"))
    script_path = script_dir / "task.ps1"
    script_path.write_text(script, encoding="utf-8")
    command = build_powershell_command(script_path, arguments or {})
    _LOGGER.debug("Running %s: %s", description, command)
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            stdin=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        raise SystemCommandError(f"Failed to start PowerShell for {description}: {exc}") from exc
    finally:
        shutil.rmtree(script_dir, ignore_errors=True)

    if completed.returncode != 0:
        detail = (completed.stderr or completed.stdout or "").strip()
        raise SystemCommandError(
            f"{description} exited with code {completed.returncode}: {detail[:500]}"
        )
    return parse_json_payload(completed.stdout or "")
