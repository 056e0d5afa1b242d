"""Locate the installer executable on a disk image or in a directory."""

from __future__ import annotations

import logging
from pathlib import Path

from services.os_upgrade.constants import IMAGE_EXTENSIONS, SETUP_EXECUTABLE_NAME
from services.os_upgrade.context import SystemContext
from services.os_upgrade.models import (
    InstallSource,
    MountHandle,
    MountResolutionError,
    SetupNotFoundError,
    SourceNotFoundError,
    SystemCommandError,
)

_LOGGER = logging.getLogger(__name__)


def is_image_path(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


class SourceResolver:
    """Turn a source path into an :class:`InstallSource`.

    Images are mounted read-only; the resulting handle travels with the
    returned source (or with the raised error) and is never released here.
    """

    def __init__(self, context: SystemContext) -> None:
        self._context = context

    def resolve(self, source: Path) -> InstallSource:
        source = Path(source).expanduser()
        if not source.exists():
            raise SourceNotFoundError(f"Installation source not found: {source}")

        mount: MountHandle | None = None
        if source.is_file() and is_image_path(source):
            image_path = source.resolve()
            _LOGGER.info("Mounting installation image %s", image_path)
            try:
                mount = self._context.mount_image(image_path)
            except SystemCommandError as exc:
                raise MountResolutionError(
                    f"Failed to mount image {image_path}: {exc}",
                    mount=MountHandle(image_path=image_path),
                ) from exc
            if mount.root is None:
                raise MountResolutionError(
                    f"Mounted image {image_path} did not receive a drive letter", mount=mount
                )
            root = mount.root
        elif source.is_dir():
            root = source.resolve()
        else:
            raise SourceNotFoundError(
                f"Installation source is neither a disk image nor a directory: {source}"
            )

        setup_path = root / SETUP_EXECUTABLE_NAME
        if not setup_path.is_file():
            raise SetupNotFoundError(
                f"{SETUP_EXECUTABLE_NAME} not found in installation root {root}", mount=mount
            )
        _LOGGER.info("Resolved installer at %s", setup_path)
        return InstallSource(root=root, setup_path=setup_path, mount=mount)


__all__ = ["SourceResolver", "is_image_path"]
