"""Per-operating-system directories and release installers."""

from __future__ import annotations

import sys
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import platformdirs

from shipyard.library.extract import (
    copy_dir_recursive,
    find_first_with_ext,
    install_flat_zip,
    mount_dmg,
    unzip,
)


def _is_macos() -> bool:
    return sys.platform == "darwin"


def _project_dirs() -> platformdirs.PlatformDirs:
    appname = "Shipyard" if _is_macos() else "shipyard"
    return platformdirs.PlatformDirs(appname=appname, appauthor=False)


class Platform(ABC):
    """Where the launcher keeps its files and which release assets it wants."""

    @abstractmethod
    def default_library_root(self) -> Path:
        """Directory that holds installed versions by default."""

    @abstractmethod
    def config_dir(self) -> Path:
        """Directory for configuration and the ROM library."""

    @abstractmethod
    def cache_dir(self) -> Path:
        """Directory for downloads and HTTP caches."""

    @abstractmethod
    def asset_keyword(self) -> str:
        """Keyword identifying this platform's release asset names."""


class _ProjectDirsPlatform(Platform):
    def default_library_root(self) -> Path:
        return _project_dirs().user_data_path / "versions"

    def config_dir(self) -> Path:
        return _project_dirs().user_config_path

    def cache_dir(self) -> Path:
        return _project_dirs().user_cache_path


class Linux(_ProjectDirsPlatform):
    """Linux desktop."""

    def asset_keyword(self) -> str:
        return "Linux"


class MacOs(_ProjectDirsPlatform):
    """macOS desktop."""

    def asset_keyword(self) -> str:
        return "Mac"


_LINUX = Linux()
_MACOS = MacOs()


def current() -> Platform:
    """The platform the program is running on."""
    if _is_macos():
        return _MACOS
    if sys.platform.startswith("linux"):
        return _LINUX
    raise RuntimeError(f"unsupported operating system: {sys.platform}")


def install_appimage_release(
    archive: str | Path, dest: str | Path, appimage_name: str
) -> None:
    """Install a Linux release: a flat zip holding the AppImage and its data files.

    The whole archive is extracted, since the companion files are needed at
    runtime, and the AppImage is made executable.
    """
    install_flat_zip(archive, dest, appimage_name)


def install_app_in_dmg_release(archive: str | Path, dest: str | Path) -> None:
    """Install a macOS release laid out as a ``.app`` inside a DMG inside a zip."""
    if not _is_macos():
        raise RuntimeError(
            "DMG-based macOS installs are only supported when running on macOS"
        )
    dest = Path(dest)
    with tempfile.TemporaryDirectory() as scratch:
        unzip(archive, scratch)
        dmg = find_first_with_ext(scratch, "dmg")
        with mount_dmg(dmg) as mount:
            app = find_first_with_ext(mount.mount_point, "app")
            dest.mkdir(parents=True, exist_ok=True)
            target = dest / app.name
            try:
                copy_dir_recursive(app, target)
            except RuntimeError as exc:
                raise RuntimeError(f"copy {app} -> {target}: {exc}") from exc


def install_flat_binary_release(
    archive: str | Path, dest: str | Path, binary_name: str
) -> None:
    """Install a macOS release laid out as a flat zip with the binary at its root."""
    install_flat_zip(archive, dest, binary_name)