"""Installed versions on disk: discovery, crash-safe installation and removal."""

from __future__ import annotations

import enum
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping, Protocol, Sequence

from shipyard.github import Client, DownloadProgress, Release, ReleaseAsset
from shipyard.library.manifest import InstallManifest
from shipyard.paths import expand_path
from shipyard.platform import Platform

log = logging.getLogger(__name__)


class _Game(Protocol):
    def slug(self) -> str: ...

    def pick_asset(
        self, assets: Sequence[ReleaseAsset], platform: Platform
    ) -> ReleaseAsset | None: ...

    def extract(self, archive: Path, dest: Path, platform: Platform) -> None: ...


@dataclass(frozen=True)
class InstalledVersion:
    """A directory holding a completed install of one release."""

    tag: str
    game_slug: str
    path: Path


class InstallStage(enum.Enum):
    """Steps of an install, in the order they are reported."""

    STARTING = "starting"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class InstallProgress:
    """One progress report; byte counts only for downloads, the result only when done."""

    stage: InstallStage
    downloaded: int | None = None
    total: int | None = None
    installed: InstalledVersion | None = None


@dataclass(frozen=True)
class InstallRequest:
    """What to install and where."""

    game: _Game
    release: Release
    platform: Platform
    library_root: Path
    download_dir: Path
    destination_override: Path | None = None


def _read_version(directory: Path) -> InstalledVersion | None:
    try:
        manifest = InstallManifest.read(directory)
    except (OSError, ValueError) as exc:
        log.warning("failed to read manifest in %s: %s", directory, exc)
        return None
    if manifest is None:
        return None
    return InstalledVersion(
        tag=manifest.tag, game_slug=manifest.game_slug, path=directory
    )


def _subdirectories(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except OSError:
        return []


def scan(
    library_root: str | os.PathLike[str],
    install_overrides: Mapping[str, str | os.PathLike[str]] | None = None,
) -> list[InstalledVersion]:
    """Find every install under ``library_root`` and at the override paths.

    Both the flat layout (``<root>/<tag>/``) and the partitioned layout
    (``<root>/<game_slug>/<tag>/``) are recognised. Overrides that point at an
    install already found are not listed twice.
    """
    found: list[InstalledVersion] = []
    root = expand_path(library_root)

    if root.is_dir():
        for child in _subdirectories(root):
            version = _read_version(child)
            if version is not None:
                found.append(version)
                continue
            found.extend(
                v
                for v in (_read_version(sub) for sub in _subdirectories(child))
                if v is not None
            )

    for tag, override_path in (install_overrides or {}).items():
        expanded = expand_path(override_path)
        version = _read_version(expanded)
        if version is None:
            log.debug("override for tag %s at %s has no manifest", tag, expanded)
            continue
        if all(existing.path != version.path for existing in found):
            found.append(version)

    return found


def partial_path(final_path: str | os.PathLike[str]) -> Path:
    """Sibling directory used while an install into ``final_path`` is in progress."""
    final = Path(final_path)
    name = final.name or "install"
    return final.parent / f"{name}.partial"


def install(
    client: Client,
    request: InstallRequest,
    progress: Callable[[InstallProgress], None] | None = None,
) -> tuple[InstalledVersion, Path | None]:
    """Download, extract into a partial directory, write the manifest, then rename.

    Returns the new install and the destination override that was used, if
    any, so the caller can record it. On a failure during extraction the
    partial directory is removed.
    """

    def report(update: InstallProgress) -> None:
        if progress is not None:
            progress(update)

    game = request.game
    release = request.release
    platform = request.platform

    report(InstallProgress(InstallStage.STARTING))

    asset = game.pick_asset(release.assets, platform)
    if asset is None:
        raise LookupError(f"no asset for {release.tag_name} on this platform")

    if request.destination_override is not None:
        dest_final = expand_path(request.destination_override)
    else:
        dest_final = expand_path(request.library_root) / game.slug() / release.tag_name
    dest_partial = partial_path(dest_final)

    if dest_final.exists():
        raise FileExistsError(f"destination already exists: {dest_final}")
    if dest_partial.exists():
        shutil.rmtree(dest_partial, ignore_errors=True)

    download_dir = Path(request.download_dir)
    download_dir.mkdir(parents=True, exist_ok=True)
    archive_path = download_dir / asset.name

    def forward(p: DownloadProgress) -> None:
        report(
            InstallProgress(
                InstallStage.DOWNLOADING, downloaded=p.downloaded, total=p.total
            )
        )

    client.download_asset(asset.browser_download_url, archive_path, forward)

    report(InstallProgress(InstallStage.EXTRACTING))

    try:
        dest_partial.mkdir(parents=True, exist_ok=True)
        game.extract(archive_path, dest_partial, platform)
        InstallManifest(
            tag=release.tag_name,
            game_slug=game.slug(),
            installed_at=datetime.now(timezone.utc),
            archive_sha256=None,
        ).write(dest_partial)
    except BaseException:
        shutil.rmtree(dest_partial, ignore_errors=True)
        raise

    report(InstallProgress(InstallStage.FINALIZING))

    os.rename(dest_partial, dest_final)

    try:
        archive_path.unlink()
    except OSError:
        pass

    installed = InstalledVersion(
        tag=release.tag_name, game_slug=game.slug(), path=dest_final
    )
    report(InstallProgress(InstallStage.DONE, installed=installed))

    override = (
        Path(request.destination_override)
        if request.destination_override is not None
        else None
    )
    return installed, override


def uninstall(installed: InstalledVersion) -> None:
    """Remove an installed version's directory; a missing directory is not an error."""
    if installed.path.exists():
        shutil.rmtree(installed.path)