"""Archive extraction and file-copy helpers used by release installers."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

log = logging.getLogger(__name__)

_UNIX_SYSTEM = 3
_DOS_SYSTEM = 0


def install_flat_zip(archive: str | Path, dest: str | Path, binary_name: str) -> None:
    """Unzip ``archive`` into ``dest`` and make ``binary_name`` executable."""
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    unzip(archive, dest)
    if os.name == "posix":
        binary = dest / binary_name
        if binary.exists():
            os.chmod(binary, 0o755)


def _enclosed_name(name: str) -> str | None:
    if "\0" in name:
        return None
    path = PurePosixPath(name.replace("\\", "/"))
    if path.is_absolute() or (path.parts and path.parts[0].endswith(":")):
        return None
    depth = 0
    parts = []
    for part in path.parts:
        if part == ".":
            continue
        if part == "..":
            depth -= 1
            if depth < 0:
                return None
        else:
            depth += 1
        parts.append(part)
    if not parts:
        return None
    return "/".join(parts)


def _unix_mode(info: zipfile.ZipInfo) -> int | None:
    if info.create_system == _UNIX_SYSTEM:
        mode = info.external_attr >> 16
        return mode or None
    if info.create_system == _DOS_SYSTEM:
        mode = 0o775 if info.external_attr & 0x10 else 0o664
        if info.external_attr & 0x01:
            mode &= 0o555
        return mode
    return None


def unzip(archive: str | Path, dest: str | Path) -> None:
    """Extract every entry of ``archive`` under ``dest``, keeping relative paths.

    Entries whose names would escape ``dest`` are skipped.
    """
    dest = Path(dest)
    with zipfile.ZipFile(archive) as zf:
        dest.mkdir(parents=True, exist_ok=True)
        for info in zf.infolist():
            rel = _enclosed_name(info.filename)
            if rel is None:
                continue
            out = dest / rel
            if info.is_dir():
                out.mkdir(parents=True, exist_ok=True)
                continue
            out.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(out, "wb") as dst:
                shutil.copyfileobj(src, dst)
            mode = _unix_mode(info)
            if mode is not None and os.name == "posix":
                os.chmod(out, mode & 0o7777)


def find_first_with_ext(dir: str | Path, ext: str) -> Path:
    """First direct child of ``dir`` whose extension matches ``ext``, ignoring case."""
    wanted = "." + ext.lower()
    for entry in os.scandir(dir):
        path = Path(entry.path)
        if path.suffix.lower() == wanted:
            return path
    raise FileNotFoundError(f"no .{ext} file found in {dir}")


def copy_dir_recursive(src: str | Path, dst: str | Path) -> None:
    """Copy ``src`` to ``dst`` with ``cp -R``."""
    result = subprocess.run(
        ["cp", "-R", os.fspath(src), os.fspath(dst)],
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise RuntimeError(f"cp failed: {stderr}")


@dataclass
class MountGuard:
    """A mounted DMG; detaches it when leaving the ``with`` block."""

    mount_point: Path

    def __enter__(self) -> MountGuard:
        return self

    def __exit__(self, *args: object) -> None:
        self.detach()

    def detach(self) -> None:
        """Detach the DMG, logging rather than raising on failure."""
        try:
            subprocess.run(
                ["hdiutil", "detach", "-quiet", os.fspath(self.mount_point)],
                capture_output=True,
            )
        except OSError as exc:
            log.warning("hdiutil detach failed for %s: %s", self.mount_point, exc)


def mount_dmg(dmg: str | Path) -> MountGuard:
    """Mount ``dmg`` read-only at a fresh temporary mount point."""
    mount_dir = Path(tempfile.mkdtemp())
    result = subprocess.run(
        [
            "hdiutil",
            "attach",
            "-nobrowse",
            "-readonly",
            "-noverify",
            "-mountpoint",
            os.fspath(mount_dir),
            os.fspath(dmg),
        ],
        input=b"Y\n",
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise RuntimeError(f"hdiutil attach failed: {stderr}")
    return MountGuard(mount_point=mount_dir)