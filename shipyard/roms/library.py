"""The managed ROM library.

Imported ROMs are kept as plain files in one directory. No format detection,
hashing or validation is done: whatever the user picks is trusted.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from shipyard.platform import Platform

_PARTIAL_SUFFIX = ".partial"


@dataclass(frozen=True)
class RomEntry:
    """A ROM file in the library."""

    filename: str
    size: int


def library_root(platform: Platform) -> Path:
    """Directory holding the ROM library for ``platform``."""
    return platform.config_dir() / "roms"


def _is_utf8(name: str) -> bool:
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def list_roms(library_root: str | os.PathLike[str]) -> list[RomEntry]:
    """ROM files in ``library_root``, sorted by filename.

    A missing directory gives an empty list; it is created on first import.
    Files still being imported are left out.
    """
    try:
        entries = list(os.scandir(library_root))
    except FileNotFoundError:
        return []
    roms = [
        RomEntry(filename=entry.name, size=entry.stat(follow_symlinks=False).st_size)
        for entry in entries
        if entry.is_file(follow_symlinks=False)
        and _is_utf8(entry.name)
        and not entry.name.endswith(_PARTIAL_SUFFIX)
    ]
    roms.sort(key=lambda rom: rom.filename)
    return roms


def _split_stem_ext(name: str) -> tuple[str, str | None]:
    dot = name.rfind(".")
    if dot <= 0:
        return name, None
    return name[:dot], name[dot + 1 :]


def _pick_unique_name(root: Path, original: str) -> str:
    if not (root / original).exists():
        return original
    stem, ext = _split_stem_ext(original)
    n = 1
    while True:
        candidate = f"{stem}-{n}.{ext}" if ext is not None else f"{stem}-{n}"
        if not (root / candidate).exists():
            return candidate
        n += 1


def import_rom(
    library_root: str | os.PathLike[str], src: str | os.PathLike[str]
) -> RomEntry:
    """Copy ``src`` into the library and return its entry.

    When the filename is taken, ``-1``, ``-2``, ... is added before the
    extension until a free name is found. Raises ``ValueError`` when ``src``
    has no filename and ``OSError`` when the copy fails.
    """
    root = Path(library_root)
    root.mkdir(parents=True, exist_ok=True)
    original = Path(src).name
    if not original or not _is_utf8(original):
        raise ValueError("rom source has no filename")
    final_name = _pick_unique_name(root, original)
    final_path = root / final_name
    partial = root / f"{final_name}{_PARTIAL_SUFFIX}"

    # Leftover from an interrupted import.
    try:
        partial.unlink()
    except OSError:
        pass

    shutil.copy(src, partial)
    try:
        os.rename(partial, final_path)
    except OSError:
        try:
            partial.unlink()
        except OSError:
            pass
        raise
    return RomEntry(filename=final_name, size=final_path.stat().st_size)


def delete_rom(library_root: str | os.PathLike[str], filename: str) -> None:
    """Remove ``filename`` from the library."""
    (Path(library_root) / filename).unlink()