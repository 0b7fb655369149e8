"""Launch-time placement of assigned ROMs inside an install directory.

Right before a game starts, each slot the game declares gets
``<install_dir>/<symlink_filename>``. That file is a symlink to the assigned
ROM in the library, or a copy for games that need one. An unassigned slot
gets no file there at all.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from shipyard.platform import Platform

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotSpec:
    """A ROM slot a game reads from its install directory."""

    id: str
    display_name: str
    symlink_filename: str


class _Game(Protocol):
    def slug(self) -> str: ...

    def slots(self) -> Sequence[SlotSpec]: ...


def _requires_rom_copy(game: object) -> bool:
    check = getattr(game, "requires_rom_copy", None)
    return bool(check()) if callable(check) else False


def reconcile(
    install_dir: str | os.PathLike[str],
    game: _Game,
    platform: Platform,
    assignments: Mapping[str, Mapping[str, str]],
    library_root: str | os.PathLike[str],
) -> None:
    """Make every slot file in ``install_dir`` match its assignment.

    ``assignments`` maps a game slug to a mapping of slot id to the ROM's
    filename in ``library_root``. This runs on every launch, even when a
    cached archive is already present, because some games may ask to
    regenerate it and then need to find the ROM.
    """
    install_dir = Path(install_dir)
    library_root = Path(library_root)
    needs_copy = _requires_rom_copy(game)
    game_assignments = assignments.get(game.slug(), {})
    for slot in game.slots():
        dest = install_dir / slot.symlink_filename
        filename = game_assignments.get(slot.id)
        if filename is None:
            try:
                dest.unlink()
            except FileNotFoundError:
                pass
            continue
        target = library_root / filename
        if needs_copy:
            _place_copy(dest, target)
        else:
            _place_symlink(dest, target)


def _temp_sibling(dest: Path) -> Path:
    if not dest.name:
        raise OSError(f"destination has no filename: {dest}")
    return dest.with_name(dest.name + ".tmp")


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


def _place_copy(dest: Path, target: Path) -> None:
    """Put a regular-file copy of ``target`` at ``dest`` (copy, then rename).

    An existing regular file of the same size is taken to be up to date.
    """
    target_size = target.stat().st_size
    try:
        existing = os.lstat(dest)
    except OSError:
        existing = None
    if existing is not None and _is_regular(existing.st_mode) and existing.st_size == target_size:
        return

    tmp = _temp_sibling(dest)
    _discard(tmp)
    shutil.copy(target, tmp)
    try:
        os.replace(tmp, dest)
    except OSError:
        _discard(tmp)
        raise


def _is_regular(mode: int) -> bool:
    import stat

    return stat.S_ISREG(mode)


def _place_symlink(dest: Path, target: Path) -> None:
    """Point a symlink at ``dest`` to ``target`` (symlink, then rename)."""
    if os.name != "posix":
        log.warning("symlink reconciliation is not supported on this platform")
        return
    try:
        if Path(os.readlink(dest)) == target:
            return
    except OSError:
        pass

    tmp = _temp_sibling(dest)
    _discard(tmp)
    os.symlink(target, tmp)
    try:
        os.replace(tmp, dest)
    except OSError:
        _discard(tmp)
        raise