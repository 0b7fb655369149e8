"""Detection and removal of a game's cached ROM archives (``.o2r`` / ``.otr``).

The filesystem is always read fresh; a few ``stat`` calls cost far less than
the risk of acting on stale state.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from shipyard.platform import Platform


@dataclass(frozen=True)
class CachedAssetSpec:
    """A cached archive a game generates for a slot, under candidate filenames in order."""

    slot_id: str
    filenames: tuple[str, ...]


class _Game(Protocol):
    def data_dir(self, install_dir: Path, platform: Platform) -> Path: ...

    def cached_assets(self) -> Sequence[CachedAssetSpec]: ...


@dataclass(frozen=True)
class CachedAssetStatus:
    """Either the first candidate file found, with its path and size, or missing."""

    filename: str | None = None
    path: Path | None = None
    size: int | None = None

    def is_present(self) -> bool:
        """Whether a cached file was found."""
        return self.filename is not None


@dataclass(frozen=True)
class CachedAssetPresence:
    """The status of one slot's cached archive."""

    slot_id: str
    status: CachedAssetStatus


@dataclass(frozen=True)
class PlannedClear:
    """A file a clear would delete, with its size."""

    slot_id: str
    filename: str
    path: Path
    size: int


@dataclass
class ClearResult:
    """Files removed (with their sizes) and per-file failures of a clear."""

    deleted: list[tuple[Path, int]] = field(default_factory=list)
    failures: list[tuple[Path, OSError]] = field(default_factory=list)


def _first_present(data_dir: Path, spec: CachedAssetSpec) -> CachedAssetStatus:
    for filename in spec.filenames:
        path = data_dir / filename
        if path.is_file():
            try:
                size = path.stat().st_size
            except OSError:
                continue
            return CachedAssetStatus(filename=filename, path=path, size=size)
    return CachedAssetStatus()


def scan_cached_assets(
    game: _Game, install_dir: str | os.PathLike[str], platform: Platform
) -> list[CachedAssetPresence]:
    """Status of every cached archive the game declares, in declaration order."""
    data_dir = Path(game.data_dir(Path(install_dir), platform))
    return [
        CachedAssetPresence(slot_id=spec.slot_id, status=_first_present(data_dir, spec))
        for spec in game.cached_assets()
    ]


def plan_clear(
    game: _Game, install_dir: str | os.PathLike[str], platform: Platform
) -> list[PlannedClear]:
    """The files ``clear_cached_assets`` would remove; touches nothing."""
    return [
        PlannedClear(
            slot_id=presence.slot_id,
            filename=presence.status.filename,
            path=presence.status.path,
            size=presence.status.size,
        )
        for presence in scan_cached_assets(game, install_dir, platform)
        if presence.status.is_present()
    ]


def clear_cached_assets(
    game: _Game, install_dir: str | os.PathLike[str], platform: Platform
) -> ClearResult:
    """Delete every present cached archive, collecting failures instead of raising."""
    result = ClearResult()
    for planned in plan_clear(game, install_dir, platform):
        try:
            planned.path.unlink()
        except OSError as exc:
            result.failures.append((planned.path, exc))
        else:
            result.deleted.append((planned.path, planned.size))
    return result