"""Starting an installed game and tracking whether it is still running."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from shipyard.library.installs import InstalledVersion
from shipyard.platform import Platform
from shipyard.roms.wiring import SlotSpec, reconcile

log = logging.getLogger(__name__)


class _Game(Protocol):
    def slug(self) -> str: ...

    def slots(self) -> Sequence[SlotSpec]: ...

    def launch_command(self, install_dir: Path, platform: Platform) -> Sequence[str]: ...


@dataclass
class LaunchHandle:
    """A started game process, known by the tag of the version it runs."""

    tag: str
    pid: int
    _process: subprocess.Popen[bytes] | None = field(default=None, repr=False)

    def is_running(self) -> bool:
        """Whether the process is still alive; reaps it once it has exited."""
        if self._process is None:
            return False
        try:
            status = self._process.poll()
        except OSError as exc:
            log.debug("poll failed for %s (pid %s): %s; assuming dead", self.tag, self.pid, exc)
            self._process = None
            return False
        if status is None:
            return True
        log.debug("launched process %s (pid %s) exited with %s", self.tag, self.pid, status)
        self._process = None
        return False


def launch(
    installed: InstalledVersion,
    game: _Game,
    platform: Platform,
    assignments: Mapping[str, Mapping[str, str]],
    rom_library_root: str | os.PathLike[str],
) -> LaunchHandle:
    """Place the assigned ROMs, then start the game in its install directory.

    The game is started with no extra arguments and, on POSIX systems, in a
    new session so that it outlives the launcher.
    """
    reconcile(installed.path, game, platform, assignments, rom_library_root)

    command = list(game.launch_command(installed.path, platform))
    process = subprocess.Popen(
        command,
        cwd=installed.path,
        start_new_session=os.name == "posix",
    )
    log.debug("spawned game process %s (pid %s)", installed.tag, process.pid)
    return LaunchHandle(tag=installed.tag, pid=process.pid, _process=process)