from __future__ import annotations

import os
import sys
import time
from pathlib import Path

import pytest

from shipyard.launcher import launch
from shipyard.library.installs import InstalledVersion
from shipyard.platform import Platform
from shipyard.roms.wiring import SlotSpec


class FakePlatform(Platform):
    def default_library_root(self) -> Path:
        return Path("/tmp")

    def config_dir(self) -> Path:
        return Path("/tmp")

    def cache_dir(self) -> Path:
        return Path("/tmp")

    def asset_keyword(self) -> str:
        return "Mac"


class ScriptGame:
    def __init__(self, argv, slots=()):
        self.argv = list(argv)
        self._slots = tuple(slots)

    def slug(self) -> str:
        return "fake"

    def slots(self):
        return self._slots

    def launch_command(self, install_dir, platform):
        return self.argv


def wait_for_exit(handle, attempts=250):
    for _ in range(attempts):
        if not handle.is_running():
            return True
        time.sleep(0.02)
    return False


def make_installed(tmp_path: Path) -> InstalledVersion:
    return InstalledVersion(tag="t1", game_slug="fake", path=tmp_path)


def test_launch_spawns_and_is_running_clears_after_exit(tmp_path):
    game = ScriptGame([sys.executable, "-c", "pass"])
    handle = launch(
        make_installed(tmp_path), game, FakePlatform(), {}, tmp_path / "rom-library"
    )
    assert handle.pid > 0
    assert handle.tag == "t1"
    assert wait_for_exit(handle)
    assert handle.is_running() is False


def test_launch_runs_in_install_directory(tmp_path):
    script = "import pathlib; pathlib.Path('cwd.txt').write_text('here')"
    game = ScriptGame([sys.executable, "-c", script])
    handle = launch(make_installed(tmp_path), game, FakePlatform(), {}, tmp_path / "lib")
    assert wait_for_exit(handle)
    assert (tmp_path / "cwd.txt").read_text() == "here"


def test_long_running_process_reports_running(tmp_path):
    game = ScriptGame([sys.executable, "-c", "import time; time.sleep(5)"])
    handle = launch(make_installed(tmp_path), game, FakePlatform(), {}, tmp_path / "lib")
    try:
        assert handle.is_running() is True
    finally:
        handle._process.kill()
        handle._process.wait()


def test_launch_reconciles_assigned_roms(tmp_path):
    install_dir = tmp_path / "install"
    install_dir.mkdir()
    lib = tmp_path / "lib"
    lib.mkdir()
    (lib / "game.z64").write_bytes(b"rom-bytes")
    game = ScriptGame(
        [sys.executable, "-c", "pass"],
        slots=[SlotSpec("primary", "Primary", "rom.z64")],
    )
    installed = InstalledVersion(tag="t2", game_slug="fake", path=install_dir)

    handle = launch(
        installed, game, FakePlatform(), {"fake": {"primary": "game.z64"}}, lib
    )

    assert wait_for_exit(handle)
    assert Path(os.readlink(install_dir / "rom.z64")) == lib / "game.z64"


def test_launch_missing_binary_raises(tmp_path):
    game = ScriptGame([str(tmp_path / "does-not-exist")])
    with pytest.raises(FileNotFoundError):
        launch(make_installed(tmp_path), game, FakePlatform(), {}, tmp_path / "lib")