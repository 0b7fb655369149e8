import os
import stat
import zipfile

import pytest

from shipyard import platform as plat
from shipyard.platform import (
    Linux,
    MacOs,
    Platform,
    current,
    install_app_in_dmg_release,
    install_appimage_release,
    install_flat_binary_release,
)


def make_zip(path, entries):
    with zipfile.ZipFile(path, "w") as zf:
        for name, body in entries:
            info = zipfile.ZipInfo(name)
            info.create_system = 3
            info.external_attr = (stat.S_IFREG | 0o644) << 16
            zf.writestr(info, body)


def test_asset_keywords():
    assert Linux().asset_keyword() == "Linux"
    assert MacOs().asset_keyword() == "Mac"


def test_platform_is_abstract():
    with pytest.raises(TypeError):
        Platform()


def test_library_root_is_versions_under_data_dir():
    root = Linux().default_library_root()
    assert root.name == "versions"
    assert root.is_absolute()


def test_linux_and_macos_share_running_os_dirs():
    assert Linux().cache_dir() == MacOs().cache_dir()
    assert Linux().config_dir() == MacOs().config_dir()
    assert Linux().default_library_root() == MacOs().default_library_root()


def test_current_on_linux(monkeypatch):
    monkeypatch.setattr(plat.sys, "platform", "linux")
    chosen = current()
    assert isinstance(chosen, Linux)
    assert chosen.asset_keyword() == "Linux"


def test_current_on_macos(monkeypatch):
    monkeypatch.setattr(plat.sys, "platform", "darwin")
    chosen = current()
    assert isinstance(chosen, MacOs)
    assert chosen.asset_keyword() == "Mac"


def test_current_unsupported_raises(monkeypatch):
    monkeypatch.setattr(plat.sys, "platform", "win32")
    with pytest.raises(RuntimeError, match="unsupported"):
        current()


def test_dmg_install_off_macos_raises(monkeypatch, tmp_path):
    monkeypatch.setattr(plat.sys, "platform", "linux")
    with pytest.raises(RuntimeError, match="only supported when running on macOS"):
        install_app_in_dmg_release(tmp_path / "a.zip", tmp_path / "dest")


def test_install_appimage_release_extracts_everything(tmp_path):
    archive = tmp_path / "a.zip"
    make_zip(
        archive,
        [
            ("game.appimage", b"ELF"),
            ("gamecontrollerdb.txt", b"db"),
            ("assets/x.bin", b"\x00"),
        ],
    )
    dest = tmp_path / "install"
    install_appimage_release(archive, dest, "game.appimage")
    assert (dest / "gamecontrollerdb.txt").read_bytes() == b"db"
    assert (dest / "assets" / "x.bin").read_bytes() == b"\x00"
    assert stat.S_IMODE(os.stat(dest / "game.appimage").st_mode) == 0o755


def test_install_flat_binary_release_chmods_binary(tmp_path):
    archive = tmp_path / "a.zip"
    make_zip(archive, [("Spaghettify", b"bin"), ("data.o2r", b"d")])
    dest = tmp_path / "install"
    install_flat_binary_release(archive, dest, "Spaghettify")
    assert stat.S_IMODE(os.stat(dest / "Spaghettify").st_mode) == 0o755
    assert (dest / "data.o2r").read_bytes() == b"d"