from pathlib import Path

from shipyard.platform import Platform
from shipyard.roms.cached_assets import (
    CachedAssetSpec,
    clear_cached_assets,
    plan_clear,
    scan_cached_assets,
)

SLOT_OOT = "oot"
SLOT_OOT_MQ = "oot-mq"


class _LinuxFake(Platform):
    def default_library_root(self) -> Path:
        return Path("/tmp")

    def config_dir(self) -> Path:
        return Path("/tmp")

    def cache_dir(self) -> Path:
        return Path("/tmp")

    def asset_keyword(self) -> str:
        return "Linux"


class _SohLike:
    """Keeps its cached archives in the install directory."""

    def data_dir(self, install_dir: Path, platform: Platform) -> Path:
        return install_dir

    def cached_assets(self):
        return (
            CachedAssetSpec(SLOT_OOT, ("oot.o2r", "oot.otr")),
            CachedAssetSpec(SLOT_OOT_MQ, ("oot-mq.o2r", "oot-mq.otr")),
        )


GAME = _SohLike()
PLATFORM = _LinuxFake()


def _find(presences, slot_id):
    return next(p for p in presences if p.slot_id == slot_id)


def test_scan_detects_primary_filename(tmp_path):
    (tmp_path / "oot.o2r").write_bytes(b"rom-archive")
    out = scan_cached_assets(GAME, tmp_path, PLATFORM)
    oot = _find(out, SLOT_OOT)
    mq = _find(out, SLOT_OOT_MQ)
    assert oot.status.is_present()
    assert not mq.status.is_present()
    assert oot.status.filename == "oot.o2r"
    assert oot.status.size == len(b"rom-archive")
    assert oot.status.path == tmp_path / "oot.o2r"


def test_scan_prefers_earlier_candidate(tmp_path):
    (tmp_path / "oot.o2r").write_bytes(b"new")
    (tmp_path / "oot.otr").write_bytes(b"legacy")
    assert _find(scan_cached_assets(GAME, tmp_path, PLATFORM), SLOT_OOT).status.filename == "oot.o2r"


def test_scan_falls_back_to_legacy_otr_when_o2r_absent(tmp_path):
    (tmp_path / "oot.otr").write_bytes(b"legacy")
    oot = _find(scan_cached_assets(GAME, tmp_path, PLATFORM), SLOT_OOT)
    assert oot.status.filename == "oot.otr"


def test_scan_ignores_directories_with_candidate_names(tmp_path):
    (tmp_path / "oot.o2r").mkdir()
    oot = _find(scan_cached_assets(GAME, tmp_path, PLATFORM), SLOT_OOT)
    assert oot.status.is_present() is False


def test_scan_returns_all_missing_when_dir_does_not_exist(tmp_path):
    out = scan_cached_assets(GAME, tmp_path / "never-created", PLATFORM)
    assert len(out) == 2
    assert all(not c.status.is_present() for c in out)


def test_plan_clear_lists_present_files_only(tmp_path):
    (tmp_path / "oot.o2r").write_bytes(b"aa")
    (tmp_path / "oot-mq.otr").write_bytes(b"bbb")
    plan = plan_clear(GAME, tmp_path, PLATFORM)
    assert len(plan) == 2
    assert {p.size for p in plan} == {2, 3}
    assert (tmp_path / "oot.o2r").exists()


def test_clear_removes_all_present_files_and_scan_returns_missing(tmp_path):
    (tmp_path / "oot.o2r").write_bytes(b"aa")
    (tmp_path / "oot-mq.otr").write_bytes(b"bbb")
    result = clear_cached_assets(GAME, tmp_path, PLATFORM)
    assert len(result.deleted) == 2
    assert result.failures == []
    after = scan_cached_assets(GAME, tmp_path, PLATFORM)
    assert all(not p.status.is_present() for p in after)


def test_clear_on_empty_dir_is_a_noop(tmp_path):
    result = clear_cached_assets(GAME, tmp_path, PLATFORM)
    assert result.deleted == []
    assert result.failures == []