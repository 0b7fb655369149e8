import json
from datetime import datetime, timezone

import pytest

from shipyard.library.manifest import MANIFEST_FILE, InstallManifest


def test_path_in_uses_manifest_filename(tmp_path):
    assert InstallManifest.path_in(tmp_path) == tmp_path / ".shipyard-install.json"
    assert MANIFEST_FILE == ".shipyard-install.json"


def test_write_then_read_round_trip(tmp_path):
    m = InstallManifest(
        tag="9.2.3",
        game_slug="soh",
        installed_at=datetime.now(timezone.utc),
        archive_sha256=None,
    )
    m.write(tmp_path)
    assert InstallManifest.read(tmp_path) == m


def test_round_trip_keeps_sha(tmp_path):
    m = InstallManifest(
        tag="t",
        game_slug="g",
        installed_at=datetime(2026, 4, 14, 13, 7, 27, tzinfo=timezone.utc),
        archive_sha256="abc123",
    )
    m.write(tmp_path)
    got = InstallManifest.read(tmp_path)
    assert got.archive_sha256 == "abc123"
    assert got.installed_at == m.installed_at


def test_written_json_has_expected_fields(tmp_path):
    m = InstallManifest(
        tag="9.2.3",
        game_slug="soh",
        installed_at=datetime(2026, 4, 14, 13, 7, 27, tzinfo=timezone.utc),
    )
    m.write(tmp_path)
    data = json.loads((tmp_path / MANIFEST_FILE).read_text())
    assert data == {
        "tag": "9.2.3",
        "game_slug": "soh",
        "installed_at": "2026-04-14T13:07:27Z",
        "archive_sha256": None,
    }


def test_read_accepts_z_suffix_and_missing_sha(tmp_path):
    (tmp_path / MANIFEST_FILE).write_text(
        json.dumps(
            {
                "tag": "9.2.3",
                "game_slug": "soh",
                "installed_at": "2026-04-14T13:07:27Z",
            }
        )
    )
    got = InstallManifest.read(tmp_path)
    assert got.tag == "9.2.3"
    assert got.archive_sha256 is None
    assert got.installed_at == datetime(2026, 4, 14, 13, 7, 27, tzinfo=timezone.utc)


def test_read_accepts_nanosecond_fraction(tmp_path):
    (tmp_path / MANIFEST_FILE).write_text(
        json.dumps(
            {
                "tag": "t",
                "game_slug": "g",
                "installed_at": "2026-04-14T13:07:27.123456789Z",
                "archive_sha256": None,
            }
        )
    )
    got = InstallManifest.read(tmp_path)
    assert got.installed_at.replace(microsecond=0) == datetime(
        2026, 4, 14, 13, 7, 27, tzinfo=timezone.utc
    )


def test_read_missing_returns_none(tmp_path):
    assert InstallManifest.read(tmp_path) is None


def test_read_invalid_json_raises(tmp_path):
    (tmp_path / MANIFEST_FILE).write_text("{not json")
    with pytest.raises(ValueError, match="parse manifest"):
        InstallManifest.read(tmp_path)


def test_read_missing_field_raises(tmp_path):
    (tmp_path / MANIFEST_FILE).write_text(json.dumps({"tag": "t"}))
    with pytest.raises(ValueError, match="parse manifest"):
        InstallManifest.read(tmp_path)