"""The install manifest written into every installed version's directory."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

MANIFEST_FILE = ".shipyard-install.json"

_FRACTION = re.compile(r"\.(\d+)")


def _parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no offset: {value!r}")
    return parsed.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class InstallManifest:
    """Marks a directory as a completed install of one release."""

    tag: str
    game_slug: str
    installed_at: datetime
    archive_sha256: str | None = None

    @staticmethod
    def path_in(dir: str | Path) -> Path:
        """Location of the manifest file inside ``dir``."""
        return Path(dir) / MANIFEST_FILE

    @staticmethod
    def read(dir: str | Path) -> InstallManifest | None:
        """Read the manifest in ``dir``; ``None`` when there is none.

        Raises ``ValueError`` when the file exists but cannot be parsed.
        """
        path = InstallManifest.path_in(dir)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return InstallManifest._from_json(json.loads(text))
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError(f"parse manifest {path}: {exc}") from exc

    def write(self, dir: str | Path) -> None:
        """Write this manifest into ``dir``."""
        path = InstallManifest.path_in(dir)
        path.write_text(json.dumps(self._to_json(), indent=2), encoding="utf-8")

    def _to_json(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "game_slug": self.game_slug,
            "installed_at": _format_timestamp(self.installed_at),
            "archive_sha256": self.archive_sha256,
        }

    @staticmethod
    def _from_json(data: Any) -> InstallManifest:
        if not isinstance(data, dict):
            raise TypeError("manifest must be a JSON object")
        tag = data["tag"]
        game_slug = data["game_slug"]
        installed_at = data["installed_at"]
        sha = data.get("archive_sha256")
        if not isinstance(tag, str) or not isinstance(game_slug, str):
            raise TypeError("tag and game_slug must be strings")
        if not isinstance(installed_at, str):
            raise TypeError("installed_at must be a string")
        if sha is not None and not isinstance(sha, str):
            raise TypeError("archive_sha256 must be a string or null")
        return InstallManifest(
            tag=tag,
            game_slug=game_slug,
            installed_at=_parse_timestamp(installed_at),
            archive_sha256=sha,
        )