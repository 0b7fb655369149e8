"""Client for the GitHub releases API with an on-disk ETag cache."""

from __future__ import annotations

import json
import os
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping

import requests

API_BASE = "https://api.github.com"
USER_AGENT = "shipyard/0.1.0"

_U32_MAX = 2**32 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")
_SIGNED = re.compile(r"[+-]?[0-9]+")
_CHUNK_SIZE = 64 * 1024


class GithubError(Exception):
    """Any failure talking to GitHub or decoding what it returned."""


class RateLimitedError(GithubError):
    """GitHub refused the request because of a rate limit."""

    def __init__(self, reset_at: datetime | None) -> None:
        self.reset_at = reset_at
        super().__init__(f"rate limited; resets at {reset_at}")


class UnexpectedStatusError(GithubError):
    """GitHub answered with a status the client does not handle."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"unexpected status {status}: {body}")


@dataclass(frozen=True)
class ReleaseAsset:
    """One downloadable file attached to a release."""

    name: str
    browser_download_url: str
    size: int

    @classmethod
    def from_json(cls, data: Any) -> ReleaseAsset:
        """Build an asset from its API object; raises ``ValueError`` on bad shape."""
        if not isinstance(data, dict):
            raise ValueError("release asset must be a JSON object")
        try:
            name = data["name"]
            url = data["browser_download_url"]
            size = data["size"]
        except KeyError as exc:
            raise ValueError(f"release asset missing field {exc}") from exc
        if not isinstance(name, str) or not isinstance(url, str):
            raise ValueError("release asset name and url must be strings")
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError("release asset size must be a non-negative integer")
        return cls(name=name, browser_download_url=url, size=size)

    def to_json(self) -> dict[str, Any]:
        """The asset as a JSON-ready dictionary."""
        return {
            "name": self.name,
            "browser_download_url": self.browser_download_url,
            "size": self.size,
        }


@dataclass(frozen=True)
class Release:
    """A published release and its assets."""

    tag_name: str
    name: str | None = None
    published_at: str | None = None
    assets: tuple[ReleaseAsset, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, data: Any) -> Release:
        """Build a release from its API object; raises ``ValueError`` on bad shape."""
        if not isinstance(data, dict):
            raise ValueError("release must be a JSON object")
        tag = data.get("tag_name")
        if not isinstance(tag, str):
            raise ValueError("release tag_name must be a string")
        name = data.get("name")
        published = data.get("published_at")
        for label, value in (("name", name), ("published_at", published)):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"release {label} must be a string or null")
        assets = data.get("assets")
        if not isinstance(assets, list):
            raise ValueError("release assets must be a list")
        return cls(
            tag_name=tag,
            name=name,
            published_at=published,
            assets=tuple(ReleaseAsset.from_json(a) for a in assets),
        )

    def to_json(self) -> dict[str, Any]:
        """The release as a JSON-ready dictionary."""
        return {
            "tag_name": self.tag_name,
            "name": self.name,
            "published_at": self.published_at,
            "assets": [a.to_json() for a in self.assets],
        }


@dataclass(frozen=True)
class RateLimitStatus:
    """Rate-limit figures reported in GitHub's response headers."""

    remaining: int | None = None
    limit: int | None = None
    reset_at: datetime | None = None


@dataclass(frozen=True)
class DownloadProgress:
    """Bytes received so far and the expected total, when known."""

    downloaded: int
    total: int | None


@dataclass(frozen=True)
class _CacheEntry:
    etag: str
    releases: list[Release]


def _parse_u32(value: str | None) -> int | None:
    if value is None or not _UNSIGNED.fullmatch(value):
        return None
    number = int(value)
    return number if number <= _U32_MAX else None


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None or not _SIGNED.fullmatch(value):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_rate_limit(headers: Mapping[str, str]) -> RateLimitStatus:
    """Read the ``x-ratelimit-*`` headers; unparseable values become ``None``."""
    lowered = {str(k).lower(): v for k, v in headers.items()}
    return RateLimitStatus(
        remaining=_parse_u32(lowered.get("x-ratelimit-remaining")),
        limit=_parse_u32(lowered.get("x-ratelimit-limit")),
        reset_at=_parse_timestamp(lowered.get("x-ratelimit-reset")),
    )


def _load_cache(path: Path) -> dict[str, _CacheEntry]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    entries: dict[str, _CacheEntry] = {}
    try:
        for slug, raw in data.items():
            etag = raw["etag"]
            releases = raw["releases"]
            if not isinstance(etag, str) or not isinstance(releases, list):
                return {}
            entries[slug] = _CacheEntry(
                etag=etag, releases=[Release.from_json(r) for r in releases]
            )
    except (KeyError, TypeError, ValueError):
        return {}
    return entries


def _save_cache(path: Path, entries: Mapping[str, _CacheEntry]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        slug: {"etag": e.etag, "releases": [r.to_json() for r in e.releases]}
        for slug, e in entries.items()
    }
    tmp = path.with_name(path.stem + ".json.tmp")
    tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    os.replace(tmp, path)


class Client:
    """Lists releases and downloads assets, remembering ETags across runs."""

    def __init__(self, cache_path: str | Path, api_base: str = API_BASE) -> None:
        self.api_base = api_base
        self.cache_path = Path(cache_path)
        self._cache = _load_cache(self.cache_path)
        self._lock = threading.Lock()
        self._token = os.environ.get("GITHUB_TOKEN") or None
        self._session = requests.Session()
        self._session.headers["User-Agent"] = USER_AGENT

    def _auth_headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.github+json",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def list_releases(self, repo_slug: str) -> tuple[list[Release], RateLimitStatus]:
        """Fetch the releases of ``repo_slug`` (``owner/name``).

        A ``304 Not Modified`` answer returns the cached releases. Raises
        ``RateLimitedError`` on 403/429 and ``UnexpectedStatusError`` on any
        other unsuccessful status.
        """
        url = f"{self.api_base}/repos/{repo_slug}/releases"
        headers = self._auth_headers()
        with self._lock:
            cached = self._cache.get(repo_slug)
        if cached is not None:
            headers["If-None-Match"] = cached.etag

        try:
            resp = self._session.get(url, headers=headers)
        except requests.RequestException as exc:
            raise GithubError(f"http error: {exc}") from exc

        rate_limit = parse_rate_limit(resp.headers)
        status = resp.status_code

        if status == 304:
            with self._lock:
                entry = self._cache.get(repo_slug)
                releases = list(entry.releases) if entry is not None else []
            return releases, rate_limit

        if status in (403, 429):
            # Secondary rate limits also answer 403 without remaining=0.
            raise RateLimitedError(rate_limit.reset_at)

        if not 200 <= status < 300:
            raise UnexpectedStatusError(status, resp.text)

        etag = resp.headers.get("ETag")
        try:
            data = resp.json()
            if not isinstance(data, list):
                raise ValueError("releases response must be a JSON array")
            releases = [Release.from_json(r) for r in data]
        except ValueError as exc:
            raise GithubError(f"decode error: {exc}") from exc

        if etag is not None:
            with self._lock:
                self._cache[repo_slug] = _CacheEntry(etag=etag, releases=list(releases))
                _save_cache(self.cache_path, self._cache)

        return releases, rate_limit

    def download_asset(
        self,
        asset_url: str,
        dest: str | Path,
        progress: Callable[[DownloadProgress], None] | None = None,
    ) -> None:
        """Stream ``asset_url`` into ``dest``, via a sibling partial file.

        ``progress`` is called after every chunk written.
        """
        dest = Path(dest)
        try:
            with self._session.get(
                asset_url, headers=self._auth_headers(), stream=True
            ) as resp:
                if not 200 <= resp.status_code < 300:
                    raise UnexpectedStatusError(resp.status_code, resp.text)
                total = _parse_content_length(resp.headers.get("Content-Length"))
                dest.parent.mkdir(parents=True, exist_ok=True)
                tmp = dest.with_name(dest.stem + ".shipyard-partial")
                downloaded = 0
                with open(tmp, "wb") as out:
                    for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                        if not chunk:
                            continue
                        out.write(chunk)
                        downloaded += len(chunk)
                        if progress is not None:
                            progress(DownloadProgress(downloaded=downloaded, total=total))
                    out.flush()
                    os.fsync(out.fileno())
        except requests.RequestException as exc:
            raise GithubError(f"http error: {exc}") from exc
        os.replace(tmp, dest)


def _parse_content_length(value: str | None) -> int | None:
    if value is None or not value.isdigit():
        return None
    return int(value)