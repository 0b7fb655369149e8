"""Expansion of user-configured paths.

A leading ``~`` (or ``~/...``) becomes ``$HOME``; ``$VAR`` and ``${VAR}``
anywhere in the string become the variable's value. Unknown variables are
left untouched so the resulting path shows up plainly in error messages.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

_VAR_PATTERN = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_path(p: str | os.PathLike[str]) -> Path:
    """Return ``p`` as a path with ``~`` and environment variables expanded."""
    return Path(expand(os.fspath(p)))


def expand(s: str) -> str:
    """Expand a leading tilde and then every ``$VAR`` / ``${VAR}`` in ``s``."""
    return _expand_env(_expand_tilde(s))


def _home() -> str | None:
    return os.environ.get("HOME") or None


def _expand_tilde(s: str) -> str:
    if s == "~":
        return _home() or "~"
    if s.startswith("~/"):
        home = _home()
        if home is not None:
            return f"{home}/{s[2:]}"
    return s


def _expand_env(s: str) -> str:
    def substitute(match: re.Match[str]) -> str:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        value = os.environ.get(name) if name else None
        return match.group(0) if value is None else value

    return _VAR_PATTERN.sub(substitute, s)