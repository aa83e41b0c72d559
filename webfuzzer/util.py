"""Shared helpers, constants and small value types."""

from __future__ import annotations

import os
import random
import re
import stat
import string
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

if TYPE_CHECKING:
    from webfuzzer.request import Request

VERSION = "2.1.0"
VERSION_APPENDIX = "-dev"


def _config_home() -> str:
    home = os.path.expanduser("~")
    if sys.platform == "darwin":
        return os.path.join(home, "Library", "Application Support")
    if os.name == "nt":
        return os.environ.get("LOCALAPPDATA") or os.path.join(home, "AppData", "Local")
    return os.environ.get("XDG_CONFIG_HOME") or os.path.join(home, ".config")


CONFIG_DIR = os.path.join(_config_home(), "webfuzzer")
HISTORY_DIR = os.path.join(CONFIG_DIR, "history")
SCRAPER_DIR = os.path.join(CONFIG_DIR, "scraper")
AUTOCALIB_DIR = os.path.join(CONFIG_DIR, "autocalibration")

_CHARS = string.ascii_lowercase + string.ascii_uppercase
_RANGE_RE = re.compile(r"([0-9]+)-([0-9]+)")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class MultiError(Exception):
    """An error that collects several errors and reports them together."""

    def __init__(self, errors=None):
        super().__init__()
        self.errors: list = list(errors or [])

    def add(self, err) -> None:
        """Record another error."""
        self.errors.append(err)

    def error_or_none(self) -> MultiError | None:
        """Return an error holding the collected errors, or None if there are none."""
        if not self.errors:
            return None
        return MultiError(self.errors)

    def __str__(self) -> str:
        parts = [f"{len(self.errors)} errors occured.\n"]
        parts.extend(f"\t* {err}\n" for err in self.errors)
        return "".join(parts)


def _parse_int64(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"Invalid value: {text}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"Invalid value: {text}")
    return value


@dataclass(frozen=True)
class ValueRange:
    """An inclusive integer range; a single value has min == max."""

    min: int
    max: int

    @classmethod
    def from_string(cls, text: str) -> ValueRange:
        """Parse either "N" or "MIN-MAX"."""
        match = _RANGE_RE.fullmatch(text)
        if match:
            low = _parse_int64(match[1])
            high = _parse_int64(match[2])
            if low >= high:
                raise ValueError("Minimum has to be smaller than maximum")
            return cls(low, high)
        value = _parse_int64(text)
        return cls(value, value)


def random_string(n: int) -> str:
    """Return a random string of n ASCII letters."""
    return "".join(random.choice(_CHARS) for _ in range(n))


def uniq_strings(items) -> list[str]:
    """Return the distinct strings of items, duplicates dropped."""
    return list(dict.fromkeys(items))


def file_exists(path) -> bool:
    """True if path exists and is not a directory."""
    try:
        mode = os.stat(path).st_mode
    except (OSError, ValueError):
        return False
    return not stat.S_ISDIR(mode)


def request_contains_keyword(req: Request, keyword: str) -> bool:
    """True if keyword appears in any field of the request."""
    if keyword in req.host or keyword in req.url or keyword in req.method:
        return True
    if keyword.encode() in req.data:
        return True
    return any(keyword in key or keyword in value for key, value in req.headers.items())


def host_url_from_request(req: Request) -> str:
    """Return host plus URL path without its last component."""
    path = unquote(urlsplit(req.url).path)
    trimmed = "/".join(path.split("/")[:-1]).strip()
    return req.host + trimmed


def version() -> str:
    """Return the version string."""
    return f"{VERSION}{VERSION_APPENDIX}"


def create_config_dir(path) -> None:
    """Create the directory (and parents) unless something exists at path."""
    if os.path.lexists(path):
        return
    os.makedirs(path, mode=0o750, exist_ok=True)


def merge_maps(first: dict[str, list[str]], second: dict[str, list[str]]) -> dict[str, list[str]]:
    """Merge two mappings of string lists, appending new entries without duplicates."""
    merged = {key: list(values) for key, values in first.items()}
    for key, values in second.items():
        if key not in merged:
            merged[key] = list(values)
            continue
        for entry in values:
            if entry not in merged[key]:
                merged[key].append(entry)
    return merged