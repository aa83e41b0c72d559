"""A history of started jobs, so a FFUFHASH value can be traced back to its request."""

from __future__ import annotations

import hashlib
import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime

from webfuzzer.options import ConfigOptions
from webfuzzer.util import HISTORY_DIR, create_config_dir

_HEX_RE = re.compile(r"[+-]?[0-9a-fA-F]+")
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


@dataclass
class ConfigOptionsHistory:
    """The options of a job together with the time it started."""

    options: ConfigOptions = field(default_factory=ConfigOptions)
    time: datetime = field(default_factory=lambda: datetime.now().astimezone())

    def to_dict(self) -> dict:
        """Return the JSON form: the options with a "time" key added."""
        data = self.options.to_dict()
        data["time"] = self.time.isoformat()
        return data

    @classmethod
    def from_dict(cls, data) -> ConfigOptionsHistory:
        """Build a history entry from its JSON form."""
        if not isinstance(data, dict):
            raise ValueError("history entry must be an object")
        data = dict(data)
        stamp = data.pop("time", None)
        if not isinstance(stamp, str):
            raise ValueError("history entry has no valid time")
        return cls(options=ConfigOptions.from_dict(data), time=datetime.fromisoformat(stamp))


def calculate_history_hash(options: bytes) -> str:
    """Return the hex SHA-256 digest of the serialised options."""
    return hashlib.sha256(options).hexdigest()


def write_history_entry(conf, history_dir=None) -> str:
    """Store the options of conf in the history and return their hash."""
    directory = HISTORY_DIR if history_dir is None else history_dir
    entry = ConfigOptionsHistory(options=conf.to_options())
    payload = json.dumps(entry.to_dict(), separators=(",", ":")).encode()
    hashstr = calculate_history_hash(payload)
    entry_dir = os.path.join(directory, hashstr)
    create_config_dir(entry_dir)
    fd = os.open(os.path.join(entry_dir, "options"), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o640)
    with os.fdopen(fd, "wb") as fh:
        fh.write(payload)
    return hashstr


def _config_from_history(dirname: str) -> ConfigOptionsHistory:
    with open(os.path.join(dirname, "options"), "rb") as fh:
        data = json.load(fh)
    return ConfigOptionsHistory.from_dict(data)


def search_hash(hash_value: str, history_dir=None) -> tuple[list[ConfigOptionsHistory], int]:
    """Return the history entries matching a FFUFHASH value, and the input position it encodes."""
    directory = HISTORY_DIR if history_dir is None else history_dir
    if len(hash_value) < 6:
        raise ValueError("bad FFUFHASH value")
    prefix = hash_value[:5].lower()
    positional = hash_value[5:]
    if not _HEX_RE.fullmatch(positional):
        raise ValueError("bad positional value in FFUFHASH")
    position = int(positional, 16)
    if not _INT32_MIN <= position <= _INT32_MAX:
        raise ValueError("bad positional value in FFUFHASH")
    with os.scandir(directory) as entries:
        matched = sorted(
            entry.name for entry in entries if entry.is_dir() and entry.name.lower().startswith(prefix)
        )
    found = []
    for dirname in matched:
        try:
            found.append(_config_from_history(os.path.join(directory, dirname)))
        except (OSError, ValueError):
            continue
    return found, position


def history_replayable(conf) -> tuple[bool, str]:
    """Return whether the job can be replayed, and the reason if it cannot."""
    for wordlist in conf.wordlists:
        if wordlist == "-" or wordlist.startswith("-:"):
            return False, "stdin input was used for one of the wordlists"
    return True, ""