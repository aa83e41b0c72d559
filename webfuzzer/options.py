"""User-facing option groups, their defaults and their file formats."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields


def _opt(default, json_key: str | None, *, toml: bool = True):
    meta = {"json": json_key, "toml": toml}
    if isinstance(default, list):
        items = list(default)
        return field(default_factory=lambda: list(items), metadata=meta)
    return field(default=default, metadata=meta)


def _json_key(f) -> str | None:
    return f.metadata["json"]


def _toml_key(f) -> str | None:
    return f.name.replace("_", "") if f.metadata["toml"] else None


def _coerce(value, current, where: str):
    if isinstance(current, bool):
        ok = isinstance(value, bool)
    elif isinstance(current, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(current, str):
        ok = isinstance(value, str)
    elif isinstance(current, list):
        ok = isinstance(value, list) and all(isinstance(item, str) for item in value)
    else:
        ok = False
    if not ok:
        raise ValueError(f"invalid value for {where}: {value!r}")
    return list(value) if isinstance(value, list) else value


def _lookup(fieldlist, key_of):
    exact = {}
    folded = {}
    for f in fieldlist:
        key = key_of(f)
        if key:
            exact[key] = f
            folded.setdefault(key.lower(), f)
    return exact, folded


def _zero(cls):
    inst = cls()
    for f in fields(inst):
        setattr(inst, f.name, type(getattr(inst, f.name))())
    return inst


class _OptionGroup:
    def _to_dict(self) -> dict:
        result = {}
        for f in fields(self):
            key = _json_key(f)
            if key:
                value = getattr(self, f.name)
                result[key] = list(value) if isinstance(value, list) else value
        return result

    def _apply(self, data, key_of, where: str) -> None:
        if not isinstance(data, dict):
            raise ValueError(f"{where} must be a table of options")
        exact, folded = _lookup(fields(self), key_of)
        for key, value in data.items():
            f = exact.get(key) or folded.get(str(key).lower())
            if f is None or value is None:
                continue
            setattr(self, f.name, _coerce(value, getattr(self, f.name), f"{where}.{key}"))


@dataclass
class HTTPOptions(_OptionGroup):
    """Options controlling the HTTP request."""

    cookies: list[str] = _opt([], None)
    data: str = _opt("", "data")
    follow_redirects: bool = _opt(False, "follow_redirects")
    headers: list[str] = _opt([], "headers")
    ignore_body: bool = _opt(False, "ignore_body")
    method: str = _opt("", "method")
    proxy_url: str = _opt("", "proxy_url")
    raw: bool = _opt(False, "raw")
    recursion: bool = _opt(False, "recursion")
    recursion_depth: int = _opt(0, "recursion_depth")
    recursion_strategy: str = _opt("default", "recursion_strategy")
    replay_proxy_url: str = _opt("", "replay_proxy_url")
    sni: str = _opt("", "sni")
    timeout: int = _opt(10, "timeout")
    url: str = _opt("", "url")
    http2: bool = _opt(False, "http2")
    client_cert: str = _opt("", "client-cert")
    client_key: str = _opt("", "client-key")


@dataclass
class GeneralOptions(_OptionGroup):
    """General behaviour of a run."""

    auto_calibration: bool = _opt(False, "autocalibration")
    auto_calibration_keyword: str = _opt("FUZZ", "autocalibration_keyword")
    auto_calibration_per_host: bool = _opt(False, "autocalibration_per_host")
    auto_calibration_strategies: list[str] = _opt(["basic"], "autocalibration_strategies")
    auto_calibration_strings: list[str] = _opt([], "autocalibration_strings")
    colors: bool = _opt(False, "colors")
    config_file: str = _opt("", "config_file", toml=False)
    delay: str = _opt("", "delay")
    json: bool = _opt(False, "json")
    max_time: int = _opt(0, "maxtime")
    max_time_job: int = _opt(0, "maxtime_job")
    noninteractive: bool = _opt(False, "noninteractive")
    quiet: bool = _opt(False, "quiet")
    rate: int = _opt(0, "rate")
    scraper_file: str = _opt("", "scraperfile")
    scrapers: str = _opt("all", "scrapers")
    searchhash: str = _opt("", None)
    show_version: bool = _opt(False, None, toml=False)
    stop_on_403: bool = _opt(False, "stop_on_403")
    stop_on_all: bool = _opt(False, "stop_on_all")
    stop_on_errors: bool = _opt(False, "stop_on_errors")
    threads: int = _opt(40, "threads")
    verbose: bool = _opt(False, "verbose")


@dataclass
class InputOptions(_OptionGroup):
    """Options for wordlists and other input."""

    dir_search_compat: bool = _opt(False, "dirsearch_compat")
    encoders: list[str] = _opt([], "encoders")
    extensions: str = _opt("", "extensions")
    ignore_wordlist_comments: bool = _opt(False, "ignore_wordlist_comments")
    input_mode: str = _opt("clusterbomb", "input_mode")
    input_num: int = _opt(100, "input_num")
    input_shell: str = _opt("", "input_shell")
    input_commands: list[str] = _opt([], "input_commands")
    request: str = _opt("", "request_file")
    request_proto: str = _opt("https", "request_proto")
    wordlists: list[str] = _opt([], "wordlists")


@dataclass
class OutputOptions(_OptionGroup):
    """Options for output files and logging."""

    debug_log: str = _opt("", "debug_log")
    output_directory: str = _opt("", "output_directory")
    output_file: str = _opt("", "output_file")
    output_format: str = _opt("json", "output_format")
    output_skip_empty_file: bool = _opt(False, "output_skip_empty")


@dataclass
class FilterOptions(_OptionGroup):
    """Filters applied to responses."""

    mode: str = _opt("or", "mode")
    lines: str = _opt("", "lines")
    regexp: str = _opt("", "regexp")
    size: str = _opt("", "size")
    status: str = _opt("", "status")
    time: str = _opt("", "time")
    words: str = _opt("", "words")


@dataclass
class MatcherOptions(_OptionGroup):
    """Matchers applied to responses."""

    mode: str = _opt("or", "mode")
    lines: str = _opt("", "lines")
    regexp: str = _opt("", "regexp")
    size: str = _opt("", "size")
    status: str = _opt("200-299,301,302,307,401,403,405,500", "status")
    time: str = _opt("", "time")
    words: str = _opt("", "words")


_SECTIONS = (
    # attribute, json key, toml key, class
    ("filter", "filters", "filter", FilterOptions),
    ("general", "general", "general", GeneralOptions),
    ("http", "http", "http", HTTPOptions),
    ("input", "input", "input", InputOptions),
    ("matcher", "matchers", "matcher", MatcherOptions),
    ("output", "output", "output", OutputOptions),
)


@dataclass
class ConfigOptions:
    """All option groups together, defaulting to the built-in defaults."""

    filter: FilterOptions = field(default_factory=FilterOptions)
    general: GeneralOptions = field(default_factory=GeneralOptions)
    http: HTTPOptions = field(default_factory=HTTPOptions)
    input: InputOptions = field(default_factory=InputOptions)
    matcher: MatcherOptions = field(default_factory=MatcherOptions)
    output: OutputOptions = field(default_factory=OutputOptions)

    def to_dict(self) -> dict:
        """Return the JSON-serialisable form."""
        return {json_key: getattr(self, attr)._to_dict() for attr, json_key, _, _ in _SECTIONS}

    @classmethod
    def from_dict(cls, data) -> ConfigOptions:
        """Build options from the JSON form; missing values are left empty."""
        opts = cls(**{attr: _zero(group) for attr, _, _, group in _SECTIONS})
        opts._apply(data, 1, _json_key)
        return opts

    def _apply(self, data, key_index: int, key_of) -> None:
        if not isinstance(data, dict):
            raise ValueError("options must be a table")
        sections = {section[key_index]: section[0] for section in _SECTIONS}
        folded = {key.lower(): attr for key, attr in sections.items()}
        for key, value in data.items():
            attr = sections.get(key) or folded.get(str(key).lower())
            if attr is None or value is None:
                continue
            getattr(self, attr)._apply(value, key_of, str(key))


def read_config(config_file) -> ConfigOptions:
    """Read a TOML configuration file on top of the default options."""
    opts = ConfigOptions()
    with open(config_file, "rb") as fh:
        data = tomllib.load(fh)
    opts._apply(data, 2, _toml_key)
    return opts