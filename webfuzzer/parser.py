"""Validation of user options into a runtime configuration."""

from __future__ import annotations

import os
import sys
from urllib.parse import urlsplit

from webfuzzer import util
from webfuzzer.autocalibration import setup_default_autocalibration_strategies
from webfuzzer.config import Config, InputProviderConfig
from webfuzzer.options import ConfigOptions, read_config
from webfuzzer.util import MultiError, create_config_dir, file_exists

_INPUT_MODES = ("clusterbomb", "pitchfork", "sniper")
_OUTPUT_FORMATS = ("all", "json", "ejson", "html", "md", "csv", "ecsv")
_OP_MODES = ("and", "or")
_PROXY_SCHEMES = ("http", "https", "socks5")
_REPLAY_PROXY_SCHEMES = ("http", "https", "socks5", "socks5h")
_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)
_SNIPER_TEMPLATE = "§"


def _canonical_header_key(key: str) -> str:
    """Canonical MIME header form; keys with non-token characters are left as is."""
    if not key or any(char not in _TOKEN_CHARS for char in key):
        return key
    out = []
    upper = True
    for char in key:
        if upper and "a" <= char <= "z":
            char = char.upper()
        elif not upper and "A" <= char <= "Z":
            char = char.lower()
        out.append(char)
        upper = char == "-"
    return "".join(out)


def _valid_proxy_url(url: str, schemes) -> bool:
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    if any(char.isspace() or ord(char) < 0x20 or ord(char) == 0x7F for char in parts.netloc):
        return False
    if parts.scheme not in schemes:
        return False
    rest = url.split("#", 1)[0].split(":", 1)[1].split("?", 1)[0]
    if rest and not rest.startswith("/"):
        return False  # opaque URL
    return True


def _split_wordlist(value: str) -> list[str]:
    if os.name != "nt":
        return value.split(":", 1)
    # Keep Windows paths such as C:\lists\words.txt:KEYWORD intact.
    if file_exists(value):
        return [value]
    filepart = value[: value.rfind(":")] if ":" in value else value
    if file_exists(filepart):
        return [filepart, value[value.rfind(":") + 1:]]
    return [value]


def _with_encoders(provider: InputProviderConfig, encoders: dict[str, str]) -> InputProviderConfig:
    if provider.keyword in encoders:
        provider.encoders = encoders[provider.keyword]
    return provider


def config_from_options(opts: ConfigOptions, stop_event=None) -> Config:
    """Validate the options and build a Config from them.

    All problems found are collected and raised together as a MultiError.
    """
    errs = MultiError()
    conf = Config()
    if stop_event is not None:
        conf.set_context(stop_event)

    if not opts.http.url and not opts.input.request:
        errs.add("-u flag or -request flag is required")

    if opts.input.extensions:
        conf.extensions = opts.input.extensions.split(",")

    headers = list(opts.http.headers)
    if opts.http.cookies:
        headers.append("Cookie: " + "; ".join(opts.http.cookies))

    conf.input_mode = opts.input.input_mode
    if conf.input_mode not in _INPUT_MODES:
        errs.add(f"Input mode (-mode) {conf.input_mode} not recognized")

    template = ""
    if conf.input_mode == "sniper":
        template = _SNIPER_TEMPLATE
        if len(opts.input.wordlists) > 1:
            errs.add("sniper mode only supports one wordlist")
        if len(opts.input.input_commands) > 1:
            errs.add("sniper mode only supports one input command")

    encoders = {}
    for entry in opts.input.encoders:
        if ":" in entry:
            pieces = entry.split(":")
            encoders[pieces[0]] = pieces[1]

    wordlists = []
    for value in opts.input.wordlists:
        wl = _split_wordlist(value)
        if wl[0] != "-":
            wl[0] = os.path.abspath(wl[0])
        if len(wl) == 2:
            if conf.input_mode == "sniper":
                errs.add("sniper mode does not support wordlist keywords")
            else:
                conf.input_providers.append(
                    _with_encoders(InputProviderConfig(name="wordlist", value=wl[0], keyword=wl[1]), encoders)
                )
        else:
            conf.input_providers.append(
                _with_encoders(
                    InputProviderConfig(name="wordlist", value=wl[0], keyword="FUZZ", template=template),
                    encoders,
                )
            )
        wordlists.append(":".join(wl))
    conf.wordlists = wordlists

    for value in opts.input.input_commands:
        ic = value.split(":", 1)
        if len(ic) == 2:
            if conf.input_mode == "sniper":
                errs.add("sniper mode does not support command keywords")
            else:
                conf.input_providers.append(
                    _with_encoders(InputProviderConfig(name="command", value=ic[0], keyword=ic[1]), encoders)
                )
                conf.command_keywords.append(ic[0])
        else:
            conf.input_providers.append(
                _with_encoders(
                    InputProviderConfig(name="command", value=ic[0], keyword="FUZZ", template=template),
                    encoders,
                )
            )
            conf.command_keywords.append("FUZZ")

    if not conf.input_providers:
        errs.add("Either -w or --input-cmd flag is required")

    if opts.input.request:
        try:
            parse_raw_request(opts, conf)
        except ValueError as err:
            errs.add(f"Could not parse raw request: {err}")

    if opts.http.url:
        conf.url = opts.http.url
    if opts.http.sni:
        conf.sni = opts.http.sni
    if opts.http.client_cert:
        conf.client_cert = opts.http.client_cert
    if opts.http.client_key:
        conf.client_key = opts.http.client_key

    for header in headers:
        hs = header.split(":", 1)
        if len(hs) != 2:
            errs.add('Header defined by -H needs to have a value. ":" should be used as a separator')
            continue
        name = hs[0]
        canonical = not any(kw in name for kw in conf.command_keywords) and not any(
            provider.keyword in name for provider in conf.input_providers
        )
        key = _canonical_header_key(name.strip()) if canonical else name.strip()
        conf.headers[key] = hs[1].strip()

    try:
        conf.delay.initialize(opts.general.delay)
    except ValueError as err:
        errs.add(str(err))

    if opts.http.proxy_url:
        if _valid_proxy_url(opts.http.proxy_url, _PROXY_SCHEMES):
            conf.proxy_url = opts.http.proxy_url
        else:
            errs.add("Bad proxy url (-x) format. Expected http, https or socks5 url")

    if opts.http.replay_proxy_url:
        if _valid_proxy_url(opts.http.replay_proxy_url, _REPLAY_PROXY_SCHEMES):
            conf.replay_proxy_url = opts.http.replay_proxy_url
        else:
            errs.add("Bad replay-proxy url (-replay-proxy) format. Expected http, https or socks5 url")

    if opts.output.output_file:
        if opts.output.output_format in _OUTPUT_FORMATS:
            conf.output_format = opts.output.output_format
        else:
            errs.add(f"Unknown output file format (-of): {opts.output.output_format}")

    if opts.general.auto_calibration_strings:
        conf.auto_calibration_strings = list(opts.general.auto_calibration_strings)
        conf.auto_calibration = True
    if opts.general.auto_calibration_strategies:
        conf.auto_calibration_strategies = list(opts.general.auto_calibration_strategies)
        conf.auto_calibration = True

    conf.rate = max(opts.general.rate, 0)

    if conf.method == "":
        conf.method = opts.http.method or "GET"
    elif opts.http.method:
        conf.method = opts.http.method

    if opts.http.data:
        conf.data = opts.http.data

    conf.ignore_wordlist_comments = opts.input.ignore_wordlist_comments
    conf.dir_search_compat = opts.input.dir_search_compat
    conf.colors = opts.general.colors
    conf.input_num = opts.input.input_num
    conf.input_shell = opts.input.input_shell
    conf.output_file = opts.output.output_file
    conf.output_directory = opts.output.output_directory
    conf.output_skip_empty_file = opts.output.output_skip_empty_file
    conf.ignore_body = opts.http.ignore_body
    conf.quiet = opts.general.quiet
    conf.scraper_file = opts.general.scraper_file
    conf.scrapers = opts.general.scrapers
    conf.stop_on_403 = opts.general.stop_on_403
    conf.stop_on_all = opts.general.stop_on_all
    conf.stop_on_errors = opts.general.stop_on_errors
    conf.follow_redirects = opts.http.follow_redirects
    conf.raw = opts.http.raw
    conf.recursion = opts.http.recursion
    conf.recursion_depth = opts.http.recursion_depth
    conf.recursion_strategy = opts.http.recursion_strategy
    conf.auto_calibration = opts.general.auto_calibration
    conf.auto_calibration_per_host = opts.general.auto_calibration_per_host
    conf.auto_calibration_strategies = list(opts.general.auto_calibration_strategies)
    conf.threads = opts.general.threads
    conf.timeout = opts.http.timeout
    conf.max_time = opts.general.max_time
    conf.max_time_job = opts.general.max_time_job
    conf.noninteractive = opts.general.noninteractive
    conf.verbose = opts.general.verbose
    conf.json = opts.general.json
    conf.http2 = opts.http.http2

    if opts.filter.mode not in _OP_MODES:
        errs.add(f"Unrecognized value for parameter fmode: {opts.filter.mode}, valid values are: and, or")
    if opts.matcher.mode not in _OP_MODES:
        errs.add(f"Unrecognized value for parameter mmode: {opts.matcher.mode}, valid values are: and, or")
    conf.filter_mode = opts.filter.mode
    conf.matcher_mode = opts.matcher.mode

    if conf.auto_calibration_per_host:
        conf.auto_calibration = True

    # A body implies POST, as curl does, unless a raw request file set the method.
    if conf.data and conf.method == "GET" and not opts.input.request:
        conf.method = "POST"

    conf.command_line = " ".join(sys.argv)

    providers = []
    for provider in conf.input_providers:
        if provider.template:
            if template_present(provider.template, conf):
                providers.append(provider)
            else:
                errs.add(
                    f"Template {provider.template} defined, but not found in pairs in headers, "
                    "method, URL or POST data."
                )
        elif keyword_present(provider.keyword, conf):
            providers.append(provider)
        else:
            print(
                f"Keyword {provider.keyword} defined, but not found in headers, method, URL or POST data.",
                file=sys.stderr,
            )
    conf.input_providers = providers

    if conf.input_mode == "sniper" and keyword_present("FUZZ", conf):
        errs.add("FUZZ keyword defined, but we are using sniper mode.")

    if opts.http.recursion and not conf.url.endswith("FUZZ"):
        errs.add("When using -recursion the URL (-u) must end with FUZZ keyword.")

    if opts.general.verbose and opts.general.json:
        errs.add("Cannot have -json and -v")

    err = errs.error_or_none()
    if err is not None:
        raise err
    return conf


def _read_line(fh) -> tuple[str, bool]:
    raw = fh.readline()
    return raw.decode("utf-8", errors="surrogateescape"), raw.endswith(b"\n")


def parse_raw_request(opts: ConfigOptions, conf: Config) -> None:
    """Fill method, URL, headers and body of conf from the raw HTTP request file."""
    conf.request_file = opts.input.request
    conf.request_proto = opts.input.request_proto
    try:
        fh = open(opts.input.request, "rb")
    except OSError as err:
        raise ValueError(f"could not open request file: {err}") from err
    with fh:
        first, complete = _read_line(fh)
        if not complete:
            raise ValueError("could not read request: EOF")
        parts = first.split(" ")
        if len(parts) < 3:
            raise ValueError("malformed request supplied")
        conf.method = parts[0]

        while True:
            line, complete = _read_line(fh)
            line = line.strip()
            if not complete or not line:
                break
            pair = line.split(":", 1)
            if len(pair) != 2:
                continue
            if pair[0].lower() == "content-length":
                continue
            conf.headers[pair[0].strip()] = pair[1].strip()

        target = parts[1]
        if target.startswith("http"):
            try:
                host = urlsplit(target).netloc.rpartition("@")[2]
            except ValueError as err:
                raise ValueError(f"could not parse request URL: {err}") from err
            conf.url = target
            conf.headers["Host"] = host
        else:
            conf.url = opts.input.request_proto + "://" + conf.headers.get("Host", "") + target

        body = fh.read().decode("utf-8", errors="surrogateescape")

    # Drop the single newline an editor typically leaves at the end of the file.
    if body.endswith("\r\n"):
        body = body[:-2]
    elif body.endswith("\n"):
        body = body[:-1]
    conf.data = body


def keyword_present(keyword: str, conf: Config) -> bool:
    """True if keyword appears in the method, URL, body or any header."""
    if keyword in conf.method or keyword in conf.url or keyword in conf.data:
        return True
    return any(keyword in key or keyword in value for key, value in conf.headers.items())


def template_present(template: str, conf: Config) -> bool:
    """True if template markers appear, always in pairs, somewhere in the request."""
    places = [conf.method, conf.url, conf.data]
    for key, value in conf.headers.items():
        places.extend((key, value))
    sane = False
    for text in places:
        count = text.count(template)
        if count > 0:
            if count % 2 != 0:
                return False
            sane = True
    return sane


def check_or_create_config_dir() -> None:
    """Create the configuration directories and default calibration strategies."""
    for path in (util.CONFIG_DIR, util.HISTORY_DIR, util.SCRAPER_DIR, util.AUTOCALIB_DIR):
        create_config_dir(path)
    setup_default_autocalibration_strategies(util.AUTOCALIB_DIR)


def read_default_config() -> ConfigOptions:
    """Read the default configuration file on top of the built-in defaults."""
    try:
        check_or_create_config_dir()
    except OSError:
        pass
    conffile = os.path.join(util.CONFIG_DIR, "webfuzzerrc")
    if not file_exists(conffile):
        home = os.path.expanduser("~")
        if home != "~":
            conffile = os.path.join(home, ".webfuzzerrc")
    return read_config(conffile)