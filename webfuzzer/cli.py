"""Command-line flags and how they map onto ConfigOptions."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable

from webfuzzer.help import UsageFlag, usage
from webfuzzer.options import ConfigOptions

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_OCTAL = re.compile(r"[+-]?0[0-7_]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean: {text!r}")


def _parse_int(text: str) -> int:
    if not text or text != text.strip():
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text, 8) if _OCTAL.fullmatch(text) else int(text, 0)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


@dataclass
class _Flag:
    name: str
    usage: str
    default: str
    setter: Callable[[str], None]
    is_bool: bool = False


class _FlagSet:
    """A set of single- or double-dash flags, parsed until the first non-flag argument."""

    def __init__(self) -> None:
        self._flags: dict[str, _Flag] = {}
        self._finalizers: list[Callable[[], None]] = []
        self.visited: set[str] = set()

    def _define(self, flag: _Flag) -> None:
        if flag.name in self._flags:
            raise ValueError(f"flag redefined: {flag.name}")
        self._flags[flag.name] = flag

    def bool_var(self, target, attr: str, name: str, default: bool, text: str) -> None:
        setattr(target, attr, default)
        self._define(_Flag(name, text, "true" if default else "false",
                           lambda v: setattr(target, attr, _parse_bool(v)), is_bool=True))

    def int_var(self, target, attr: str, name: str, default: int, text: str) -> None:
        setattr(target, attr, default)
        self._define(_Flag(name, text, str(default), lambda v: setattr(target, attr, _parse_int(v))))

    def string_var(self, target, attr: str, name: str, default: str, text: str) -> None:
        setattr(target, attr, default)
        self._define(_Flag(name, text, default, lambda v: setattr(target, attr, v)))

    def list_var(self, items: list[str], name: str, text: str, split_commas: bool = False) -> None:
        if split_commas:
            setter = lambda v: items.extend(v.split(","))  # noqa: E731
        else:
            setter = items.append
        self._define(_Flag(name, text, "", setter))

    def on_finish(self, finalizer: Callable[[], None]) -> None:
        self._finalizers.append(finalizer)

    def usage_flags(self) -> list[UsageFlag]:
        """Return the flags in help form, sorted by name."""
        return [UsageFlag(f.name, f.usage, f.default) for f in sorted(self._flags.values(), key=lambda f: f.name)]

    def usage_text(self) -> str:
        return usage(self.usage_flags())

    def _fail(self, message: str):
        print(message, file=sys.stderr)
        sys.stdout.write(self.usage_text())
        raise SystemExit(2)

    def parse(self, argv) -> list[str]:
        """Apply the flags in argv; return the arguments left after the flags."""
        args = list(argv)
        pos = 0
        while pos < len(args):
            token = args[pos]
            if len(token) < 2 or token[0] != "-":
                break
            pos += 1
            body = token[1:]
            if body.startswith("-"):
                body = body[1:]
                if not body:
                    break
            if not body or body[0] in "-=":
                self._fail(f"bad flag syntax: {token}")
            name, has_value, value = body.partition("=")
            flag = self._flags.get(name)
            if flag is None:
                if name in ("h", "help"):
                    sys.stdout.write(self.usage_text())
                    raise SystemExit(0)
                self._fail(f"flag provided but not defined: -{name}")
            if flag.is_bool:
                if not has_value:
                    value = "true"
                try:
                    flag.setter(value)
                except ValueError:
                    self._fail(f'invalid boolean value "{value}" for -{name}: parse error')
            else:
                if not has_value:
                    if pos >= len(args):
                        self._fail(f"flag needs an argument: -{name}")
                    value = args[pos]
                    pos += 1
                try:
                    flag.setter(value)
                except ValueError:
                    self._fail(f'invalid value "{value}" for flag -{name}: parse error')
            self.visited.add(name)
        for finalizer in self._finalizers:
            finalizer()
        return args[pos:]


def build_parser(opts: ConfigOptions) -> _FlagSet:
    """Define every command-line flag on top of opts, which is updated in place when parsing."""
    fs = _FlagSet()
    ignored = SimpleNamespace(value=False)
    g, h, inp, out, flt, mat = opts.general, opts.http, opts.input, opts.output, opts.filter, opts.matcher

    h.cookies = list(h.cookies)
    h.headers = list(h.headers)
    g.auto_calibration_strings = list(g.auto_calibration_strings)
    inp.input_commands = list(inp.input_commands)
    inp.wordlists = list(inp.wordlists)
    inp.encoders = list(inp.encoders)
    strategies: list[str] = []

    fs.bool_var(ignored, "value", "compressed", True, "Dummy flag for copy as curl functionality (ignored)")
    fs.bool_var(ignored, "value", "i", True, "Dummy flag for copy as curl functionality (ignored)")
    fs.bool_var(ignored, "value", "k", False, "Dummy flag for backwards compatibility")
    fs.bool_var(out, "output_skip_empty_file", "or", out.output_skip_empty_file,
                "Don't create the output file if we don't have results")
    fs.bool_var(g, "auto_calibration", "ac", g.auto_calibration, "Automatically calibrate filtering options")
    fs.bool_var(g, "auto_calibration_per_host", "ach", g.auto_calibration, "Per host autocalibration")
    fs.bool_var(g, "colors", "c", g.colors, "Colorize output.")
    fs.bool_var(g, "json", "json", g.json, "JSON output, printing newline-delimited JSON records")
    fs.bool_var(g, "noninteractive", "noninteractive", g.noninteractive,
                "Disable the interactive console functionality")
    fs.bool_var(g, "quiet", "s", g.quiet, "Do not print additional information (silent mode)")
    fs.bool_var(g, "show_version", "V", g.show_version, "Show version information.")
    fs.bool_var(g, "stop_on_403", "sf", g.stop_on_403, "Stop when > 95% of responses return 403 Forbidden")
    fs.bool_var(g, "stop_on_all", "sa", g.stop_on_all, "Stop on all error cases. Implies -sf and -se.")
    fs.bool_var(g, "stop_on_errors", "se", g.stop_on_errors, "Stop on spurious errors")
    fs.bool_var(g, "verbose", "v", g.verbose,
                "Verbose output, printing full URL and redirect location (if any) with the results.")
    fs.bool_var(h, "follow_redirects", "r", h.follow_redirects, "Follow redirects")
    fs.bool_var(h, "ignore_body", "ignore-body", h.ignore_body, "Do not fetch the response content.")
    fs.bool_var(h, "raw", "raw", h.raw, "Do not encode URI")
    fs.bool_var(h, "recursion", "recursion", h.recursion,
                "Scan recursively. Only FUZZ keyword is supported, and URL (-u) has to end in it.")
    fs.bool_var(h, "http2", "http2", h.http2, "Use HTTP2 protocol")
    fs.bool_var(inp, "dir_search_compat", "D", inp.dir_search_compat,
                "DirSearch wordlist compatibility mode. Used in conjunction with -e flag.")
    fs.bool_var(inp, "ignore_wordlist_comments", "ic", inp.ignore_wordlist_comments, "Ignore wordlist comments")
    fs.int_var(g, "max_time", "maxtime", g.max_time, "Maximum running time in seconds for entire process.")
    fs.int_var(g, "max_time_job", "maxtime-job", g.max_time_job, "Maximum running time in seconds per job.")
    fs.int_var(g, "rate", "rate", g.rate, "Rate of requests per second")
    fs.int_var(g, "threads", "t", g.threads, "Number of concurrent threads.")
    fs.int_var(h, "recursion_depth", "recursion-depth", h.recursion_depth, "Maximum recursion depth.")
    fs.int_var(h, "timeout", "timeout", h.timeout, "HTTP request timeout in seconds.")
    fs.int_var(inp, "input_num", "input-num", inp.input_num,
               "Number of inputs to test. Used in conjunction with --input-cmd.")
    fs.string_var(g, "auto_calibration_keyword", "ack", g.auto_calibration_keyword, "Autocalibration keyword")
    fs.string_var(h, "client_cert", "cc", "",
                  "Client cert for authentication. Client key needs to be defined as well for this to work")
    fs.string_var(h, "client_key", "ck", "",
                  "Client key for authentication. Client certificate needs to be defined as well for this to work")
    fs.string_var(g, "config_file", "config", "", "Load configuration from a file")
    fs.string_var(g, "scraper_file", "scraperfile", "", "Custom scraper file path")
    fs.string_var(g, "scrapers", "scrapers", g.scrapers, "Active scraper groups")
    fs.string_var(flt, "mode", "fmode", flt.mode, "Filter set operator. Either of: and, or")
    fs.string_var(flt, "lines", "fl", flt.lines,
                  "Filter by amount of lines in response. Comma separated list of line counts and ranges")
    fs.string_var(flt, "regexp", "fr", flt.regexp, "Filter regexp")
    fs.string_var(flt, "size", "fs", flt.size,
                  "Filter HTTP response size. Comma separated list of sizes and ranges")
    fs.string_var(flt, "status", "fc", flt.status,
                  "Filter HTTP status codes from response. Comma separated list of codes and ranges")
    fs.string_var(flt, "time", "ft", flt.time,
                  "Filter by number of milliseconds to the first response byte, either greater or less than. "
                  "EG: >100 or <100")
    fs.string_var(flt, "words", "fw", flt.words,
                  "Filter by amount of words in response. Comma separated list of word counts and ranges")
    fs.string_var(g, "delay", "p", g.delay,
                  'Seconds of `delay` between requests, or a range of random delay. For example "0.1" or "0.1-2.0"')
    fs.string_var(g, "searchhash", "search", g.searchhash, "Search for a FFUFHASH payload from history")
    fs.string_var(h, "data", "d", h.data, "POST data")
    fs.string_var(h, "data", "data", h.data, "POST data (alias of -d)")
    fs.string_var(h, "data", "data-ascii", h.data, "POST data (alias of -d)")
    fs.string_var(h, "data", "data-binary", h.data, "POST data (alias of -d)")
    fs.string_var(h, "method", "X", h.method, "HTTP method to use")
    fs.string_var(h, "proxy_url", "x", h.proxy_url,
                  "Proxy URL (SOCKS5 or HTTP). For example: http://127.0.0.1:8080 or socks5://127.0.0.1:8080")
    fs.string_var(h, "replay_proxy_url", "replay-proxy", h.replay_proxy_url,
                  "Replay matched requests using this proxy.")
    fs.string_var(h, "recursion_strategy", "recursion-strategy", h.recursion_strategy,
                  'Recursion strategy: "default" for a redirect based, and "greedy" to recurse on all matches')
    fs.string_var(h, "url", "u", h.url, "Target URL")
    fs.string_var(h, "sni", "sni", h.sni, "Target TLS SNI, does not support FUZZ keyword")
    fs.string_var(inp, "extensions", "e", inp.extensions,
                  "Comma separated list of extensions. Extends FUZZ keyword.")
    fs.string_var(inp, "input_mode", "mode", inp.input_mode,
                  "Multi-wordlist operation mode. Available modes: clusterbomb, pitchfork, sniper")
    fs.string_var(inp, "input_shell", "input-shell", inp.input_shell, "Shell to be used for running command")
    fs.string_var(inp, "request", "request", inp.request, "File containing the raw http request")
    fs.string_var(inp, "request_proto", "request-proto", inp.request_proto,
                  "Protocol to use along with raw request")
    fs.string_var(mat, "mode", "mmode", mat.mode, "Matcher set operator. Either of: and, or")
    fs.string_var(mat, "lines", "ml", mat.lines, "Match amount of lines in response")
    fs.string_var(mat, "regexp", "mr", mat.regexp, "Match regexp")
    fs.string_var(mat, "size", "ms", mat.size, "Match HTTP response size")
    fs.string_var(mat, "status", "mc", mat.status, 'Match HTTP status codes, or "all" for everything.')
    fs.string_var(mat, "time", "mt", mat.time,
                  "Match how many milliseconds to the first response byte, either greater or less than. "
                  "EG: >100 or <100")
    fs.string_var(mat, "words", "mw", mat.words, "Match amount of words in response")
    fs.string_var(out, "debug_log", "debug-log", out.debug_log,
                  "Write all of the internal logging to the specified file.")
    fs.string_var(out, "output_directory", "od", out.output_directory,
                  "Directory path to store matched results to.")
    fs.string_var(out, "output_file", "o", out.output_file, "Write output to file")
    fs.string_var(out, "output_format", "of", out.output_format,
                  "Output file format. Available formats: json, ejson, html, md, csv, ecsv (or, 'all' for all formats)")
    fs.list_var(g.auto_calibration_strings, "acc",
                "Custom auto-calibration string. Can be used multiple times. Implies -ac")
    fs.list_var(strategies, "acs", "Custom auto-calibration strategies. Can be used multiple times. Implies -ac")
    fs.list_var(h.cookies, "b",
                'Cookie data `"NAME1=VALUE1; NAME2=VALUE2"` for copy as curl functionality.')
    fs.list_var(h.cookies, "cookie", "Cookie data (alias of -b)")
    fs.list_var(h.headers, "H", 'Header `"Name: Value"`, separated by colon. Multiple -H flags are accepted.')
    fs.list_var(inp.input_commands, "input-cmd",
                "Command producing the input. --input-num is required when using this input method. Overrides -w.")
    fs.list_var(inp.wordlists, "w",
                "Wordlist file path and (optional) keyword separated by colon. eg. '/path/to/wordlist:KEYWORD'",
                split_commas=True)
    fs.list_var(inp.encoders, "enc", "Encoders for keywords, eg. 'FUZZ:urlencode b64encode'", split_commas=True)

    def finish_strategies() -> None:
        if strategies:
            g.auto_calibration_strategies = [part for entry in strategies for part in entry.split(",")]

    fs.on_finish(finish_strategies)
    return fs


def parse_flags(opts: ConfigOptions, argv=None) -> ConfigOptions:
    """Apply the command-line flags in argv (default: sys.argv[1:]) to opts and return it.

    Prints usage and exits with status 2 on a bad flag, and with status 0 on -h.
    """
    parser = build_parser(opts)
    parser.parse(sys.argv[1:] if argv is None else argv)
    return opts