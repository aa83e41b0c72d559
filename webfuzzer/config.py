"""The validated runtime configuration of a fuzzing job."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from webfuzzer.options import (
    ConfigOptions,
    FilterOptions,
    GeneralOptions,
    HTTPOptions,
    InputOptions,
    MatcherOptions,
    OutputOptions,
)
from webfuzzer.optrange import OptRange

_REPR_FIELDS = {
    "line": "lines",
    "regexp": "regexp",
    "size": "size",
    "status": "status",
    "time": "time",
    "words": "words",
}


@dataclass
class InputProviderConfig:
    """Configuration of one input source bound to a keyword."""

    name: str = ""
    keyword: str = ""
    value: str = ""
    encoders: str = ""
    template: str = ""  # marker used in sniper mode, usually "§"


@dataclass
class Config:
    """Runtime configuration built from validated options."""

    auto_calibration: bool = False
    auto_calibration_keyword: str = "FUZZ"
    auto_calibration_per_host: bool = False
    auto_calibration_strategies: list[str] = field(default_factory=lambda: ["basic"])
    auto_calibration_strings: list[str] = field(default_factory=list)
    colors: bool = False
    command_keywords: list[str] = field(default_factory=list)
    command_line: str = ""
    config_file: str = ""
    data: str = ""
    debuglog: str = ""
    delay: OptRange = field(default_factory=OptRange)
    dir_search_compat: bool = False
    encoders: list[str] = field(default_factory=list)
    extensions: list[str] = field(default_factory=list)
    filter_mode: str = "or"
    follow_redirects: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    ignore_body: bool = False
    ignore_wordlist_comments: bool = False
    input_mode: str = "clusterbomb"
    input_num: int = 0
    input_providers: list[InputProviderConfig] = field(default_factory=list)
    input_shell: str = ""
    json: bool = False
    matcher_manager: object = None
    matcher_mode: str = "or"
    max_time: int = 0
    max_time_job: int = 0
    method: str = "GET"
    noninteractive: bool = False
    output_directory: str = ""
    output_file: str = ""
    output_format: str = ""
    output_skip_empty_file: bool = False
    progress_frequency: int = 125
    proxy_url: str = ""
    quiet: bool = False
    rate: int = 0
    raw: bool = False
    recursion: bool = False
    recursion_depth: int = 0
    recursion_strategy: str = "default"
    replay_proxy_url: str = ""
    request_file: str = ""
    request_proto: str = "https"
    scraper_file: str = ""
    scrapers: str = "all"
    sni: str = ""
    stop_on_403: bool = False
    stop_on_all: bool = False
    stop_on_errors: bool = False
    threads: int = 0
    timeout: int = 10
    url: str = ""
    verbose: bool = False
    wordlists: list[str] = field(default_factory=list)
    http2: bool = False
    client_cert: str = ""
    client_key: str = ""
    stop_event: threading.Event = field(default_factory=threading.Event, repr=False, compare=False)

    def set_context(self, stop_event: threading.Event) -> None:
        """Use stop_event to signal cancellation."""
        self.stop_event = stop_event

    def cancel(self) -> None:
        """Signal everything waiting on this configuration to stop."""
        self.stop_event.set()

    def _delay_option(self) -> str:
        if not self.delay.has_delay:
            return ""
        if self.delay.is_range:
            return f"{self.delay.min:.2f}-{self.delay.max:.2f}"
        return f"{self.delay.min:.2f}"

    def _reprs(self, kind: str) -> dict[str, str]:
        found = {}
        if self.matcher_manager is None:
            return found
        providers = getattr(self.matcher_manager, kind)()
        for name, provider in providers.items():
            attr = _REPR_FIELDS.get(name)
            if attr is not None:
                found[attr] = provider.repr()
        return found

    def to_options(self) -> ConfigOptions:
        """Return the options that reproduce this configuration."""
        http = HTTPOptions(
            cookies=[],
            data=self.data,
            follow_redirects=self.follow_redirects,
            headers=[f"{key}: {value}" for key, value in self.headers.items()],
            ignore_body=self.ignore_body,
            method=self.method,
            proxy_url=self.proxy_url,
            raw=self.raw,
            recursion=self.recursion,
            recursion_depth=self.recursion_depth,
            recursion_strategy=self.recursion_strategy,
            replay_proxy_url=self.replay_proxy_url,
            sni=self.sni,
            timeout=self.timeout,
            url=self.url,
            http2=self.http2,
            client_cert="",
            client_key="",
        )
        general = GeneralOptions(
            auto_calibration=self.auto_calibration,
            auto_calibration_keyword=self.auto_calibration_keyword,
            auto_calibration_per_host=self.auto_calibration_per_host,
            auto_calibration_strategies=list(self.auto_calibration_strategies),
            auto_calibration_strings=list(self.auto_calibration_strings),
            colors=self.colors,
            config_file="",
            delay=self._delay_option(),
            json=self.json,
            max_time=self.max_time,
            max_time_job=self.max_time_job,
            noninteractive=self.noninteractive,
            quiet=self.quiet,
            rate=int(self.rate),
            scraper_file=self.scraper_file,
            scrapers=self.scrapers,
            searchhash="",
            show_version=False,
            stop_on_403=self.stop_on_403,
            stop_on_all=self.stop_on_all,
            stop_on_errors=self.stop_on_errors,
            threads=self.threads,
            verbose=self.verbose,
        )
        inputs = InputOptions(
            dir_search_compat=self.dir_search_compat,
            encoders=[],
            extensions=",".join(self.extensions),
            ignore_wordlist_comments=self.ignore_wordlist_comments,
            input_mode=self.input_mode,
            input_num=self.input_num,
            input_shell=self.input_shell,
            input_commands=[
                f"{provider.value}:{provider.keyword}"
                for provider in self.input_providers
                if provider.name == "command"
            ],
            request=self.request_file,
            request_proto=self.request_proto,
            wordlists=list(self.wordlists),
        )
        output = OutputOptions(
            debug_log=self.debuglog,
            output_directory=self.output_directory,
            output_file=self.output_file,
            output_format=self.output_format,
            output_skip_empty_file=self.output_skip_empty_file,
        )
        filters = FilterOptions(mode=self.filter_mode, **self._reprs("filters"))
        matchers = MatcherOptions(
            mode=self.matcher_mode,
            **{"status": "", **self._reprs("matchers")},
        )
        return ConfigOptions(
            filter=filters,
            general=general,
            http=http,
            input=inputs,
            matcher=matchers,
            output=output,
        )