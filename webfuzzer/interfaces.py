"""Data records and the protocols the fuzzing components implement."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from webfuzzer.request import Request
    from webfuzzer.response import Response


@dataclass
class Progress:
    """A snapshot of job progress."""

    started_at: datetime
    req_count: int = 0
    req_total: int = 0
    req_sec: int = 0
    queue_pos: int = 0
    queue_total: int = 0
    error_count: int = 0


@dataclass
class ScraperResult:
    """What one scraper rule found in a response."""

    name: str
    type: str
    action: list[str] = field(default_factory=list)
    results: list[str] = field(default_factory=list)


@dataclass
class Result:
    """One matched result, as reported and saved."""

    inputs: dict[str, bytes] = field(default_factory=dict)
    position: int = 0
    status_code: int = 0
    content_length: int = 0
    content_words: int = 0
    content_lines: int = 0
    content_type: str = ""
    redirect_location: str = ""
    url: str = ""
    duration: timedelta = field(default_factory=timedelta)
    scraper_data: dict[str, list[str]] = field(default_factory=dict)
    result_file: str = ""
    host: str = ""
    html_color: str = ""


@runtime_checkable
class FilterProvider(Protocol):
    """A matcher or filter applied to responses."""

    def filter(self, response: Response) -> bool:
        """Return whether the response matches; raise on failure."""

    def repr(self) -> str:
        """Return the option string this filter was built from."""

    def repr_verbose(self) -> str:
        """Return a human-readable description."""


@runtime_checkable
class MatcherManager(Protocol):
    """Holds the matchers and filters, global and per host."""

    def set_calibrated(self, calibrated: bool) -> None:
        """Mark global calibration as done or not."""

    def set_calibrated_for_host(self, host: str, calibrated: bool) -> None:
        """Mark calibration for one host as done or not."""

    def add_filter(self, name: str, option: str, replace: bool) -> None:
        """Add a filter; raise ValueError on a bad option."""

    def add_per_domain_filter(self, domain: str, name: str, option: str) -> None:
        """Add a filter for one domain; raise ValueError on a bad option."""

    def remove_filter(self, name: str) -> None:
        """Remove a filter by name."""

    def add_matcher(self, name: str, option: str) -> None:
        """Add a matcher; raise ValueError on a bad option."""

    def filters(self) -> dict[str, FilterProvider]:
        """Return the global filters by name."""

    def matchers(self) -> dict[str, FilterProvider]:
        """Return the matchers by name."""

    def filters_for_domain(self, domain: str) -> dict[str, FilterProvider]:
        """Return the filters that apply to one domain."""

    def calibrated_for_domain(self, domain: str) -> bool:
        """Return whether the domain has been calibrated."""

    def calibrated(self) -> bool:
        """Return whether global calibration has been done."""


@runtime_checkable
class RunnerProvider(Protocol):
    """Prepares and executes requests."""

    def prepare(self, inputs: dict[str, bytes], basereq: Request) -> Request:
        """Return a request with the inputs substituted into basereq."""

    def execute(self, req: Request) -> Response:
        """Send the request and return its response."""

    def dump(self, req: Request) -> bytes:
        """Return the raw bytes of the request."""


@runtime_checkable
class InputProvider(Protocol):
    """Supplies keyword values for each request."""

    def activate_keywords(self, keywords: list[str]) -> None:
        """Enable only the providers for these keywords."""

    def add_provider(self, config) -> None:
        """Add an internal provider from its configuration."""

    def keywords(self) -> list[str]:
        """Return all keywords."""

    def next(self) -> bool:
        """Return whether another value set is available."""

    def position(self) -> int:
        """Return the current position."""

    def set_position(self, position: int) -> None:
        """Move to a position."""

    def reset(self) -> None:
        """Return to the start."""

    def value(self) -> dict[str, bytes]:
        """Return the current value of every keyword."""

    def total(self) -> int:
        """Return the number of value sets."""


@runtime_checkable
class InternalInputProvider(Protocol):
    """Supplies the values for a single keyword."""

    def keyword(self) -> str:
        """Return the keyword."""

    def next(self) -> bool:
        """Return whether another value is available."""

    def position(self) -> int:
        """Return the current position."""

    def set_position(self, position: int) -> None:
        """Move to a position."""

    def reset_position(self) -> None:
        """Return to the start."""

    def increment_position(self) -> None:
        """Advance by one."""

    def value(self) -> bytes:
        """Return the current value."""

    def total(self) -> int:
        """Return the number of values."""

    def active(self) -> bool:
        """Return whether the provider is enabled."""

    def enable(self) -> None:
        """Enable the provider."""

    def disable(self) -> None:
        """Disable the provider."""


@runtime_checkable
class OutputProvider(Protocol):
    """Reports progress and results."""

    def banner(self) -> None:
        """Print the start banner."""

    def finalize(self) -> None:
        """Write final output; raise on failure."""

    def progress(self, status: Progress) -> None:
        """Report progress."""

    def info(self, text: str) -> None:
        """Report an informational message."""

    def error(self, text: str) -> None:
        """Report an error message."""

    def raw(self, text: str) -> None:
        """Write text as is."""

    def warning(self, text: str) -> None:
        """Report a warning."""

    def result(self, resp: Response) -> None:
        """Record a matched response."""

    def print_result(self, res: Result) -> None:
        """Print one result."""

    def save_file(self, filename: str, fmt: str) -> None:
        """Save results to a file; raise on failure."""

    def current_results(self) -> list[Result]:
        """Return the results of the current job."""

    def set_current_results(self, results: list[Result]) -> None:
        """Replace the results of the current job."""

    def reset(self) -> None:
        """Clear results."""

    def cycle(self) -> None:
        """Move on to a new queued job."""


@runtime_checkable
class Scraper(Protocol):
    """Extracts data from responses."""

    def execute(self, resp: Response, matched: bool) -> list[ScraperResult]:
        """Run the scraper rules against a response."""

    def append_from_file(self, path: str) -> None:
        """Load more rules from a file; raise on failure."""