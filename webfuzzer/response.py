"""The response model handed to matchers and filters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timedelta
from urllib.parse import SplitResult, unquote, urljoin, urlsplit

from webfuzzer.request import Request

_DEFAULT_PORTS = {"http": "80", "https": "443"}
_PORT_RE = re.compile(r":[0-9]*")


@dataclass
class Response:
    """The meaningful parts of an HTTP response."""

    status_code: int = 0
    headers: dict[str, list[str]] = field(default_factory=dict)
    data: bytes = b""
    content_length: int = 0
    content_words: int = 0
    content_lines: int = 0
    content_type: str = ""
    cancelled: bool = False
    request: Request | None = None
    raw: str = ""
    result_file: str = ""
    scraper_data: dict[str, list[str]] = field(default_factory=dict)
    time: timedelta = field(default_factory=timedelta)

    def get_redirect_location(self, absolute: bool) -> str:
        """Return the Location of a 3xx response, resolved against the request URL if absolute."""
        location = ""
        if 300 <= self.status_code <= 399:
            values = self.headers.get("Location")
            if values:
                location = values[0]
        if not absolute:
            return location
        base_url = self.request.url if self.request is not None else ""
        try:
            redirect = urlsplit(location)
            base = urlsplit(base_url)
            if redirect.scheme and url_equal(redirect, base):
                host = base.netloc.rpartition("@")[2]
                return f"{redirect.scheme}://{host}{unquote(redirect.path)}"
            return urljoin(base_url, location)
        except ValueError:
            return location


def _as_parts(url) -> SplitResult:
    return urlsplit(url) if isinstance(url, str) else url


def _host_and_port(parts: SplitResult) -> tuple[str, str]:
    hostport = parts.netloc.rpartition("@")[2]
    colon = hostport.rfind(":")
    if colon != -1 and _PORT_RE.fullmatch(hostport[colon:]):
        host, port = hostport[:colon], hostport[colon + 1:]
    else:
        host, port = hostport, ""
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def url_equal(first, second) -> bool:
    """True if two URLs share host name, scheme and (default-resolved) port."""
    a, b = _as_parts(first), _as_parts(second)
    host_a, port_a = _host_and_port(a)
    host_b, port_b = _host_and_port(b)
    if host_a != host_b or a.scheme != b.scheme:
        return False
    return (port_a or _DEFAULT_PORTS.get(a.scheme, "")) == (port_b or _DEFAULT_PORTS.get(b.scheme, ""))