"""The request model and sniper-mode template handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Iterator


@dataclass
class Request:
    """The data a runner needs to issue one HTTP request."""

    method: str = ""
    host: str = ""
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    data: bytes = b""
    inputs: dict[str, bytes] = field(default_factory=dict)
    position: int = 0
    raw: str = ""


def new_request(conf) -> Request:
    """Return a request with the configured method and URL and no headers."""
    return Request(method=conf.method, url=conf.url)


def base_request(conf) -> Request:
    """Return the base request populated from the configuration."""
    req = new_request(conf)
    req.headers = conf.headers
    req.data = conf.data.encode()
    return req


def recursion_request(conf, path: str) -> Request:
    """Return a base request aimed at a recursion target."""
    req = base_request(conf)
    req.url = path
    return req


def copy_request(basereq: Request) -> Request:
    """Return a deep copy of the request."""
    return Request(
        method=basereq.method,
        host=basereq.host,
        url=basereq.url,
        headers=dict(basereq.headers),
        data=bytes(basereq.data),
        inputs=dict(basereq.inputs),
        position=basereq.position,
        raw=basereq.raw,
    )


def _paired(text: str, template: str) -> bool:
    count = text.count(template)
    return count > 0 and count % 2 == 0


def _injections(text: str, template: str, keyword: str) -> Iterator[str]:
    if not _paired(text, template):
        return
    tokens = template_locations(template, text)
    for start, end in zip(tokens[::2], tokens[1::2]):
        yield inject_keyword(text, keyword, start, end)


def sniper_requests(basereq: Request, template: str) -> list[Request]:
    """Return one request per templated location, that location replaced by FUZZ."""
    keyword = "FUZZ"
    reqs: list[Request] = []

    def derive(**changes) -> None:
        new = copy_request(basereq)
        for name, value in changes.items():
            setattr(new, name, value)
        scrub_templates(new, template)
        reqs.append(new)

    for method in _injections(basereq.method, template, keyword):
        derive(method=method)
    for url in _injections(basereq.url, template, keyword):
        derive(url=url)
    data = basereq.data.decode("utf-8", errors="surrogateescape")
    for injected in _injections(data, template, keyword):
        derive(data=injected.encode("utf-8", errors="surrogateescape"))
    for key, value in basereq.headers.items():
        for new_key in _injections(key, template, keyword):
            headers = dict(basereq.headers)
            del headers[key]
            headers[new_key] = value
            derive(headers=headers)
        for new_value in _injections(value, template, keyword):
            headers = dict(basereq.headers)
            headers[key] = new_value
            derive(headers=headers)
    return reqs


def template_locations(template: str, text: str) -> list[int]:
    """Return the character positions of the template marker in text."""
    marker = template[0]
    return [index for index, char in enumerate(text) if char == marker]


def inject_keyword(text: str, keyword: str, start_offset: int, end_offset: int) -> str:
    """Replace text[start_offset:end_offset + 1] by keyword; bad offsets leave text unchanged."""
    if start_offset < 0 or start_offset > end_offset or end_offset >= len(text):
        return text
    return text[:start_offset] + keyword + text[end_offset + 1:]


def scrub_templates(req: Request, template: str) -> None:
    """Remove every template marker from the request, in place."""
    req.method = req.method.replace(template, "")
    req.url = req.url.replace(template, "")
    req.data = req.data.replace(template.encode(), b"")
    scrubbed = {}
    for key, value in req.headers.items():
        if _paired(key, template):
            key = key.replace(template, "")
        if _paired(value, template):
            value = value.replace(template, "")
        scrubbed[key] = value
    req.headers.clear()
    req.headers.update(scrubbed)