"""Help text for the command-line flags, grouped into sections."""

from __future__ import annotations

from dataclasses import dataclass, field

from webfuzzer.util import version


@dataclass
class UsageFlag:
    """One flag as shown in the help text."""

    name: str
    description: str
    default: str = ""

    def format_flag(self, max_length: int) -> str:
        """Return the help line for the flag, its name padded to max_length."""
        line = f"  -{self.name:<{max_length}} {self.description}"
        if self.default:
            line += f" (default: {self.default})"
        return line + "\n"


@dataclass
class UsageSection:
    """A titled group of flags in the help text."""

    name: str
    description: str = ""
    expected_flags: tuple[str, ...] = ()
    hidden: bool = False
    flags: list[UsageFlag] = field(default_factory=list)

    def format_section(self, max_length: int, extended: bool) -> str:
        """Return the section text; hidden sections only appear in extended help."""
        if not extended and self.hidden:
            return ""
        lines = [f"{self.name}:\n"]
        lines.extend(flag.format_flag(max_length) for flag in self.flags)
        lines.append("\n")
        return "".join(lines)


def _sections() -> list[UsageSection]:
    return [
        UsageSection(
            "HTTP OPTIONS",
            "Options controlling the HTTP request and its parts.",
            ("cc", "ck", "H", "X", "b", "d", "r", "u", "raw", "recursion", "recursion-depth",
             "recursion-strategy", "replay-proxy", "timeout", "ignore-body", "x", "sni", "http2"),
        ),
        UsageSection(
            "GENERAL OPTIONS",
            "",
            ("ac", "acc", "ack", "ach", "acs", "c", "config", "json", "maxtime", "maxtime-job",
             "noninteractive", "p", "rate", "scraperfile", "scrapers", "search", "s", "sa", "se",
             "sf", "t", "v", "V"),
        ),
        UsageSection(
            "COMPATIBILITY OPTIONS",
            "Options to ensure compatibility with other pieces of software.",
            ("compressed", "cookie", "data", "data-ascii", "data-binary", "i", "k"),
            hidden=True,
        ),
        UsageSection(
            "MATCHER OPTIONS",
            "Matchers for the response filtering.",
            ("mmode", "mc", "ml", "mr", "ms", "mt", "mw"),
        ),
        UsageSection(
            "FILTER OPTIONS",
            "Filters for the response filtering.",
            ("fmode", "fc", "fl", "fr", "fs", "ft", "fw"),
        ),
        UsageSection(
            "INPUT OPTIONS",
            "Options for input data for fuzzing. Wordlists and input generators.",
            ("D", "enc", "ic", "input-cmd", "input-num", "input-shell", "mode", "request",
             "request-proto", "e", "w"),
        ),
        UsageSection(
            "OUTPUT OPTIONS",
            "Options for output. Output file formats, file names and debug file locations.",
            ("debug-log", "o", "of", "od", "or"),
        ),
    ]


_EXAMPLES = (
    "EXAMPLE USAGE:\n"
    "  Fuzz file paths from wordlist.txt, match all responses but filter out those with content-size 42.\n"
    "  Colored, verbose output.\n"
    "    webfuzzer -w wordlist.txt -u https://example.org/FUZZ -mc all -fs 42 -c -v\n\n"
    "  Fuzz Host-header, match HTTP 200 responses.\n"
    '    webfuzzer -w hosts.txt -u https://example.org/ -H "Host: FUZZ" -mc 200\n\n'
    '  Fuzz POST JSON data. Match all responses not containing text "error".\n'
    '    webfuzzer -w entries.txt -u https://example.org/ -X POST -H "Content-Type: application/json" \\\n'
    "      -d '{\"name\": \"FUZZ\", \"anotherkey\": \"anothervalue\"}' -fr \"error\"\n\n"
    '  Fuzz multiple locations. Match only responses reflecting the value of "VAL" keyword. Colored.\n'
    '    webfuzzer -w params.txt:PARAM -w values.txt:VAL -u https://example.org/?PARAM=VAL -mr "VAL" -c\n\n'
)


def usage(flags) -> str:
    """Return the full help text for the given UsageFlag objects.

    Raises ValueError if a flag belongs to none of the help sections.
    """
    sections = _sections()
    max_length = 0
    for flag in sorted(flags, key=lambda f: f.name):
        owners = [section for section in sections if flag.name in section.expected_flags]
        if not owners:
            raise ValueError(f"Flag {flag.name} was found but not defined in the help sections.")
        for section in owners:
            section.flags.append(flag)
        max_length = max(max_length, len(flag.name))

    parts = [f"webfuzzer - v{version()}\n\n"]
    parts.extend(section.format_section(max_length, False) for section in sections)
    parts.append(_EXAMPLES)
    return "".join(parts)