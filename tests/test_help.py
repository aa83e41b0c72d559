import pytest

from webfuzzer.help import UsageFlag, UsageSection, usage
from webfuzzer.util import version


def test_format_flag_with_default():
    flag = UsageFlag("mc", "Match HTTP status codes", "200")
    line = flag.format_flag(6)
    assert line == "  -mc     Match HTTP status codes (default: 200)\n"


def test_format_flag_without_default():
    flag = UsageFlag("w", "Wordlist file path")
    assert flag.format_flag(1) == "  -w Wordlist file path\n"


def test_format_flag_padding_aligns_descriptions():
    short = UsageFlag("t", "threads").format_flag(10)
    long = UsageFlag("recursion", "recurse").format_flag(10)
    assert short.index("threads") == long.index("recurse")


def test_hidden_section_only_in_extended():
    section = UsageSection("SECRETISH", "desc", ("k",), hidden=True, flags=[UsageFlag("k", "dummy")])
    assert section.format_section(3, False) == ""
    text = section.format_section(3, True)
    assert text.startswith("SECRETISH:\n")
    assert text.endswith("\n\n")
    assert "-k" in text


def test_usage_groups_flags_by_section():
    text = usage([
        UsageFlag("w", "Wordlist"),
        UsageFlag("mc", "Match codes", "200-299,301,302,307,401,403,405,500"),
        UsageFlag("fc", "Filter codes"),
    ])
    assert text.index("MATCHER OPTIONS") < text.index("-mc") < text.index("FILTER OPTIONS")
    assert text.index("FILTER OPTIONS") < text.index("-fc") < text.index("INPUT OPTIONS")
    assert text.index("INPUT OPTIONS") < text.index("-w ") < text.index("OUTPUT OPTIONS")
    assert "(default: 200-299,301,302,307,401,403,405,500)" in text


def test_usage_hides_compatibility_section():
    text = usage([UsageFlag("data", "POST data (alias of -d)"), UsageFlag("d", "POST data")])
    assert "COMPATIBILITY OPTIONS" not in text
    assert "-data" not in text
    assert "HTTP OPTIONS:" in text


def test_usage_mentions_version_and_examples():
    text = usage([])
    assert f"v{version()}" in text.splitlines()[0]
    assert "EXAMPLE USAGE:" in text


def test_usage_unknown_flag_raises():
    with pytest.raises(ValueError, match="nonexistent"):
        usage([UsageFlag("nonexistent", "nothing")])