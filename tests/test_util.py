import os
import random
import string

import pytest

from webfuzzer.request import Request
from webfuzzer.util import (
    MultiError,
    ValueRange,
    create_config_dir,
    file_exists,
    host_url_from_request,
    merge_maps,
    random_string,
    request_contains_keyword,
    uniq_strings,
    version,
)


def test_random_string_length():
    length = 1 + random.randrange(65535)
    assert len(random_string(length)) == length


def test_random_string_only_letters():
    text = random_string(200)
    assert set(text) <= set(string.ascii_letters)


def test_random_string_empty():
    assert random_string(0) == ""


def test_uniq_strings():
    items = ["foo", "foo", "bar", "baz", "baz", "foo", "baz", "baz", "foo"]
    result = uniq_strings(items)
    assert len(result) == 3
    assert set(result) == {"foo", "bar", "baz"}


def test_file_exists(tmp_path):
    existing = tmp_path / "words.txt"
    existing.write_text("a\n")
    assert file_exists(existing) is True
    assert file_exists(tmp_path) is False
    assert file_exists(tmp_path / "missing.txt") is False


def test_request_contains_keyword():
    req = Request(method="GET", url="http://example.com/", headers={"X-Test": "FUZZ"})
    assert request_contains_keyword(req, "FUZZ") is True
    assert request_contains_keyword(req, "OTHER") is False
    data_req = Request(url="http://example.com/", data=b"name=VAL")
    assert request_contains_keyword(data_req, "VAL") is True
    key_req = Request(url="http://example.com/", headers={"KEY": "value"})
    assert request_contains_keyword(key_req, "KEY") is True


def test_host_url_from_request():
    req = Request(url="https://example.com/dir/sub/page.html", host="example.com:8443")
    assert host_url_from_request(req) == "example.com:8443/dir/sub"


def test_version():
    assert version() == "2.1.0-dev"


def test_create_config_dir(tmp_path):
    target = tmp_path / "a" / "b"
    create_config_dir(target)
    assert target.is_dir()
    create_config_dir(target)
    assert target.is_dir()


def test_create_config_dir_existing_file(tmp_path):
    target = tmp_path / "file"
    target.write_text("x")
    result = create_config_dir(target)
    assert result is None
    assert os.path.isfile(target)
    assert target.read_text() == "x"
    assert file_exists(target) is True


def test_merge_maps():
    first = {"a": ["1", "2"], "b": ["x"]}
    second = {"a": ["2", "3"], "c": ["y"]}
    merged = merge_maps(first, second)
    assert merged == {"a": ["1", "2", "3"], "b": ["x"], "c": ["y"]}
    assert first == {"a": ["1", "2"], "b": ["x"]}


def test_multierror_empty():
    assert MultiError().error_or_none() is None


def test_multierror_message():
    errs = MultiError()
    errs.add(ValueError("first"))
    errs.add("second")
    err = errs.error_or_none()
    assert str(err) == "2 errors occured.\n\t* first\n\t* second\n"
    with pytest.raises(MultiError):
        raise err


def test_value_range_single():
    assert ValueRange.from_string("100") == ValueRange(100, 100)


def test_value_range_range():
    assert ValueRange.from_string("200-299") == ValueRange(200, 299)


def test_value_range_min_not_smaller():
    with pytest.raises(ValueError, match="Minimum has to be smaller than maximum"):
        ValueRange.from_string("5-5")
    with pytest.raises(ValueError, match="Minimum has to be smaller than maximum"):
        ValueRange.from_string("9-1")


def test_value_range_invalid():
    with pytest.raises(ValueError, match="Invalid value: abc"):
        ValueRange.from_string("abc")
    with pytest.raises(ValueError, match="Invalid value"):
        ValueRange.from_string("1-2-3")