import pytest

from webfuzzer.options import ConfigOptions, read_config


def test_defaults():
    opts = ConfigOptions()
    assert opts.matcher.status == "200-299,301,302,307,401,403,405,500"
    assert opts.general.auto_calibration_keyword == "FUZZ"
    assert opts.general.auto_calibration_strategies == ["basic"]
    assert opts.general.threads == 40
    assert opts.input.input_num == 100
    assert opts.input.input_mode == "clusterbomb"
    assert opts.output.output_format == "json"
    assert opts.filter.mode == "or"


def test_defaults_are_independent():
    first = ConfigOptions()
    second = ConfigOptions()
    first.http.headers.append("X: y")
    assert second.http.headers == []


def test_to_dict_section_keys():
    data = ConfigOptions().to_dict()
    assert set(data) == {"filters", "general", "http", "input", "matchers", "output"}
    assert "cookies" not in data["http"]
    assert data["http"]["client-cert"] == ""
    assert data["output"]["output_skip_empty"] is False
    assert data["input"]["request_file"] == ""


def test_to_dict_omits_hidden_general_fields():
    data = ConfigOptions().to_dict()["general"]
    assert "searchhash" not in data
    assert "show_version" not in data
    assert data["autocalibration_keyword"] == "FUZZ"


def test_round_trip_defaults():
    opts = ConfigOptions()
    assert ConfigOptions.from_dict(opts.to_dict()) == opts


def test_round_trip_modified():
    opts = ConfigOptions()
    opts.http.url = "https://example.com/FUZZ"
    opts.http.headers = ["Accept: text/html"]
    opts.general.threads = 7
    opts.general.stop_on_403 = True
    opts.input.wordlists = ["/tmp/words.txt:FUZZ"]
    opts.filter.size = "42"
    assert ConfigOptions.from_dict(opts.to_dict()) == opts


def test_from_dict_missing_values_are_empty():
    opts = ConfigOptions.from_dict({})
    assert opts.general.threads == 0
    assert opts.matcher.status == ""
    assert opts.general.auto_calibration_strategies == []


def test_from_dict_keys_are_case_insensitive():
    opts = ConfigOptions.from_dict({"General": {"THREADS": 5}, "HTTP": {"Url": "https://example.com"}})
    assert opts.general.threads == 5
    assert opts.http.url == "https://example.com"


def test_from_dict_type_mismatch():
    with pytest.raises(ValueError):
        ConfigOptions.from_dict({"general": {"threads": "many"}})


def test_from_dict_bool_is_not_int():
    with pytest.raises(ValueError):
        ConfigOptions.from_dict({"general": {"threads": True}})


def test_read_config(tmp_path):
    path = tmp_path / "rc.toml"
    path.write_text(
        "[http]\n"
        'url = "https://example.com/FUZZ"\n'
        "followredirects = true\n"
        'headers = ["X-Test: 1"]\n'
        "[general]\n"
        "threads = 12\n"
        "stopon403 = true\n"
        "[input]\n"
        'wordlists = ["/tmp/words.txt"]\n'
        "[matcher]\n"
        'status = "200"\n'
    )
    opts = read_config(path)
    assert opts.http.url == "https://example.com/FUZZ"
    assert opts.http.follow_redirects is True
    assert opts.http.headers == ["X-Test: 1"]
    assert opts.general.threads == 12
    assert opts.general.stop_on_403 is True
    assert opts.input.wordlists == ["/tmp/words.txt"]
    assert opts.matcher.status == "200"
    assert opts.general.scrapers == "all"


def test_read_config_ignores_config_file_key(tmp_path):
    path = tmp_path / "rc.toml"
    path.write_text('[general]\nconfigfile = "other.toml"\n')
    assert read_config(path).general.config_file == ""


def test_read_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_config(tmp_path / "absent.toml")


def test_read_config_invalid_toml(tmp_path):
    path = tmp_path / "rc.toml"
    path.write_text("[http\nurl = \n")
    with pytest.raises(ValueError):
        read_config(path)


def test_read_config_type_mismatch(tmp_path):
    path = tmp_path / "rc.toml"
    path.write_text('[general]\nthreads = "lots"\n')
    with pytest.raises(ValueError):
        read_config(path)