import json
import threading

import pytest

from webfuzzer.autocalibration import (
    CalibrationMixin,
    autocalibration_strings,
    setup_default_autocalibration_strategies,
)
from webfuzzer.config import Config
from webfuzzer.request import Request
from webfuzzer.response import Response


class NullOutput:
    def __init__(self):
        self.warnings = []
        self.errors = []

    def warning(self, text):
        self.warnings.append(text)

    def error(self, text):
        self.errors.append(text)

    def info(self, text):
        pass


class FakeFilter:
    def __init__(self, matches):
        self.matches = matches

    def filter(self, response):
        return self.matches


class FakeManager:
    def __init__(self):
        self.global_filters = {}
        self.domain_filters = {}
        self.added = []
        self.domain_added = []
        self._calibrated = False
        self.hosts = set()

    def calibrated(self):
        return self._calibrated

    def set_calibrated(self, calibrated):
        self._calibrated = calibrated

    def calibrated_for_domain(self, domain):
        return domain in self.hosts

    def set_calibrated_for_host(self, host, calibrated):
        if calibrated:
            self.hosts.add(host)

    def filters(self):
        return self.global_filters

    def filters_for_domain(self, domain):
        return self.domain_filters.get(domain, {})

    def add_filter(self, name, option, replace):
        self.added.append((name, option, replace))
        self.global_filters[name] = FakeFilter(True)

    def add_per_domain_filter(self, domain, name, option):
        self.domain_added.append((domain, name, option))
        self.domain_filters.setdefault(domain, {})[name] = FakeFilter(True)


class FakeRunner:
    def __init__(self, sizes, words=None, lines=None, fail=False):
        self.sizes = sizes
        self.words = words or [0] * len(sizes)
        self.lines = lines or [0] * len(sizes)
        self.fail = fail
        self.calls = 0

    def prepare(self, inputs, basereq):
        if self.fail:
            raise RuntimeError("cannot prepare")
        return Request(method=basereq.method, url=basereq.url, host="example.com", inputs=dict(inputs))

    def execute(self, req):
        i = self.calls % len(self.sizes)
        self.calls += 1
        return Response(
            status_code=200,
            content_length=self.sizes[i],
            content_words=self.words[i],
            content_lines=self.lines[i],
            request=req,
        )


class CalibratingJob(CalibrationMixin):
    def __init__(self, config, runner, manager):
        config.matcher_manager = manager
        self.config = config
        self.runner = runner
        self.output = NullOutput()
        self._calib_lock = threading.Lock()
        self.error_count = 0
        self.matching = True

    def is_match(self, resp):
        return self.matching

    def _inc_error(self):
        self.error_count += 1


def make_config(**kwargs):
    kwargs.setdefault("auto_calibration", True)
    kwargs.setdefault("auto_calibration_strings", ["one", "two"])
    kwargs.setdefault("url", "https://example.com/dir/FUZZ")
    return Config(**kwargs)


def test_autocalibration_strings_from_strategy(tmp_path):
    (tmp_path / "test.json").write_text(json.dumps({"test": ["foo", "bar"]}))
    config = Config(auto_calibration_strategies=["test"])
    inputs = autocalibration_strings(config, NullOutput(), str(tmp_path))
    assert inputs.get("custom", []) == []
    assert inputs["test"] == ["foo", "bar"]


def test_missing_strategy_is_skipped(tmp_path):
    output = NullOutput()
    config = Config(auto_calibration_strategies=["missing"])
    assert autocalibration_strings(config, output, str(tmp_path)) == {}
    assert len(output.warnings) == 1
    assert 'Skipping strategy "missing"' in output.warnings[0]


def test_malformed_strategy_is_skipped(tmp_path):
    (tmp_path / "malformed.json").write_text('{"test": "foo"}')
    output = NullOutput()
    config = Config(auto_calibration_strategies=["malformed"])
    assert autocalibration_strings(config, output, str(tmp_path)) == {}
    assert len(output.warnings) == 1


def test_custom_strings_take_precedence(tmp_path):
    (tmp_path / "test.json").write_text(json.dumps({"test": ["foo"]}))
    config = Config(auto_calibration_strategies=["test"], auto_calibration_strings=["x", "y"])
    assert autocalibration_strings(config, NullOutput(), str(tmp_path)) == {"custom": ["x", "y"]}


def test_strategies_are_merged(tmp_path):
    (tmp_path / "a.json").write_text(json.dumps({"k": ["1", "2"]}))
    (tmp_path / "b.json").write_text(json.dumps({"k": ["2", "3"], "other": ["z"]}))
    config = Config(auto_calibration_strategies=["a", "b"])
    inputs = autocalibration_strings(config, NullOutput(), str(tmp_path))
    assert inputs == {"k": ["1", "2", "3"], "other": ["z"]}


def test_setup_default_strategies_writes_one_file_per_call(tmp_path):
    setup_default_autocalibration_strategies(str(tmp_path))
    assert (tmp_path / "basic.json").exists()
    assert not (tmp_path / "advanced.json").exists()
    basic = json.loads((tmp_path / "basic.json").read_text())
    assert set(basic) == {"basic_admin", "htaccess", "basic_random"}
    assert all(entry.startswith("admin") for entry in basic["basic_admin"])
    assert sorted(len(e) - len("admin") for e in basic["basic_admin"]) == [8, 16]

    setup_default_autocalibration_strategies(str(tmp_path))
    advanced = json.loads((tmp_path / "advanced.json").read_text())
    assert set(advanced) == {"basic_admin", "htaccess", "basic_random", "admin_dir", "random_dir"}
    assert all(entry.endswith("/") for entry in advanced["random_dir"])


def test_calibrate_adds_size_filter_once():
    manager = FakeManager()
    job = CalibratingJob(make_config(), FakeRunner([42]), manager)
    result = job.calibrate_if_needed("example.com/dir", {"FUZZ": b"x"})
    assert result is None
    assert manager.added == [("size", "42", False)]
    assert manager.calibrated()
    again = job.calibrate_if_needed("example.com/dir", {"FUZZ": b"x"})
    assert again is None
    assert manager.added == [("size", "42", False)]


def test_calibrate_falls_back_to_words():
    manager = FakeManager()
    job = CalibratingJob(make_config(), FakeRunner([10, 20], words=[5, 5]), manager)
    result = job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert result is None
    assert manager.added == [("word", "5", False)]


def test_calibrate_falls_back_to_lines():
    manager = FakeManager()
    job = CalibratingJob(make_config(), FakeRunner([10, 20], words=[1, 2], lines=[3, 3]), manager)
    result = job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert result is None
    assert manager.added == [("line", "3", False)]


def test_calibrate_without_common_values_adds_nothing():
    manager = FakeManager()
    job = CalibratingJob(make_config(), FakeRunner([10, 20], words=[1, 2], lines=[3, 4]), manager)
    result = job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert result is None
    assert manager.added == []
    assert manager.calibrated()


def test_calibrate_skips_when_already_filtered():
    manager = FakeManager()
    manager.global_filters["status"] = FakeFilter(True)
    job = CalibratingJob(make_config(), FakeRunner([42]), manager)
    result = job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert result is None
    assert manager.added == []


def test_calibrate_ignores_unmatched_responses():
    manager = FakeManager()
    job = CalibratingJob(make_config(), FakeRunner([42]), manager)
    job.matching = False
    result = job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert result is None
    assert manager.added == []
    assert manager.calibrated()


def test_disabled_calibration_does_nothing():
    manager = FakeManager()
    runner = FakeRunner([42])
    job = CalibratingJob(make_config(auto_calibration=False), runner, manager)
    result = job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert result is None
    assert runner.calls == 0
    assert manager.added == []
    assert not manager.calibrated()


def test_runner_errors_are_counted():
    manager = FakeManager()
    job = CalibratingJob(make_config(), FakeRunner([42], fail=True), manager)
    job.calibrate_if_needed("h", {"FUZZ": b"x"})
    assert job.error_count == 2
    assert len(job.output.errors) == 2
    assert manager.added == []


def test_per_host_calibration_adds_domain_filter():
    manager = FakeManager()
    config = make_config(auto_calibration_per_host=True)
    job = CalibratingJob(config, FakeRunner([42]), manager)
    result = job.calibrate_if_needed("example.com/dir", {"FUZZ": b"x"})
    assert result is None
    assert manager.domain_added == [("example.com/dir", "size", "42")]
    assert manager.calibrated_for_domain("example.com/dir")
    assert manager.added == []


def test_per_host_calibration_requires_keyword():
    manager = FakeManager()
    config = make_config(auto_calibration_per_host=True)
    job = CalibratingJob(config, FakeRunner([42]), manager)
    with pytest.raises(ValueError, match="Autocalibration keyword"):
        job.calibrate_if_needed("example.com/dir", {"OTHER": b"x"})