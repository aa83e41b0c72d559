"""Automatic calibration of response filters using random requests."""

from __future__ import annotations

import json
import logging
import os

from webfuzzer.request import base_request
from webfuzzer.util import AUTOCALIB_DIR, file_exists, host_url_from_request, merge_maps, random_string

log = logging.getLogger(__name__)

# Response attribute, and the filter built from it, from most to least specific.
_CALIBRATION_FIELDS = (
    ("content_length", "size"),
    ("content_words", "word"),
    ("content_lines", "line"),
)


def _load_strategy(path: str) -> dict[str, list[str]]:
    with open(path, "rb") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError("strategy must be a JSON object")
    strategy: dict[str, list[str]] = {}
    for key, values in data.items():
        if values is None:
            strategy[key] = []
            continue
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError(f"strategy entry {key!r} must be a list of strings")
        strategy[key] = list(values)
    return strategy


def autocalibration_strings(config, output, autocalib_dir=None) -> dict[str, list[str]]:
    """Return the calibration inputs, grouped by strategy entry.

    Custom strings take precedence; otherwise every configured strategy file
    is read and merged. Unreadable strategies are reported and skipped.
    """
    if config.auto_calibration_strings:
        return {"custom": list(config.auto_calibration_strings)}
    directory = AUTOCALIB_DIR if autocalib_dir is None else autocalib_dir
    inputs: dict[str, list[str]] = {}
    for strategy in config.auto_calibration_strategies:
        path = os.path.join(directory, strategy + ".json")
        try:
            loaded = _load_strategy(path)
        except (OSError, ValueError) as err:
            output.warning(f'Skipping strategy "{strategy}" because of error: {err}\n')
            continue
        inputs = merge_maps(inputs, loaded)
    return inputs


def _write_strategy(path: str, strategy: dict[str, list[str]]) -> None:
    payload = json.dumps(strategy, sort_keys=True, separators=(",", ":")).encode()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o640)
    with os.fdopen(fd, "wb") as fh:
        fh.write(payload)


def setup_default_autocalibration_strategies(autocalib_dir=None) -> None:
    """Write the built-in strategy files that do not exist yet, one per call."""
    directory = AUTOCALIB_DIR if autocalib_dir is None else autocalib_dir
    basic = {
        "basic_admin": ["admin" + random_string(16), "admin" + random_string(8)],
        "htaccess": [".htaccess" + random_string(16), ".htaccess" + random_string(8)],
        "basic_random": [random_string(16), random_string(8)],
    }
    advanced = {
        "basic_admin": ["admin" + random_string(16), "admin" + random_string(8)],
        "htaccess": [".htaccess" + random_string(16), ".htaccess" + random_string(8)],
        "basic_random": [random_string(16), random_string(8)],
        "admin_dir": ["admin" + random_string(16) + "/", "admin" + random_string(8) + "/"],
        "random_dir": [random_string(16) + "/", random_string(8) + "/"],
    }
    basic_file = os.path.join(directory, "basic.json")
    if not file_exists(basic_file):
        _write_strategy(basic_file, basic)
        return
    advanced_file = os.path.join(directory, "advanced.json")
    if not file_exists(advanced_file):
        _write_strategy(advanced_file, advanced)


class CalibrationMixin:
    """Auto-calibration behaviour for a job.

    The class using it provides ``config``, ``runner``, ``output``,
    ``is_match(resp)``, ``_inc_error()`` and a ``_calib_lock``.
    """

    autocalib_dir: str | None = None

    def _calibration_request(self, inputs: dict[str, bytes]):
        """Send one calibration request; return the response if it would be matched, else None."""
        basereq = base_request(self.config)
        try:
            req = self.runner.prepare(inputs, basereq)
        except Exception as err:  # runner failures are reported, not fatal
            self.output.error(f"Encountered an error while preparing autocalibration request: {err}\n")
            self._inc_error()
            log.info("%s", err)
            return None
        try:
            resp = self.runner.execute(req)
        except Exception as err:
            self.output.error(f"Encountered an error while executing autocalibration request: {err}\n")
            self._inc_error()
            log.info("%s", err)
            return None
        # Only calibrate on responses that would otherwise be matched.
        if self.is_match(resp):
            return resp
        return None

    def calibrate_for_host(self, host: str, baseinput: dict[str, bytes]) -> None:
        """Run calibration for one host unless it has been done already."""
        manager = self.config.matcher_manager
        if manager.calibrated_for_domain(host):
            return
        keyword = self.config.auto_calibration_keyword
        if baseinput.get(keyword) is None:
            raise ValueError(f'Autocalibration keyword "{keyword}" not found in the request.')
        strings = autocalibration_strings(self.config, self.output, self.autocalib_dir)
        inputs = dict(baseinput)
        for values in strings.values():
            responses = []
            for candidate in values:
                inputs[keyword] = candidate.encode()
                resp = self._calibration_request(inputs)
                if resp is None:
                    continue
                responses.append(resp)
                try:
                    self._calibrate_filters(responses, True)
                except ValueError as err:
                    self.output.error(str(err))
        manager.set_calibrated_for_host(host, True)

    def calibrate(self, inputs: dict[str, bytes]) -> None:
        """Run global calibration unless it has been done already."""
        manager = self.config.matcher_manager
        if manager.calibrated():
            return
        keyword = self.config.auto_calibration_keyword
        strings = autocalibration_strings(self.config, self.output, self.autocalib_dir)
        for values in strings.values():
            responses = []
            for candidate in values:
                inputs[keyword] = candidate.encode()
                resp = self._calibration_request(inputs)
                if resp is not None:
                    responses.append(resp)
            try:
                self._calibrate_filters(responses, False)
            except ValueError:
                pass
        manager.set_calibrated(True)

    def calibrate_if_needed(self, host: str, inputs: dict[str, bytes]) -> None:
        """Calibrate filters if auto-calibration is enabled and not yet done."""
        with self._calib_lock:
            if not self.config.auto_calibration:
                return
            if self.config.auto_calibration_per_host:
                self.calibrate_for_host(host, inputs)
            else:
                self.calibrate(inputs)

    def _calibrate_filters(self, responses, per_host: bool) -> None:
        """Add a filter for the most specific value the responses share."""
        manager = self.config.matcher_manager
        if responses:
            first = responses[0]
            for attr, filter_name in _CALIBRATION_FIELDS:
                baseline = getattr(first, attr)
                if any(getattr(r, attr) != baseline for r in responses):
                    continue
                if per_host:
                    domain = host_url_from_request(first.request)
                    existing = manager.filters_for_domain(domain)
                else:
                    existing = manager.filters()
                for provider in existing.values():
                    try:
                        if provider.filter(first):
                            return  # already filtered
                    except Exception:
                        continue
                try:
                    if per_host:
                        manager.add_per_domain_filter(domain, filter_name, str(baseline))
                    else:
                        manager.add_filter(filter_name, str(baseline), False)
                except ValueError:
                    pass
                return
        raise ValueError("No common filtering values found")