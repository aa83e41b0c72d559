"""Options, configuration, request templating, matching logic, calibration, rate limiting and job control for web fuzzing."""

__version__ = "2.1.0"