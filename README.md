# webfuzzer

`webfuzzer` is a library of the pieces a web fuzzer is built from. It turns
fuzzing options into a checked configuration, builds requests from
templates, decides whether a response is a match, calibrates filters
against random requests, keeps to a request rate, records a job history,
and runs queued jobs, including recursive ones.

It needs Python 3.11 or later and depends on nothing outside the standard
library.

## Modules

| Module | What it provides |
| --- | --- |
| `webfuzzer.util` | `MultiError`, `ValueRange`, `random_string`, `uniq_strings`, `merge_maps`, `file_exists`, `request_contains_keyword`, `host_url_from_request`, `create_config_dir`, `version`, and the configuration directory paths |
| `webfuzzer.request` | `Request` and the helpers `new_request`, `base_request`, `recursion_request`, `copy_request`, `sniper_requests`, `template_locations`, `inject_keyword`, `scrub_templates` |
| `webfuzzer.response` | `Response` with `get_redirect_location`, and `url_equal` |
| `webfuzzer.interfaces` | The protocols `MatcherManager`, `FilterProvider`, `RunnerProvider`, `InputProvider`, `InternalInputProvider`, `OutputProvider`, `Scraper`, and the records `Progress`, `Result`, `ScraperResult` |
| `webfuzzer.optrange` | `OptRange`, a single delay or a range of delays |
| `webfuzzer.options` | `ConfigOptions` and its sections (`HTTPOptions`, `GeneralOptions`, `InputOptions`, `OutputOptions`, `FilterOptions`, `MatcherOptions`), and `read_config` for TOML option files |
| `webfuzzer.config` | `Config`, the checked configuration a job runs with, and `InputProviderConfig` |
| `webfuzzer.parser` | `config_from_options`, `parse_raw_request`, `keyword_present`, `template_present`, `check_or_create_config_dir`, `read_default_config` |
| `webfuzzer.autocalibration` | `autocalibration_strings`, `setup_default_autocalibration_strategies` and `CalibrationMixin` |
| `webfuzzer.history` | `ConfigOptionsHistory`, `write_history_entry`, `search_hash`, `calculate_history_hash`, `history_replayable` |
| `webfuzzer.rate` | `RateThrottle`, which paces requests and measures the real rate |
| `webfuzzer.job` | `Job` and `QueueJob`: running, pausing, stopping, stop conditions and recursion |
| `webfuzzer.help` | `UsageFlag`, `UsageSection` and `usage`, which build the help text |
| `webfuzzer.cli` | `build_parser` and `parse_flags`, which map command-line style flags onto `ConfigOptions` |

## Examples

Value ranges, as used by matchers and filters:

```python
from webfuzzer.util import ValueRange

ValueRange.from_string("200-299")   # ValueRange(min=200, max=299)
ValueRange.from_string("403")       # ValueRange(min=403, max=403)
ValueRange.from_string("9-1")       # raises ValueError
```

Sniper mode marks each place to fuzz with a pair of `§` characters. Each
pair becomes its own request, with `FUZZ` in that place and the markers
removed everywhere else:

```python
from webfuzzer.request import Request, sniper_requests

base = Request(
    method="POST",
    url="https://example.com/item?id=§1§",
    headers={"Content-Type": "application/x-www-form-urlencoded"},
    data=b"name=§widget§",
)
for req in sniper_requests(base, "§"):
    print(req.url, req.data)
# https://example.com/item?id=FUZZ b'name=widget'
# https://example.com/item?id=1 b'name=FUZZ'
```

Delays are one number of seconds or a range to pick from at random:

```python
from webfuzzer.optrange import OptRange

delay = OptRange()
delay.initialize("0.1-2.0")
delay.is_range   # True
```

Options can come from flags given as a list of strings. `-h` prints the
help text and exits with status 0; an unknown or malformed flag prints the
help text and exits with status 2:

```python
from webfuzzer.cli import parse_flags
from webfuzzer.options import ConfigOptions

opts = parse_flags(ConfigOptions(), ["-u", "https://example.org/FUZZ", "-w", "words.txt", "-mc", "200"])
```

or from a TOML file, one table per section (`http`, `general`, `input`,
`matcher`, `filter`, `output`), with keys being the option names without
underscores, matched case-insensitively:

```toml
[http]
url = "https://example.org/FUZZ"

[input]
wordlists = ["words.txt"]
```

```python
import threading

from webfuzzer.options import read_config
from webfuzzer.parser import config_from_options

opts = read_config("fuzz.toml")
conf = config_from_options(opts, threading.Event())
```

`config_from_options` collects every problem it finds and raises them
together as one `MultiError`.

## Running a job

`Job(conf, input_provider, runner, output, replay_runner=None, scraper=None)`
takes objects that follow the protocols in `webfuzzer.interfaces`, and
`conf.matcher_manager` must be set to a `MatcherManager`. `Job.start()` runs
each queued target on worker threads (at most `conf.threads` at once, paced
by `RateThrottle`), writes a history entry per target, applies
auto-calibration when enabled, queues recursive targets, and stops on the
configured 403, 429, error and time limits, or on SIGINT/SIGTERM.

Each request gets a `FFUFHASH` input: the first five characters of the
job's history hash followed by the input position in hex. `search_hash`
maps such a value back to the stored options and the position.

## Defaults

Unless set otherwise, responses with status 200-299, 301, 302, 307, 401,
403, 405 or 500 are matched, 40 requests run at once, a request times out
after 10 seconds, and several wordlists are combined in `clusterbomb`
mode. The other modes are `pitchfork` and `sniper`.

History, scraper and calibration strategy files are kept in a `webfuzzer`
directory under the user's configuration directory. `read_default_config`
reads `webfuzzerrc` from there, or else `~/.webfuzzerrc`.

## What the package does not do

The package has no implementations of the provider protocols: it sends no
HTTP requests itself, reads no wordlists, has no matchers or filters, writes
no output files and has no scraper. It installs no command and has no
interactive console; `webfuzzer.cli` only turns flags into options. To run a
job, supply your own runner, input provider, output provider and matcher
manager.