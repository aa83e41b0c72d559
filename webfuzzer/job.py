"""A fuzzing job: the queue of targets, the worker threads and the stop conditions."""

from __future__ import annotations

import contextlib
import logging
import random
import signal
import threading
from dataclasses import dataclass, field
from datetime import datetime

from webfuzzer.autocalibration import CalibrationMixin
from webfuzzer.history import write_history_entry
from webfuzzer.interfaces import Progress
from webfuzzer.rate import RateThrottle
from webfuzzer.request import Request, base_request, recursion_request, sniper_requests
from webfuzzer.util import host_url_from_request, request_contains_keyword

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class QueueJob:
    """One target in the job queue: a URL, its recursion depth and its base request."""

    url: str = ""
    depth: int = 0
    req: Request = field(default_factory=Request)


class _WaitGroup:
    """Counts outstanding tasks and lets a caller wait for all of them."""

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    def add(self) -> None:
        with self._cond:
            self._count += 1

    def done(self) -> None:
        with self._cond:
            self._count -= 1
            if self._count <= 0:
                self._cond.notify_all()

    def wait(self) -> None:
        with self._cond:
            self._cond.wait_for(lambda: self._count <= 0)


class Job(CalibrationMixin):
    """Ties together the configuration, the input, the runner and the output."""

    history_dir: str | None = None

    def __init__(
        self,
        conf,
        input_provider=None,
        runner=None,
        output=None,
        replay_runner=None,
        scraper=None,
    ):
        self.config = conf
        self.input = input_provider
        self.runner = runner
        self.replay_runner = replay_runner
        self.scraper = scraper
        self.output = output
        self.jobhash = ""
        self.counter = 0
        self.error_counter = 0
        self.spurious_error_counter = 0
        self.total = 0
        self.running = False
        self.running_job = False
        self.paused = False
        self.count_403 = 0
        self.count_429 = 0
        self.error = ""
        self.rate = RateThrottle(conf)
        self.started_at: datetime | None = None
        self.job_started_at: datetime = _now()
        self._queue: list[QueueJob] = []
        self._queue_pos = 0
        self._skip_queue = False
        self._current_depth = 0
        self._calib_lock = threading.Lock()
        self._error_lock = threading.Lock()
        self._unpaused = threading.Event()
        self._unpaused.set()
        self._execution_done = threading.Event()

    # -- counters -------------------------------------------------------

    def _inc_error(self) -> None:
        with self._error_lock:
            self.error_counter += 1
            self.spurious_error_counter += 1

    def _inc_403(self) -> None:
        with self._error_lock:
            self.count_403 += 1

    def _inc_429(self) -> None:
        with self._error_lock:
            self.count_429 += 1

    def _reset_spurious_errors(self) -> None:
        with self._error_lock:
            self.spurious_error_counter = 0

    # -- queue ----------------------------------------------------------

    def delete_queue_item(self, index: int) -> None:
        """Delete a queued job, counted from the currently running one."""
        del self._queue[self._queue_pos + index - 1]

    def queued_jobs(self) -> list[QueueJob]:
        """Return the running job followed by the jobs still queued."""
        return self._queue[max(self._queue_pos - 1, 0):]

    def _jobs_in_queue(self) -> bool:
        return self._queue_pos < len(self._queue)

    def _prepare_queue_job(self) -> None:
        current = self._queue[self._queue_pos]
        self.config.url = current.url
        self._current_depth = current.depth
        found = [kw for kw in self.input.keywords() if request_contains_keyword(current.req, kw)]
        self.input.activate_keywords(found)
        self._queue_pos += 1
        try:
            self.jobhash = write_history_entry(self.config, self.history_dir)
        except (OSError, ValueError, TypeError) as err:
            log.info("Could not write history entry: %s", err)
            self.jobhash = ""

    def skip_queue(self) -> None:
        """Skip the rest of the current job and continue with the next queued one."""
        self._skip_queue = True

    # -- lifecycle ------------------------------------------------------

    def start(self) -> None:
        """Run every job in the queue, then finalize the output."""
        if self.started_at is None:
            self.started_at = _now()
        basereq = base_request(self.config)
        if self.config.input_mode == "sniper":
            reqs = sniper_requests(basereq, self.config.input_providers[0].template)
            self._queue.extend(QueueJob(url=self.config.url, depth=0, req=r) for r in reqs)
            self.total = self.input.total() * len(reqs)
        else:
            self._queue.append(QueueJob(url=self.config.url, depth=0, req=base_request(self.config)))
            self.total = self.input.total()

        try:
            self.running = True
            self.running_job = True
            if not self.config.quiet:
                self.output.banner()
            with self._interrupt_monitor():
                while self._jobs_in_queue():
                    self._prepare_queue_job()
                    self.reset(True)
                    self.running_job = True
                    self._start_execution()
            try:
                self.output.finalize()
            except Exception as err:  # output failures are reported, not fatal
                self.output.error(str(err))
        finally:
            self.stop()

    def reset(self, cycle: bool) -> None:
        """Reset the counters and input position for a new job."""
        self.input.reset()
        self.counter = 0
        self._skip_queue = False
        self.job_started_at = _now()
        if cycle:
            self.output.cycle()
        else:
            self.output.reset()

    def pause(self) -> None:
        """Pause sending requests."""
        if not self.paused:
            self.paused = True
            self._unpaused.clear()
            self.output.info("------ PAUSING ------")

    def resume(self) -> None:
        """Resume sending requests."""
        if self.paused:
            self.paused = False
            self.output.info("------ RESUMING -----")
            self._unpaused.set()

    def stop(self) -> None:
        """Stop the whole process."""
        self.running = False
        self.config.cancel()

    def next(self) -> None:
        """Stop the current job and continue with the next one."""
        self.running_job = False

    @contextlib.contextmanager
    def _interrupt_monitor(self):
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def handler(signum, frame):
            self.error = "Caught keyboard interrupt (Ctrl-C)\n"
            self._unpaused.set()
            self.stop()

        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, handler)
        try:
            yield
        finally:
            for signum, old in previous.items():
                signal.signal(signum, old if old is not None else signal.SIG_DFL)

    # -- execution ------------------------------------------------------

    def _sleep_if_needed(self) -> None:
        delay = self.config.delay
        if not delay.has_delay:
            return
        if delay.is_range:
            seconds = delay.min + random.random() * (delay.max - delay.min)
        else:
            seconds = delay.min
        if seconds > 0:
            self.config.stop_event.wait(seconds)

    def _start_execution(self) -> None:
        self._execution_done.clear()
        progress = threading.Thread(target=self._run_background_tasks, daemon=True)
        progress.start()

        if self._queue_pos > 1:
            if self.config.input_mode == "sniper":
                self.output.info(
                    f"Starting queued sniper job ({self._queue_pos} of {len(self._queue)}) "
                    f"on target: {self.config.url}"
                )
            else:
                self.output.info(f"Starting queued job on target: {self.config.url}")

        limiter = threading.BoundedSemaphore(max(self.config.threads, 1))
        tasks = _WaitGroup()
        basereq = self._queue[self._queue_pos - 1].req
        stopped = False

        while self.input.next() and not self._skip_queue:
            self.check_stop()
            if not self.running:
                stopped = True
                break
            self._unpaused.wait()
            limiter.acquire()
            self.rate.wait()
            inputs = self.input.value()
            position = self.input.position()
            inputs["FFUFHASH"] = self._ffuf_hash(position)
            tasks.add()
            self.counter += 1
            worker = threading.Thread(
                target=self._task_worker,
                args=(inputs, position, basereq, limiter, tasks),
                daemon=True,
            )
            worker.start()
            if not self.running_job:
                self._execution_done.set()
                self.output.warning(self.error)
                return

        tasks.wait()
        self._execution_done.set()
        progress.join()
        self._update_progress()
        if stopped:
            self.output.warning(self.error)

    def _task_worker(self, inputs, position, basereq, limiter, tasks) -> None:
        try:
            started = _now()
            self._run_task(inputs, position, basereq, False)
            self._sleep_if_needed()
            self.rate.tick(started, _now())
        finally:
            tasks.done()
            limiter.release()

    def _run_background_tasks(self) -> None:
        total = self.input.total()
        while self.counter <= total and not self._skip_queue:
            self._unpaused.wait()
            if not self.running:
                break
            self._update_progress()
            if self.counter == total or not self.running_job:
                return
            if self._execution_done.wait(self.config.progress_frequency / 1000):
                return

    def _update_progress(self) -> None:
        self.output.progress(
            Progress(
                started_at=self.job_started_at,
                req_count=self.counter,
                req_total=self.input.total(),
                req_sec=self.rate.current_rate(),
                queue_pos=self._queue_pos,
                queue_total=len(self._queue),
                error_count=self.error_counter,
            )
        )

    def is_match(self, resp) -> bool:
        """Return whether the response passes the matchers and is not filtered out."""
        manager = self.config.matcher_manager
        if self.config.auto_calibration_per_host:
            filters = manager.filters_for_domain(host_url_from_request(resp.request))
        else:
            filters = manager.filters()
        matched = False
        for matcher in manager.matchers().values():
            try:
                hit = matcher.filter(resp)
            except Exception:
                continue
            if hit:
                matched = True
            elif self.config.matcher_mode == "and":
                return False
        if not matched:
            return False
        for provider in filters.values():
            try:
                filtered = provider.filter(resp)
            except Exception:
                continue
            if filtered:
                if self.config.filter_mode == "or":
                    return False
            elif self.config.filter_mode == "and":
                return True
        if filters and self.config.filter_mode == "and":
            return False
        return True

    def _ffuf_hash(self, position: int) -> bytes:
        prefix = self.jobhash[:5] if len(self.jobhash) > 5 else ""
        return f"{prefix}{position:x}".encode()

    def _timeout_info(self, inputs: dict[str, bytes]) -> None:
        manager = self.config.matcher_manager
        message = "".join(
            f"{key} : {value.decode('utf-8', errors='replace')}  // " for key, value in inputs.items()
        )
        if "time" in manager.matchers():
            self.output.info("Timeout while 'time' matcher is active: " + message)
        elif "time" in manager.filters():
            self.output.info("Timeout while 'time' filter is active: " + message)

    def _run_task(self, inputs, position, basereq, retried: bool) -> None:
        try:
            req = self.runner.prepare(inputs, basereq)
        except Exception as err:
            self.output.error(f"Encountered an error while preparing request: {err}\n")
            self._inc_error()
            log.info("%s", err)
            return
        req.position = position

        try:
            resp = self.runner.execute(req)
        except Exception as err:
            if retried:
                self._inc_error()
                log.info("%s", err)
            else:
                self._run_task(inputs, position, basereq, True)
            if isinstance(err, TimeoutError):
                self._timeout_info(inputs)
            return

        if self.spurious_error_counter > 0:
            self._reset_spurious_errors()
        if (self.config.stop_on_403 or self.config.stop_on_all) and resp.status_code == 403:
            self._inc_403()
        if self.config.stop_on_all and resp.status_code == 429:
            self._inc_429()
        self._unpaused.wait()

        # Calibration needs the actual request to have been made to know the host.
        try:
            self.calibrate_if_needed(host_url_from_request(req), dict(inputs))
        except ValueError as err:
            log.info("%s", err)

        if self.scraper is not None:
            for sres in self.scraper.execute(resp, self.is_match(resp)):
                resp.scraper_data[sres.name] = sres.results
                self._handle_scraper_result(resp, sres)

        if self.is_match(resp):
            if self.replay_runner is not None:
                try:
                    replayreq = self.replay_runner.prepare(inputs, basereq)
                except Exception as err:
                    self.output.error(
                        f"Encountered an error while preparing replayproxy request: {err}\n"
                    )
                    self._inc_error()
                    log.info("%s", err)
                else:
                    replayreq.position = position
                    with contextlib.suppress(Exception):
                        self.replay_runner.execute(replayreq)
            self.output.result(resp)
            self._update_progress()
            if self.config.recursion and self.config.recursion_strategy == "greedy":
                self._handle_greedy_recursion_job(resp)
        elif resp.scraper_data:
            self.output.result(resp)

        if (
            self.config.recursion
            and self.config.recursion_strategy == "default"
            and resp.get_redirect_location(False)
        ):
            self._handle_default_recursion_job(resp)

    @staticmethod
    def _handle_scraper_result(resp, sres) -> None:
        for action in sres.action:
            if action == "output":
                resp.scraper_data[sres.name] = sres.results

    def _depth_allows_recursion(self) -> bool:
        depth = self.config.recursion_depth
        return depth == 0 or self._current_depth < depth

    def _queue_recursion(self, rec_url: str) -> None:
        self._queue.append(
            QueueJob(
                url=rec_url,
                depth=self._current_depth + 1,
                req=recursion_request(self.config, rec_url),
            )
        )
        self.output.info(f"Adding a new job to the queue: {rec_url}")

    def _handle_greedy_recursion_job(self, resp) -> None:
        if self._depth_allows_recursion():
            self._queue_recursion(resp.request.url + "/FUZZ")
        else:
            self.output.warning(f"Maximum recursion depth reached. Ignoring: {resp.request.url}")

    def _handle_default_recursion_job(self, resp) -> None:
        if resp.request.url + "/" != resp.get_redirect_location(True):
            return  # not a directory
        if self._depth_allows_recursion():
            self._queue_recursion(resp.request.url + "/FUZZ")
        else:
            self.output.warning(
                "Directory found, but recursion depth exceeded. Ignoring: "
                f"{resp.get_redirect_location(True)}"
            )

    def check_stop(self) -> None:
        """Stop the job or the process if a stop condition has been met."""
        conf = self.config
        if self.counter > 50:
            if (conf.stop_on_403 or conf.stop_on_all) and self.count_403 / self.counter > 0.95:
                self.error = "Getting an unusual amount of 403 responses, exiting."
                self.stop()
            if (conf.stop_on_errors or conf.stop_on_all) and self.spurious_error_counter > conf.threads * 2:
                self.error = "Receiving spurious errors, exiting."
                self.stop()
            if conf.stop_on_all and self.count_429 / self.counter > 0.2:
                self.error = "Getting an unusual amount of 429 responses, exiting."
                self.stop()

        if conf.max_time > 0 and self.started_at is not None:
            if int((_now() - self.started_at).total_seconds()) >= conf.max_time:
                self.error = "Maximum running time for entire process reached, exiting."
                self.stop()

        if conf.max_time_job > 0:
            if int((_now() - self.job_started_at).total_seconds()) >= conf.max_time_job:
                self.error = (
                    "Maximum running time for this job reached, continuing with next job if one exists."
                )
                self.next()