import sched
import threading
import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .ExchangeApi import ApiError
from .Logger import Logger
from .Markets import MarketNotFound
from .Utils import debug_date


@dataclass
class RunState:
    is_running: float | None = None  # start time of the cycle in flight


class RunScheduler:
    """
    Runs `cycle` once at startup, then every `interval` seconds, never two at once.

    Each tick runs on its own thread, so ticks keep coming while a cycle hangs. A
    flag older than interval * reset_after_count is considered frozen and cleared.
    """

    def __init__(
        self,
        cycle: Callable[[], Any],
        log: Logger,
        interval: float = 60,
        reset_after_count: int = 10,
    ) -> None:
        self.cycle = cycle
        self.log = log
        self.interval = interval
        self.reset_after_count = reset_after_count
        self.state = RunState()
        self._lock = threading.Lock()
        self.scheduler = sched.scheduler(time.time, time.sleep)

    def _acquire(self) -> float | None:
        """Marks a cycle as running. Returns its start time, None when this tick must not run one."""
        with self._lock:
            started = self.state.is_running
            if started is None:
                self.state.is_running = time.time()
                return self.state.is_running

            if time.time() > started + self.interval * self.reset_after_count:
                self.log.warn(
                    f"Skip looks to be frozen since {self.reset_after_count} rounds : RESET IT."
                )
                self.state.is_running = None
            else:
                self.log.warn(
                    f"Skip that turn, process is already running! (From: {debug_date(started)})"
                )
            return None

    def _release(self, started: float) -> None:
        """Clears the flag unless a frozen reset handed it to a newer cycle."""
        with self._lock:
            if self.state.is_running == started:
                self.state.is_running = None

    def start(self) -> bool:
        """
        Runs one cycle unless one is already in flight. Returns True if a cycle ran.
        """
        started = self._acquire()
        if started is None:
            return False
        try:
            self.cycle()
            self.log.debug("Complete")
        finally:
            self._release(started)
        return True

    def update(self) -> None:
        """start() for the timer: errors are logged, never raised."""
        try:
            self.start()
        except Exception as ex:
            self._handle_exception(ex)

    def _handle_exception(self, ex: Exception) -> None:
        if isinstance(ex, ApiError):
            self.log.error(f"Caught {ex} reading from exchange API, ignoring.")
        elif isinstance(ex, MarketNotFound):
            self.log.error(f"{ex}. Add a fiat quoted market or ignore the coin in config.")
        else:
            self.log.error(f"Unhandled error: {ex}")
            self.log.debug(traceback.format_exc())

    def _tick(self) -> None:
        self.scheduler.enter(self.interval, 1, self._tick)
        threading.Thread(target=self.update, daemon=True).start()

    def run_forever(self) -> None:
        """Blocks, first cycle runs right away."""
        self.scheduler.enter(0, 1, self._tick)
        self.scheduler.run()
