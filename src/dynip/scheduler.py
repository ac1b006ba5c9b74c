#  dynip - Dynamic Address Propagation Daemon
#  Copyright (C) 2023 Dominick C. Pastore
#
#  This program is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  This program is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Runs the update cycle periodically on a background thread"""

import enum
import logging
import threading
from typing import Optional

from .cycle import Cycle


class SchedulerState(enum.Enum):
    STOPPED = 'stopped'
    RUNNING = 'running'
    STOPPING = 'stopping'


class Scheduler:
    """Runs a :class:`~dynip.cycle.Cycle` once at startup and then every
    ``interval`` seconds until stopped.

    All periodic cycles run on a single background thread, so cycles never
    overlap. Stopping takes effect between cycles: a cycle that is already
    running is allowed to finish.

    :param cycle: The cycle to run
    :param interval: Seconds between cycles
    :param log: Logger to use. If ``None``, uses the ``dynip.scheduler``
                logger.
    """

    def __init__(self, cycle: Cycle, interval: float,
                 log: Optional[logging.Logger] = None):
        if interval <= 0:
            raise ValueError("Scheduler interval must be > 0")
        if log is None:
            log = logging.getLogger('dynip.scheduler')
        self.log: logging.Logger = log
        self.cycle: Cycle = cycle
        self.interval: float = interval

        # Reentrant: signal handlers calling stop() or trigger() run on the
        # main thread, possibly while it already holds the lock. Must lock to
        # change _stop_requested, _state, and _thread.
        self._lock: threading.RLock = threading.RLock()
        # Set to wake the loop early, either to stop or for an on-demand
        # cycle. Which one is decided by _stop_requested.
        self._wakeup: threading.Event = threading.Event()
        self._stop_requested: bool = False
        self._state: SchedulerState = SchedulerState.STOPPED
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    def start(self) -> None:
        """Run the first cycle immediately, then start the background thread
        for periodic cycles. Returns once the first cycle is complete."""
        with self._lock:
            if self._state != SchedulerState.STOPPED:
                self.log.warning("Not starting scheduler: Scheduler is %s",
                                 self._state.value)
                return
            self._stop_requested = False
            self._wakeup.clear()
            self._state = SchedulerState.RUNNING

        self.log.debug("Running initial address check")
        self._run_cycle()

        with self._lock:
            if self._stop_requested:
                # Stopped while the first cycle was running
                self._state = SchedulerState.STOPPED
                return
            thread = threading.Thread(target=self._loop,
                                      name='dynip-scheduler')
            self._thread = thread
        # Outside the lock, so stop() from a signal handler can join it
        thread.start()
        self.log.info("Checking address every %g secs", self.interval)

    def trigger(self) -> None:
        """Request an immediate cycle on the scheduler thread. The periodic
        schedule continues from the end of that cycle."""
        with self._lock:
            if self._state != SchedulerState.RUNNING:
                self.log.warning("Not triggering a check: Scheduler is not "
                                 "running")
                return
            self.log.debug("On-demand check requested")
            self._wakeup.set()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the periodic cycles and wait for the background thread to
        exit. Does not raise, even if not started.

        If the thread does not exit within ``timeout``, the scheduler stays
        :attr:`SchedulerState.STOPPING` and :meth:`start` refuses to run.
        Call :meth:`stop` again to keep waiting.

        :param timeout: Maximum seconds to wait for a running cycle to finish,
                        or ``None`` to wait as long as it takes
        """
        with self._lock:
            if self._state == SchedulerState.STOPPED:
                self.log.warning("Not stopping scheduler: Not running")
                return
            if self._state == SchedulerState.RUNNING:
                self.log.info("Stopping scheduler")
                self._state = SchedulerState.STOPPING
                self._stop_requested = True
                self._wakeup.set()
            thread = self._thread

        # A thread that was created but not yet started sees
        # _stop_requested as soon as it runs
        if thread is not None and thread.is_alive() and \
                thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                self.log.warning("Scheduler thread did not exit within %g "
                                 "secs", timeout)
                return

        with self._lock:
            if self._thread is thread:
                self._state = SchedulerState.STOPPED
                self._thread = None
        self.log.info("Scheduler stopped")

    def join(self) -> None:
        """Block until the scheduler has been stopped"""
        thread = self._thread
        if thread is not None:
            thread.join()

    def _loop(self) -> None:
        # Lock free, so a stop() that holds the lock can still join this
        # thread. _stop_requested is always set before _wakeup.
        while True:
            woken = self._wakeup.wait(self.interval)
            self._wakeup.clear()
            if self._stop_requested:
                self.log.debug("Scheduler loop exiting")
                return
            if woken:
                self.log.debug("Running on-demand address check")
            else:
                self.log.debug("Running periodic address check")
            self._run_cycle()

    def _run_cycle(self) -> None:
        """Run one cycle. Nothing raised by the cycle may end the loop."""
        try:
            result = self.cycle.run()
        except Exception:
            self.log.exception("Unexpected error during address check")
        else:
            self.log.debug("Address check finished: %s",
                           result.outcome.value)
