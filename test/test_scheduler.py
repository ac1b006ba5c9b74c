import threading
import time

import pytest

import doubles
from dynip import CycleResult, Outcome, Scheduler, SchedulerState


@pytest.fixture
def scheduler_factory():
    """Fixture creating schedulers that are stopped again after the test"""
    schedulers = []

    def factory(cycle, interval):
        s = Scheduler(cycle, interval)
        schedulers.append(s)
        return s
    yield factory
    for s in schedulers:
        s.stop(timeout=5)


def test_bad_interval():
    with pytest.raises(ValueError):
        Scheduler(doubles.CountingCycle(), 0)


def test_first_cycle_runs_before_start_returns(scheduler_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 60)

    s.start()

    assert cycle.runs == 1
    assert s.state == SchedulerState.RUNNING


def test_periodic_cycles(scheduler_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 0.05)

    s.start()

    assert cycle.wait_for_runs(4)


def test_no_cycles_after_stop(scheduler_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 0.02)
    s.start()
    assert cycle.wait_for_runs(2)

    s.stop()
    runs = cycle.runs
    time.sleep(0.1)

    assert s.state == SchedulerState.STOPPED
    assert cycle.runs == runs


def test_stop_does_not_wait_for_interval(scheduler_factory):
    s = scheduler_factory(doubles.CountingCycle(), 3600)
    s.start()

    start = time.monotonic()
    s.stop()

    assert time.monotonic() - start < 5
    assert s.state == SchedulerState.STOPPED


def test_trigger_runs_cycle_early(scheduler_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 3600)
    s.start()

    s.trigger()

    assert cycle.wait_for_runs(2)


def test_trigger_when_stopped_does_nothing():
    cycle = doubles.CountingCycle()
    s = Scheduler(cycle, 3600)
    s.trigger()
    assert cycle.runs == 0


def test_stop_when_not_started():
    s = Scheduler(doubles.CountingCycle(), 3600)
    s.stop()
    assert s.state == SchedulerState.STOPPED


def test_start_twice(scheduler_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 3600)
    s.start()
    s.start()
    assert cycle.runs == 1


def test_restart_after_stop(scheduler_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 3600)
    s.start()
    s.stop()
    s.start()
    assert cycle.runs == 2
    assert s.state == SchedulerState.RUNNING


def test_cycle_exception_does_not_end_loop(scheduler_factory):
    cycle = doubles.CountingCycle(error=RuntimeError("boom"))
    s = scheduler_factory(cycle, 0.02)

    s.start()

    assert cycle.wait_for_runs(3)
    assert s.state == SchedulerState.RUNNING


def test_join_returns_after_stop(scheduler_factory):
    s = scheduler_factory(doubles.CountingCycle(), 3600)
    s.start()
    stopper = threading.Timer(0.05, s.stop)
    stopper.start()

    s.join()

    stopper.join()
    assert s.state == SchedulerState.STOPPED


def test_stop_during_first_cycle():
    """A stop requested while the first cycle runs means no thread starts"""
    class StoppingCycle:
        def __init__(self):
            self.scheduler = None
            self.runs = 0

        def run(self):
            self.runs += 1
            self.scheduler.stop()
            return CycleResult(Outcome.UNCHANGED)

    cycle = StoppingCycle()
    s = Scheduler(cycle, 0.01)
    cycle.scheduler = s

    s.start()
    time.sleep(0.05)

    assert cycle.runs == 1
    assert s.state == SchedulerState.STOPPED


def test_cycles_never_overlap(scheduler_factory):
    class OverlapCycle:
        def __init__(self):
            self.active = 0
            self.overlapped = False
            self.counter = doubles.CountingCycle()

        def run(self):
            self.active += 1
            if self.active > 1:
                self.overlapped = True
            time.sleep(0.01)
            self.active -= 1
            return self.counter.run()

    cycle = OverlapCycle()
    s = scheduler_factory(cycle, 0.005)
    s.start()
    for _ in range(5):
        s.trigger()
        time.sleep(0.005)

    assert cycle.counter.wait_for_runs(5)
    assert not cycle.overlapped


@pytest.fixture
def reentrant_thread_factory(mocker):
    """Patch thread creation in the scheduler so ``callback`` runs on the
    starting thread while :meth:`Scheduler.start` holds its lock, the way a
    signal handler would. Returns a function to set the callback."""
    real_thread = threading.Thread
    callbacks = []

    def make_thread(*args, **kwargs):
        for callback in callbacks:
            callback()
        return real_thread(*args, **kwargs)
    mocker.patch('dynip.scheduler.threading.Thread', side_effect=make_thread)
    return callbacks.append


def test_trigger_while_start_holds_lock(scheduler_factory,
                                        reentrant_thread_factory):
    cycle = doubles.CountingCycle()
    s = scheduler_factory(cycle, 3600)
    starter = threading.Thread(target=s.start)
    reentrant_thread_factory(s.trigger)

    starter.start()
    starter.join(5)

    assert not starter.is_alive()
    assert s.state == SchedulerState.RUNNING
    assert cycle.wait_for_runs(2)


def test_stop_while_start_holds_lock(reentrant_thread_factory):
    cycle = doubles.CountingCycle()
    s = Scheduler(cycle, 0.01)
    starter = threading.Thread(target=s.start)
    reentrant_thread_factory(lambda: s.stop(timeout=5))

    starter.start()
    starter.join(5)

    assert not starter.is_alive()
    assert s.state == SchedulerState.STOPPED
    s.join()
    time.sleep(0.05)
    assert cycle.runs == 1


def test_stop_from_lock_holder_joins_thread(scheduler_factory):
    """stop() called while the same thread holds the lock still ends the
    background thread"""
    s = scheduler_factory(doubles.CountingCycle(), 3600)
    s.start()

    with s._lock:
        s.stop(timeout=5)

    assert s.state == SchedulerState.STOPPED


class BlockingCycle:
    """First run returns at once. Later runs wait for ``release``."""

    def __init__(self):
        self.runs = 0
        self.entered = threading.Event()
        self.release = threading.Event()

    def run(self):
        self.runs += 1
        if self.runs > 1:
            self.entered.set()
            self.release.wait(5)
        return CycleResult(Outcome.UNCHANGED)


def test_stop_timeout_then_retry(scheduler_factory):
    cycle = BlockingCycle()
    s = scheduler_factory(cycle, 3600)
    s.start()
    s.trigger()
    assert cycle.entered.wait(5)

    s.stop(timeout=0.05)
    assert s.state == SchedulerState.STOPPING
    s.start()
    assert cycle.runs == 2

    cycle.release.set()
    s.stop(timeout=5)
    assert s.state == SchedulerState.STOPPED

    s.start()
    assert cycle.runs == 3
    assert s.state == SchedulerState.RUNNING
