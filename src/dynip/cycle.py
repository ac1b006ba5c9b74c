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

"""The update cycle: probe, compare, dispatch, commit"""

import enum
import logging
import time
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .address import ObservedAddress, equal
from .destinations import BaseDestination
from .exceptions import ProbeError, StateIOError, UpdateError
from .probe import BaseProbe
from .state import BaseState


class Outcome(enum.Enum):
    """How a cycle ended"""

    #: The address could not be observed. Stored state was reset.
    PROBE_FAILED = 'probe failed'
    #: The address matches the stored state. Nothing was dispatched.
    UNCHANGED = 'unchanged'
    #: Every destination accepted the address and it was committed.
    UPDATED = 'updated'
    #: Some destinations failed. Nothing was committed.
    PARTIALLY_FAILED = 'partially failed'
    #: Every destination failed. Nothing was committed.
    FAILED = 'failed'


class CycleResult(NamedTuple):
    outcome: Outcome
    address: Optional[ObservedAddress] = None
    failed: Tuple[str, ...] = ()
    elapsed: float = 0.0


class Cycle:
    """Runs update cycles against a fixed probe, state store, and list of
    destinations. Owns all three: nothing else may touch the state store or
    call the destinations, and only one cycle may run at a time.

    The stored state only advances when every destination accepted the new
    address. After a partial or total failure, the next cycle sees the same
    difference and dispatches the same address again, so destinations must
    handle repeated updates.

    :param probe: Where to get the current address
    :param state: Where the last committed address is kept
    :param destinations: Destinations to update, in dispatch order
    :param log: Logger to use. If ``None``, uses the ``dynip.cycle`` logger.
    """

    def __init__(self, probe: BaseProbe, state: BaseState,
                 destinations: Sequence[BaseDestination],
                 log: Optional[logging.Logger] = None):
        if log is None:
            log = logging.getLogger('dynip.cycle')
        self.log: logging.Logger = log
        self.probe: BaseProbe = probe
        self.state: BaseState = state
        self.destinations: List[BaseDestination] = list(destinations)

        # Opportunistically load the stored state. If it isn't usable, start
        # from scratch.
        try:
            stored = self.state.get()
        except StateIOError as e:
            self.log.debug("Loading stored state failed (%s). Starting with "
                           "empty state.", e)
            self._reset_state()
        else:
            self.log.debug("Loaded stored state: %s", stored)

    def _reset_state(self) -> None:
        try:
            self.state.reset()
        except StateIOError as e:
            self.log.warning("Failed to reset state: %s", e)

    def run(self) -> CycleResult:
        """Run a single cycle. Does not raise for probe, state, or destination
        failures; they are logged and reflected in the result.

        :return: A :class:`CycleResult` describing what happened
        """
        try:
            candidate = self.probe.probe()
        except ProbeError as e:
            self.log.error("Failed to get current address: %s", e)
            self._reset_state()
            return CycleResult(Outcome.PROBE_FAILED)
        except Exception:
            self.log.exception("Unexpected error getting current address")
            self._reset_state()
            return CycleResult(Outcome.PROBE_FAILED)
        self.log.debug("Current address is %s", candidate)

        try:
            stored = self.state.get()
        except StateIOError as e:
            self.log.warning("Failed to get stored state: %s", e)
            stored = ObservedAddress()

        if equal(stored, candidate):
            self.log.debug("Address unchanged (%s). Nothing to do.",
                           candidate)
            return CycleResult(Outcome.UNCHANGED, candidate)

        self.log.info("Address changed (%s): updating destinations",
                      candidate)
        start = time.monotonic()
        failed = self._dispatch(candidate)
        elapsed = time.monotonic() - start

        if not failed:
            self.log.info("All destinations updated in %.3f secs", elapsed)
            try:
                self.state.set(candidate)
            except StateIOError as e:
                self.log.warning("Failed to store new state: %s", e)
            return CycleResult(Outcome.UPDATED, candidate, (), elapsed)

        if len(failed) == len(self.destinations):
            self.log.error("All destinations failed to update (%.3f secs "
                           "elapsed)", elapsed)
            outcome = Outcome.FAILED
        else:
            self.log.warning("Some destinations failed to update: %s (%.3f "
                             "secs elapsed)", ", ".join(failed), elapsed)
            outcome = Outcome.PARTIALLY_FAILED
        return CycleResult(outcome, candidate, tuple(failed), elapsed)

    def _dispatch(self, candidate: ObservedAddress) -> List[str]:
        """Send the address to every destination, in order, without stopping
        at failures

        :return: Names of the destinations that failed
        """
        address = candidate.primary
        failed = []
        for destination in self.destinations:
            self.log.debug("Running %s", destination.name)
            try:
                destination.update(address)
            except UpdateError as e:
                self.log.error("%s: %s", destination.name, e)
                failed.append(destination.name)
            except Exception:
                self.log.exception("%s: unexpected error", destination.name)
                failed.append(destination.name)
        return failed
