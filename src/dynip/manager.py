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

"""dynip manager: builds the probe, state store, destinations, and scheduler
from the configuration"""

import logging
import os
import os.path
from typing import List

from . import configuration
from . import destinations
from .cycle import Cycle
from .exceptions import ConfigError, DynipSetupError
from .probe import create_probe
from .scheduler import Scheduler
from .state import FileState, create_state


class DynipManager:
    """Manages the rest of the dynip system. Creates the probe, state store,
    and destinations, and runs the update cycle on a schedule.

    :param config: A :class:`~dynip.Config` with the configuration to use

    :raises ConfigError: if configuration is not valid
    :raises DynipSetupError: if the state file location is not usable
    """

    def __init__(self, config: configuration.Config):
        self.log = logging.getLogger('dynip')

        try:
            config.validate(validate_destination_type)
        except ConfigError as e:
            self.log.critical("Config error: %s", e)
            raise
        self.config = config

        self.probe = create_probe(config.main,
                                  logging.getLogger('dynip.probe'))
        self.state = create_state(config.main,
                                  logging.getLogger('dynip.state'))
        if isinstance(self.state, FileState):
            self._check_state_path(self.state.path)

        self.destinations: List[
            destinations.BaseDestination
        ] = self._create_destinations()

        self.cycle = Cycle(self.probe, self.state, self.destinations,
                           logging.getLogger('dynip.cycle'))
        self.scheduler = Scheduler(self.cycle, config.interval * 60,
                                   logging.getLogger('dynip.scheduler'))

    def _check_state_path(self, path: str) -> None:
        """Make sure the state file's directory exists and is writable

        :raises DynipSetupError: if not
        """
        directory = os.path.dirname(os.path.abspath(path))
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            self.log.critical("Could not create state directory %s: %s",
                              directory, e.strerror)
            raise DynipSetupError(f"Could not create state directory "
                                  f"{directory}: {e.strerror}") from e
        if not os.access(directory, os.W_OK):
            self.log.critical("State directory %s is not writable", directory)
            raise DynipSetupError(f"State directory {directory} is not "
                                  "writable")

    def _create_destinations(self) -> List[destinations.BaseDestination]:
        """Initialize the destinations, in config order. Assumes the types
        have been validated by :func:`validate_destination_type`."""
        result: List[destinations.BaseDestination] = []
        for name, config in self.config.destinations.items():
            destination_class = destinations.destinations[config['type']]
            result.append(destination_class(name, config))
        return result

    def start(self):
        """Run the first address check and start periodic checks in a
        background thread. Returns after the first check."""
        self.log.info("Starting dynip (%s)", self.config)
        self.scheduler.start()

    def check_now(self):
        """Request an immediate address check. Does not raise any
        exceptions."""
        self.log.info("Checking address on demand")
        self.scheduler.trigger()

    def stop(self):
        """Stop periodic checks gracefully, letting a running check finish.
        This will allow Python to exit naturally.

        Does not raise any exceptions, even if not yet started.
        """
        self.log.info("Stopping dynip...")
        self.scheduler.stop()
        self.log.info("dynip stopped.")

    def wait(self):
        """Block until stopped"""
        self.scheduler.join()


def validate_destination_type(type_: str) -> bool:
    """Check if a destination type exists

    :param type_: The name of a built-in destination type
    :returns: ``True`` if the destination exists, ``False`` otherwise
    """
    return type_ in destinations.destinations
