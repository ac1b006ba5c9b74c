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

"""State stores: remember the last address propagated to all destinations"""

# State file format:
#
# {
#     "ipv4": "1.2.3.4",
#     "ipv6": "2001:db8::1"
# }
#
# Either key may be missing, meaning that address family was never observed.
# An empty object is the zero value.

import json
import logging
import os
import os.path
import tempfile
# abstractmethod only marks methods as abstract in the docs. No ABCMeta.
from abc import abstractmethod
from typing import Dict, Optional

from .address import ObservedAddress
from .exceptions import ConfigError, StateIOError


class BaseState:
    """Base class for state stores

    :param log: Logger to use. If ``None``, uses the ``dynip.state`` logger.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        if log is None:
            log = logging.getLogger('dynip.state')
        #: Logger (see standard :mod:`logging` module)
        self.log: logging.Logger = log

    @abstractmethod
    def get(self) -> ObservedAddress:
        """Get the last committed address

        :raises StateIOError: if the state could not be read
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, address: ObservedAddress) -> None:
        """Commit a new address

        :raises StateIOError: if the state could not be written
        """
        raise NotImplementedError

    def reset(self) -> None:
        """Return to the zero value. A subsequent :meth:`get` returns
        ``ObservedAddress()``.

        :raises StateIOError: if the state could not be written
        """
        self.set(ObservedAddress())


class MemoryState(BaseState):
    """Keeps the state in memory. It only lasts as long as the process."""

    def __init__(self, log: Optional[logging.Logger] = None):
        super().__init__(log)
        self._stored: ObservedAddress = ObservedAddress()

    def get(self) -> ObservedAddress:
        return self._stored

    def set(self, address: ObservedAddress) -> None:
        self._stored = address

    def reset(self) -> None:
        self._stored = ObservedAddress()


class FileState(BaseState):
    """Keeps the state in a JSON file. Writes go to a temporary file in the
    same directory which is then renamed over the state file, so the state
    file is never left half written.

    :param path: Path to the state file
    :param log: Logger to use
    """

    def __init__(self, path: str, log: Optional[logging.Logger] = None):
        super().__init__(log)
        #: Path to the state file
        self.path: str = os.fspath(path)

    def get(self) -> ObservedAddress:
        try:
            with open(self.path, 'r') as f:
                contents = json.load(f)
        except json.JSONDecodeError as e:
            self.log.warning("Malformed JSON in state file %s at (%d:%d)",
                             self.path, e.lineno, e.colno)
            raise StateIOError(f"Malformed state file {self.path}") from e
        except FileNotFoundError as e:
            self.log.debug("No state file at %s yet", self.path)
            raise StateIOError(f"State file {self.path} does not "
                               "exist") from e
        except OSError as e:
            self.log.warning("Could not read state file %s (%s)",
                             self.path, e.strerror)
            raise StateIOError(f"Could not read state file {self.path}: "
                               f"{e.strerror}") from e

        try:
            return ObservedAddress.from_dict(contents)
        except ValueError as e:
            self.log.warning("State file %s has unexpected contents: %s",
                             self.path, e)
            raise StateIOError(f"Unexpected contents in state file "
                               f"{self.path}: {e}") from e

    def set(self, address: ObservedAddress) -> None:
        self._write(address.to_dict())

    def _write(self, contents: Dict[str, str]) -> None:
        """Atomically replace the state file with the given contents"""
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory,
                prefix='.' + os.path.basename(self.path) + '.',
                suffix='.tmp',
            )
            with os.fdopen(fd, 'w') as f:
                json.dump(contents, f, sort_keys=True, indent=4)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            self.log.error("Could not write state file %s: %s",
                           self.path, e.strerror)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StateIOError(f"Could not write state file {self.path}: "
                               f"{e.strerror}") from e


def create_state(main_config: Dict[str, str],
                 log: Optional[logging.Logger] = None) -> BaseState:
    """Create the state store selected by the ``state`` option of the main
    config section

    :param main_config: The ``[dynip]`` config section
    :param log: Logger to pass on to the state store
    :raises ConfigError: if the state type is unknown or required options
                         are missing
    """
    state_type = main_config.get('state', 'memory').lower()
    if state_type == 'memory':
        return MemoryState(log)
    if state_type == 'file':
        try:
            path = main_config['state_path']
        except KeyError:
            raise ConfigError("'state_path' config option is required for "
                              "file state") from None
        return FileState(path, log)
    raise ConfigError(f"State type {state_type} is not supported")
