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

"""dynip configuration parsing"""

import configparser
import pathlib
from importlib.metadata import version
from typing import Callable, Dict, TextIO, Union

from .exceptions import ConfigError


USER_AGENT = f"dynip/{version('dynip')}"

DEFAULT_INTERVAL = 5
DEFAULT_STATE = 'memory'
DEFAULT_LOGFILE = 'syslog'
DEFAULT_LOG_LEVEL = 'info'

LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')


class Config:
    """dynip configuration data

    :param main: Global configuration (from the ``[dynip]`` section)
    :param destinations: Destination configurations (from
                         ``[destination.<name>]`` sections), in the order they
                         appear in the file
    """

    def __init__(self,
                 main: Dict[str, str],
                 destinations: Dict[str, Dict[str, str]]):
        #: Dict containing global configuration (from the ``[dynip]`` section)
        self.main: Dict[str, str] = main

        #: Destination configurations (from ``[destination.<name>]``
        #: sections). Dispatch order is the order of this dict.
        self.destinations: Dict[str, Dict[str, str]] = destinations

        self._validated = False

    @property
    def interval(self) -> int:
        """Minutes between address checks"""
        return int(self.main['interval'])

    @property
    def logfile(self) -> str:
        return self.main['logfile']

    @logfile.setter
    def logfile(self, value: str):
        self.main['logfile'] = value

    @property
    def log_level(self) -> str:
        return self.main['log_level']

    def _fill_defaults(self) -> None:
        """Fill in defaults if they are not yet set"""
        self.main.setdefault('interval', str(DEFAULT_INTERVAL))
        self.main.setdefault('state', DEFAULT_STATE)
        self.main.setdefault('logfile', DEFAULT_LOGFILE)
        self.main.setdefault('log_level', DEFAULT_LOG_LEVEL)

    def _validate_main(self) -> None:
        external = self.main.get('external', 'false').lower()
        if external not in ('true', 'on', 'yes', '1',
                            'false', 'off', 'no', '0'):
            raise ConfigError("Config option 'external' must be boolean "
                              "(true/yes/on/1/false/no/off/0)")
        if external in ('false', 'off', 'no', '0') and \
                self.main.get('iface', '') == '':
            raise ConfigError("Config option 'iface' is required unless "
                              "'external' is set")

        try:
            interval = int(self.main['interval'])
        except ValueError:
            raise ConfigError("Config option 'interval' must be an integer "
                              "number of minutes") from None
        if interval <= 0:
            raise ConfigError("Config option 'interval' must be greater than "
                              "zero (minutes)")

        state = self.main['state'].lower()
        if state not in ('memory', 'file'):
            raise ConfigError(f"State type {self.main['state']} is not "
                              "supported")
        if state == 'file' and self.main.get('state_path', '') == '':
            raise ConfigError("Config option 'state_path' is required for "
                              "file state")

        if self.main['log_level'].lower() not in LOG_LEVELS:
            raise ConfigError("Config option 'log_level' must be one of " +
                              ", ".join(LOG_LEVELS))

    def _validate_destination_types(
        self,
        validate_type: Callable[[str], bool],
    ) -> None:
        """Verify that destination types are assigned and that they are
        valid

        :raises ConfigError: if any type is missing or invalid
        """
        if not self.destinations:
            raise ConfigError("No destination configured. Need at least one.")
        for name, config in self.destinations.items():
            try:
                type_ = config['type']
            except KeyError:
                raise ConfigError(f"Destination {name} requires a "
                                  "type") from None
            if not validate_type(type_):
                raise ConfigError(f"No destination of type {type_}")

    def validate(self, validate_destination_type: Callable[[str], bool]):
        """Fill in defaults and validate the configuration. Options specific
        to a destination type are validated when the destination is created.

        :param validate_destination_type: A callable returning whether the
                                          given destination type exists
        :raises ConfigError: if the configuration is invalid
        """
        if self._validated:
            return

        self._fill_defaults()
        self._validate_main()
        self._validate_destination_types(validate_destination_type)

        self._validated = True

    def __str__(self):
        if self.main.get('external', 'false').lower() in ('true', 'on',
                                                          'yes', '1'):
            source = "external address"
        else:
            source = f"iface {self.main.get('iface')!r}"
        destinations = ", ".join(
            f"{name} ({config.get('type')})"
            for name, config in self.destinations.items()
        )
        return (f"updates every: {self.main.get('interval')}m; "
                f"source: {source}; state: {self.main.get('state')}; "
                f"destinations: {destinations}")


def _process_config(config: configparser.ConfigParser) -> Config:
    """Process the given :class:`~configparser.ConfigParser` into a
    :class:`Config`

    :param config: The configuration to process
    :raises ConfigError: if the configuration has unknown sections
    :returns: the processed configuration
    """
    # Note: ConfigParser already handles catching duplicate sections and
    #   duplicate keys

    main: Dict[str, str] = dict()
    destinations: Dict[str, Dict[str, str]] = dict()

    for section in config.sections():
        if section == 'dynip':
            main.update(config[section])
            continue

        kind, _, name = section.partition('.')
        if kind == 'destination' and name != '':
            destinations[name] = dict(config[section])
        else:
            raise ConfigError("Config section %s is not a destination "
                              "section" % section)

    return Config(main, destinations)


def read_config(configfile: TextIO) -> Config:
    """Read configuration in from the given file

    :param configfile: Filelike object to read the config from
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: A :class:`Config` ready to be passed to
             :class:`~dynip.DynipManager`
    """
    config = configparser.ConfigParser()
    try:
        config.read_file(configfile)
    except configparser.Error as e:
        raise ConfigError("Error in config file: %s" % e) from e
    except OSError as e:
        raise ConfigError("Could not read config file: %s" %
                          e.strerror) from e

    return _process_config(config)


def read_config_from_path(filename: Union[str, pathlib.Path]) -> Config:
    """Read configuration from the named file or :class:`~pathlib.Path`

    :param filename: Filename or path to read from
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: A :class:`Config` ready to be passed to
             :class:`~dynip.DynipManager`
    """
    try:
        with open(filename, 'r') as f:
            return read_config(f)
    except OSError as e:
        raise ConfigError("Could not read config file %s: %s" %
                          (filename, e.strerror)) from e
