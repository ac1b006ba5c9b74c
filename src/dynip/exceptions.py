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

"""All dynip exceptions"""


class DynipException(Exception):
    """Base class for all dynip exceptions"""


class DynipSetupError(DynipException):
    """Base class for dynip exceptions that happen during startup"""


class ConfigError(DynipSetupError):
    """Raised when the configuration is malformed or has other errors"""


class ProbeError(DynipException):
    """Raised when the current address could not be observed. Aborts the
    current cycle and clears the stored state."""


class InterfaceNotFoundError(ProbeError):
    """Raised when the monitored interface does not exist"""


class NoAddressError(ProbeError):
    """Raised when the monitored interface has no usable address"""


class ResolutionFailedError(ProbeError):
    """Raised when the external address lookup could not be completed"""


class ProbeTimeoutError(ProbeError):
    """Raised when the external address lookup ran out of time"""


class StateIOError(DynipException):
    """Raised when the stored state could not be read or written"""


class UpdateError(DynipException):
    """Destinations should raise when an attempt to apply a new address fails.
    The address will be dispatched again on the next cycle."""


class ZoneNotFoundError(UpdateError):
    """Raised when a configured DNS zone does not exist at the provider"""


class RecordNotFoundError(UpdateError):
    """Raised when no address record with the expected name exists in a
    zone"""


class TemplateError(UpdateError):
    """Raised when a template could not be read or rendered"""
