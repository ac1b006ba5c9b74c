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

"""dynip, the dynamic address propagation daemon

Top-level module, containing the classes needed to assemble a daemon by hand
or to write tests against one.
"""

from .address import ObservedAddress, equal
from .configuration import Config, read_config, read_config_from_path
from .cycle import Cycle, CycleResult, Outcome
from .destinations import BaseDestination
from .exceptions import (DynipException, DynipSetupError, ConfigError,
                         ProbeError, InterfaceNotFoundError, NoAddressError,
                         ResolutionFailedError, ProbeTimeoutError,
                         StateIOError, UpdateError, ZoneNotFoundError,
                         RecordNotFoundError, TemplateError)
from .manager import DynipManager
from .probe import BaseProbe, InterfaceProbe, ExternalProbe, create_probe
from .scheduler import Scheduler, SchedulerState
from .state import BaseState, MemoryState, FileState, create_state
