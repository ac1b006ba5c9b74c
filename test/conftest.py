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

import pytest

import doubles
import dynip


@pytest.fixture
def destination_factory():
    """Fixture creating a factory for mock destinations. All destinations from
    one factory share a ``calls`` list recording the order of updates."""
    class DestinationFactory:
        def __init__(self):
            self._count = 0
            self.calls = []

        def __call__(self, **kwargs):
            self._count += 1
            return doubles.MockDestination(f'mock_destination_{self._count}',
                                           calls=self.calls, **kwargs)
    return DestinationFactory()


@pytest.fixture
def memory_state():
    """Fixture creating an empty :class:`~dynip.MemoryState`"""
    return dynip.MemoryState()


@pytest.fixture
def file_state(tmp_path):
    """Fixture creating a :class:`~dynip.FileState` with no file yet"""
    return dynip.FileState(tmp_path / 'state.json')


@pytest.fixture(params=['memory', 'file'])
def any_state(request, tmp_path):
    """Fixture creating each kind of state store in turn, already reset"""
    if request.param == 'memory':
        state = dynip.MemoryState()
    else:
        state = dynip.FileState(tmp_path / 'state.json')
    state.reset()
    return state
