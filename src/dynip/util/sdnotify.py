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

"""Minimal pure Python implementation of sd_notify(3)

The notify protocol is a newline-separated list of ``VAR=value`` pairs sent
as a single datagram to the Unix socket named in ``$NOTIFY_SOCKET``. On
systems without systemd, or when no socket was provided, every function here
does nothing.
"""

import os
import socket


def _notify(msg: bytes) -> None:
    """Send the given bytes to the systemd notify socket, if there is one

    :raises OSError: if the socket exists but sending failed
    """
    address = os.environ.get('NOTIFY_SOCKET')
    if not address or not hasattr(socket, 'AF_UNIX'):
        return
    if not os.path.isdir('/run/systemd/system/'):
        return
    if address[0] == '@':
        # Linux abstract namespace
        address = '\0' + address[1:]

    sock_type = socket.SOCK_DGRAM | getattr(socket, 'SOCK_CLOEXEC', 0)
    with socket.socket(socket.AF_UNIX, sock_type) as sock:
        sock.connect(address)
        sock.send(msg)


def _args_to_bytes(**kwargs) -> bytes:
    """Encode keyword args as ``KEY=value`` lines

    :raises UnicodeEncodeError: if a value cannot be encoded as UTF-8
    """
    msg = bytearray()
    for arg, val in kwargs.items():
        msg += arg.encode('utf-8') + b'=' + str(val).encode('utf-8') + b'\n'
    return bytes(msg)


def ready():
    """Tell systemd the daemon has finished starting up"""
    _notify(_args_to_bytes(READY=1))


def stopping():
    """Tell systemd the daemon is shutting down"""
    _notify(_args_to_bytes(STOPPING=1))

