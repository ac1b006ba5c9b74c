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

"""Helper function to look up IP addresses for the current system's
interfaces"""

import ipaddress
from typing import Dict, List, Tuple, Union, cast

import netifaces

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Sort keys for address classes. Lower sorts first.
_GLOBAL = 0
_PRIVATE = 1
_LINK_LOCAL = 2


def _read_family(if_name: str, family: int) -> List[IPAddress]:
    """Read the addresses of one family from netifaces

    :raises ValueError: if there is no interface with the given name
    """
    # Cast due to lack of type stubs for netifaces
    entries = cast(Dict[int, List[Dict[str, str]]],
                   netifaces.ifaddresses(if_name)).get(family, [])
    # IPv6 link-local addresses carry a %<iface> scope suffix
    return [ipaddress.ip_address(e['addr'].partition('%')[0])
            for e in entries]


def _classify(addr: IPAddress) -> Union[int, None]:
    """Sort key for an address, or ``None`` if it is never usable"""
    if addr.is_loopback or addr.is_unspecified:
        return None
    if addr.is_link_local:
        return _LINK_LOCAL
    if addr.is_private:
        return _PRIVATE
    return _GLOBAL


def _filter_and_order(addrs: List[IPAddress], omit_private: bool,
                      omit_link_local: bool) -> List[IPAddress]:
    keyed = []
    for addr in addrs:
        key = _classify(addr)
        if key is None:
            continue
        if omit_private and key == _PRIVATE:
            continue
        if omit_link_local and key == _LINK_LOCAL:
            continue
        keyed.append((key, addr))
    # Stable sort keeps the interface's own order within a class
    keyed.sort(key=lambda item: item[0])
    return [addr for _, addr in keyed]


def get_iface_addrs(
    if_name: str,
    omit_private: bool = False,
    omit_link_local: bool = True
) -> Tuple[List[ipaddress.IPv4Address], List[ipaddress.IPv6Address]]:
    """Look up the current addresses of the named interface. Loopback and
    unspecified addresses are always left out. The rest are ordered globally
    routable first, then private, then link-local.

    :param if_name: Name of the interface to look up
    :param omit_private: Leave out private addresses (RFC 1918, ULA, etc.)
    :param omit_link_local: Leave out link-local addresses
    :return: A 2-tuple of a list of IPv4Address and a list of IPv6Address
    :raises ValueError: if there is no interface with the given name
    """
    ipv4 = _filter_and_order(_read_family(if_name, netifaces.AF_INET),
                             omit_private, omit_link_local)
    ipv6 = _filter_and_order(_read_family(if_name, netifaces.AF_INET6),
                             omit_private, omit_link_local)
    return (cast(List[ipaddress.IPv4Address], ipv4),
            cast(List[ipaddress.IPv6Address], ipv6))
