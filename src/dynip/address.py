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

"""The observed address value type"""

import ipaddress
from typing import Dict, NamedTuple, Optional, Union


class ObservedAddress(NamedTuple):
    """Addresses observed on the monitored interface. Either field may be
    ``None`` if that address family was not observed. The zero value
    (``ObservedAddress()``) has neither."""

    ipv4: Optional[str] = None
    ipv6: Optional[str] = None

    @classmethod
    def from_ip(
        cls,
        ip: Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
    ) -> 'ObservedAddress':
        """Create an :class:`ObservedAddress` holding a single address in the
        field matching its family

        :param ip: The observed address
        """
        if ip.version == 4:
            return cls(ipv4=ip.exploded)
        return cls(ipv6=ip.compressed)

    @classmethod
    def from_dict(cls, d: Dict[str, str]) -> 'ObservedAddress':
        """Create an :class:`ObservedAddress` from its persisted form, a dict
        with optional ``ipv4`` and ``ipv6`` keys

        :raises ValueError: if the dict has unexpected keys or an address is
                            not well-formed
        """
        if not isinstance(d, dict):
            raise ValueError("Stored address must be a JSON object")
        unknown = set(d) - {'ipv4', 'ipv6'}
        if unknown:
            raise ValueError("Unexpected keys in stored address: %s" %
                             ", ".join(sorted(unknown)))

        ipv4 = d.get('ipv4')
        if ipv4 is not None:
            if not isinstance(ipv4, str):
                raise ValueError("Stored IPv4 address must be a string")
            ipaddress.IPv4Address(ipv4)
        ipv6 = d.get('ipv6')
        if ipv6 is not None:
            if not isinstance(ipv6, str):
                raise ValueError("Stored IPv6 address must be a string")
            ipaddress.IPv6Address(ipv6)
        return cls(ipv4=ipv4, ipv6=ipv6)

    def to_dict(self) -> Dict[str, str]:
        """Convert to the persisted form. Families that were never observed
        are left out."""
        d = dict()
        if self.ipv4 is not None:
            d['ipv4'] = self.ipv4
        if self.ipv6 is not None:
            d['ipv6'] = self.ipv6
        return d

    @property
    def primary(self) -> Optional[str]:
        """The address handed to destinations: IPv4 if observed, otherwise
        IPv6, otherwise ``None``"""
        if self.ipv4 is not None:
            return self.ipv4
        return self.ipv6

    def is_empty(self) -> bool:
        return self.ipv4 is None and self.ipv6 is None

    def __str__(self) -> str:
        empty = '<EMPTY>'
        v4 = self.ipv4 if self.ipv4 is not None else empty
        v6 = self.ipv6 if self.ipv6 is not None else empty
        return f"v4={v4}, v6={v6}"


def equal(a: ObservedAddress, b: ObservedAddress) -> bool:
    """Check whether two observed addresses are identical, field by field"""
    return a.ipv4 == b.ipv4 and a.ipv6 == b.ipv6
