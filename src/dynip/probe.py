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

"""Address probes: find out the address that should be propagated"""

import ipaddress
import logging
import time
from abc import abstractmethod
from typing import Dict, Optional

import dns.exception    # type: ignore
import dns.resolver     # type: ignore

from .address import ObservedAddress
from .exceptions import (ConfigError, InterfaceNotFoundError, NoAddressError,
                         ProbeTimeoutError, ResolutionFailedError)
from .util import get_iface_addrs

#: Resolver that answers queries for :data:`EXTERNAL_IP_HOSTNAME` with the
#: address the query came from
OPENDNS_RESOLVER = 'resolver1.opendns.com.'
EXTERNAL_IP_HOSTNAME = 'myip.opendns.com.'

DEFAULT_PROBE_TIMEOUT = 30.0


def _is_true(value: str) -> bool:
    return value.lower() in ('true', 'on', 'yes', '1')


class BaseProbe:
    """Base class for address probes

    :param log: Logger to use. If ``None``, uses the ``dynip.probe`` logger.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        if log is None:
            log = logging.getLogger('dynip.probe')
        self.log: logging.Logger = log

    @abstractmethod
    def probe(self) -> ObservedAddress:
        """Observe the current address. Every call returns a new value.

        **Must be overridden by subclasses.**

        :raises ProbeError: if the address could not be observed
        """
        raise NotImplementedError


class InterfaceProbe(BaseProbe):
    """Reads the address assigned to a local interface. IPv4 is preferred
    over IPv6, and globally routable addresses over private ones. Link-local
    addresses are never used.

    :param iface: Name of the interface
    :param allow_private: Whether private addresses (10.0.0.0/8, fc00::/7,
                          etc.) may be used when there is no globally
                          routable one
    :param log: Logger to use
    """

    def __init__(self, iface: str, allow_private: bool = True,
                 log: Optional[logging.Logger] = None):
        super().__init__(log)
        self.iface: str = iface
        self.allow_private: bool = allow_private

    def probe(self) -> ObservedAddress:
        try:
            ipv4s, ipv6s = get_iface_addrs(self.iface,
                                           omit_private=not self.allow_private)
        except ValueError:
            self.log.error("Interface %s does not exist", self.iface)
            raise InterfaceNotFoundError(
                f"Interface {self.iface} does not exist") from None

        for candidates in (ipv4s, ipv6s):
            if candidates:
                self.log.debug("Interface %s has address %s",
                               self.iface, candidates[0])
                return ObservedAddress.from_ip(candidates[0])

        self.log.warning("Interface %s has no usable address assigned",
                         self.iface)
        raise NoAddressError(f"Interface {self.iface} has no usable address "
                             "assigned")


class ExternalProbe(BaseProbe):
    """Learns the externally visible IPv4 address by asking a resolver that
    reflects the query source back (OpenDNS). Useful behind NAT, where the
    interface address is not the public one.

    :param timeout: Seconds allowed for the whole probe, including looking
                    up the resolver itself
    :param resolver: Hostname of the reflecting resolver
    :param hostname: Name to query on that resolver
    :param log: Logger to use
    """

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT,
                 resolver: str = OPENDNS_RESOLVER,
                 hostname: str = EXTERNAL_IP_HOSTNAME,
                 log: Optional[logging.Logger] = None):
        super().__init__(log)
        self.timeout: float = timeout
        self.resolver: str = resolver
        self.hostname: str = hostname

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            self.log.error("Timed out looking up external address")
            raise ProbeTimeoutError("External address lookup timed out after "
                                    f"{self.timeout} secs")
        return remaining

    def probe(self) -> ObservedAddress:
        deadline = time.monotonic() + self.timeout

        try:
            self.log.debug("Looking up address of resolver %s", self.resolver)
            answer = dns.resolver.resolve(self.resolver, 'A',
                                          lifetime=self._remaining(deadline))
            ns_list = [rec.address for rec in answer]
            self.log.debug("Found address(es) for resolver %s: %s",
                           self.resolver, ns_list)

            resolver = dns.resolver.Resolver(configure=False)
            resolver.nameservers = ns_list
            answer = resolver.resolve(self.hostname, 'A',
                                      lifetime=self._remaining(deadline))
        except dns.exception.Timeout as e:
            self.log.error("Timed out looking up external address: %s", e)
            raise ProbeTimeoutError("External address lookup timed out after "
                                    f"{self.timeout} secs") from e
        except (OSError, dns.exception.DNSException) as e:
            self.log.error("Could not look up external address: %s", e)
            raise ResolutionFailedError("Could not look up external address: "
                                        f"{e}") from e

        for rec in answer:
            try:
                ip = ipaddress.IPv4Address(rec.address)
            except ValueError:
                continue
            self.log.debug("External address is %s", ip)
            return ObservedAddress.from_ip(ip)

        self.log.error("Resolver %s returned no address for %s",
                       self.resolver, self.hostname)
        raise ResolutionFailedError(f"Resolver {self.resolver} returned no "
                                    f"address for {self.hostname}")


def create_probe(main_config: Dict[str, str],
                 log: Optional[logging.Logger] = None) -> BaseProbe:
    """Create the probe selected by the ``[dynip]`` config section: an
    :class:`ExternalProbe` if ``external`` is true, otherwise an
    :class:`InterfaceProbe` for ``iface``

    :raises ConfigError: if the options are missing or malformed
    """
    if _is_true(main_config.get('external', 'false')):
        try:
            timeout = float(main_config.get('probe_timeout',
                                            str(DEFAULT_PROBE_TIMEOUT)))
        except ValueError:
            raise ConfigError("'probe_timeout' config option must be a "
                              "number") from None
        if timeout <= 0:
            raise ConfigError("'probe_timeout' config option must be > 0")
        return ExternalProbe(timeout=timeout, log=log)

    try:
        iface = main_config['iface']
    except KeyError:
        raise ConfigError("'iface' config option is required unless "
                          "'external' is set") from None
    allow_private = _is_true(main_config.get('allow_private', 'true'))
    return InterfaceProbe(iface, allow_private=allow_private, log=log)
