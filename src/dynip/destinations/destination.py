"""Base class for dynip destinations"""

import logging
# abstractmethod only marks methods as abstract in the docs. No ABCMeta.
from abc import abstractmethod
from typing import Optional


class BaseDestination:
    """Base class for all dynip destinations. Sets up the logger and the name
    used in log messages.

    A destination receives each new address through :meth:`update`. Updates
    must be idempotent: if some other destination fails during a cycle, the
    same address is dispatched again on the next cycle, including to the
    destinations that already accepted it.

    :param name: Name of the destination (from config section heading)
    :param log: Logger to use. If ``None``, uses
                ``dynip.destination.<name>``.
    """

    def __init__(self, name: str, log: Optional[logging.Logger] = None):
        #: Destination name (from config section heading)
        self.name: str = name

        if log is None:
            log = logging.getLogger(f'dynip.destination.{self.name}')
        #: Logger (see standard :mod:`logging` module)
        self.log: logging.Logger = log

    @abstractmethod
    def update(self, address: str) -> None:
        """Apply the new address to this destination.

        **Must be overridden by subclasses.**

        :param address: The new IPv4 or IPv6 address, as a string
        :raises UpdateError: if the address could not be applied. The address
                             will be dispatched again on the next cycle.
        """
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"
