"""Helper functions for dynip"""

from .getifaceaddrs import get_iface_addrs

__all__ = [
    "get_iface_addrs",
]
