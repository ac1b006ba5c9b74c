"""Built in destinations and the destination base class"""

from .destination import BaseDestination

from . import cloudflare
from . import file

destinations = {
    'cloudflare': cloudflare.CloudflareDestination,
    'file': file.FileDestination,
}

__all__ = [
    'BaseDestination',
]
