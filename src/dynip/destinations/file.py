"""dynip destination that renders a template file with the new address"""

import ipaddress
import os
import os.path
import string
import tempfile
from typing import Optional, TextIO, cast

from ..exceptions import ConfigError, TemplateError, UpdateError
from .destination import BaseDestination


class FileDestination(BaseDestination):
    """dynip destination that renders a template with the new address and
    writes the result out, e.g. to produce a zone file snippet or a config
    file for another service.

    Templates use :class:`string.Template` syntax. Available placeholders:

    - ``$address``: the new address
    - ``$ipv4``: the new address if it is IPv4, otherwise empty
    - ``$ipv6``: the new address if it is IPv6, otherwise empty

    :param name: Name of the destination (from config section heading)
    :param config: Dict of config options for this destination
    :param output_stream: Writable text stream to use instead of the
                          ``output`` config option
    :param log: Logger to use

    :raises ConfigError: if the configuration is invalid
    """

    def __init__(self, name, config, output_stream: Optional[TextIO] = None,
                 log=None):
        super().__init__(name, log)

        # Path to the template. It is re-read on every update, so it can be
        # edited while dynip runs.
        try:
            self.template_path = config['template']
        except KeyError:
            self.log.critical("'template' config option is required")
            raise ConfigError(f"{self.name} destination requires 'template' "
                              "config option") from None

        # Path of the rendered output. Replaced atomically on each update.
        self.output_path: Optional[str] = config.get('output')
        self.output_stream: Optional[TextIO] = output_stream
        if self.output_path is None and self.output_stream is None:
            self.log.critical("'output' config option is required")
            raise ConfigError(f"{self.name} destination requires 'output' "
                              "config option")

    def _render(self, address: str) -> str:
        try:
            with open(self.template_path, 'r') as f:
                template = string.Template(f.read())
        except OSError as e:
            self.log.error("Could not read template %s: %s",
                           self.template_path, e.strerror)
            raise TemplateError(f"Could not read template "
                                f"{self.template_path}: {e.strerror}") from e

        try:
            version = ipaddress.ip_address(address).version
        except ValueError:
            version = None
        try:
            return template.substitute(
                address=address,
                ipv4=address if version == 4 else '',
                ipv6=address if version == 6 else '',
            )
        except (KeyError, ValueError) as e:
            self.log.error("Could not render template %s: %s",
                           self.template_path, e)
            raise TemplateError(f"Could not render template "
                                f"{self.template_path}: {e}") from e

    def _write_file(self, path: str, contents: str) -> None:
        directory = os.path.dirname(os.path.abspath(path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=directory,
                prefix='.' + os.path.basename(path) + '.',
                suffix='.tmp',
            )
            with os.fdopen(fd, 'w') as f:
                f.write(contents)
            os.replace(tmp_path, path)
        except OSError as e:
            self.log.error("Could not write %s: %s", path, e.strerror)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise UpdateError(f"Destination {self.name} could not write "
                              f"{path}: {e.strerror}") from e

    def update(self, address: str) -> None:
        rendered = self._render(address)

        if self.output_stream is not None:
            self.log.debug("Writing rendered template to stream")
            try:
                self.output_stream.write(rendered)
                self.output_stream.flush()
            except (OSError, ValueError) as e:
                self.log.error("Could not write to output stream: %s", e)
                raise UpdateError(f"Destination {self.name} could not write "
                                  f"its output: {e}") from e
        else:
            self.log.debug("Writing rendered template to %s",
                           self.output_path)
            self._write_file(cast(str, self.output_path), rendered)
        self.log.info("Rendered %s with address %s",
                      self.template_path, address)
