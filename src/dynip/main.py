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

"""Command line entry point for running dynip as a daemon"""

import argparse
import logging
import logging.handlers
import signal
import sys

from . import configuration, manager
from .exceptions import ConfigError, DynipSetupError
from .util import sdnotify

EXIT_SETUP_ERROR = 1
EXIT_CONFIG_ERROR = 2

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


def parse_args(argv):
    """Parse command line arguments

    :param argv: Either ``None`` or a list of arguments
    :returns: a :class:`argparse.Namespace` containing the parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="dynip",
        description="Watch an address and push changes to DNS records and "
                    "rendered files",
        epilog="Send SIGUSR1 to a running instance to check the address "
               "right away",
    )
    parser.add_argument("-c", "--configfile", default="/etc/dynip.conf",
                        metavar="PATH", help="config file to read "
                                             "(default: %(default)s)")
    parser.add_argument("-d", "--debug-logs", action="store_true",
                        help="log at debug level regardless of log_level")
    parser.add_argument("-s", "--stderr", action="store_true",
                        help="log to stderr, overriding logfile")
    parser.add_argument("-t", "--test-config", action="store_true",
                        help="check the config file, print a summary, and "
                             "exit")
    return parser.parse_args(argv)


def setup_logging(conf, debug=False):
    """Attach a handler to the ``dynip`` logger as the config says

    :param conf: The validated :class:`~dynip.Config`
    :param debug: Log at debug level regardless of the config
    :returns: the ``dynip`` logger
    """
    destination = conf.logfile
    if destination == 'syslog':
        handler = logging.handlers.SysLogHandler(address='/dev/log')
    elif destination == 'stderr':
        handler = logging.StreamHandler()
    else:
        handler = logging.FileHandler(destination)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    log = logging.getLogger('dynip')
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if debug else conf.log_level.upper())
    return log


def install_signal_handlers(dynip_manager, log):
    """SIGINT and SIGTERM stop the manager. SIGUSR1 requests an immediate
    address check."""
    def on_stop(sig, _):
        log.info("Received %s, shutting down", signal.Signals(sig).name)
        sdnotify.stopping()
        dynip_manager.stop()

    def on_check(sig, _):
        log.info("Received %s, checking address", signal.Signals(sig).name)
        dynip_manager.check_now()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, on_stop)
    signal.signal(signal.SIGUSR1, on_check)


def main(argv=None):
    """Main entry point when run as a standalone program

    :param argv: List of arguments. If ``None``, read :data:`sys.argv`.
    """
    args = parse_args(argv)
    try:
        conf = configuration.read_config_from_path(args.configfile)
        conf.validate(manager.validate_destination_type)
    except ConfigError as e:
        print("Config error:", e, file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    if args.test_config:
        print("Config OK:", conf)
        return

    if args.stderr:
        conf.logfile = 'stderr'
    log = setup_logging(conf, args.debug_logs)

    try:
        dynip_manager = manager.DynipManager(conf)
    except ConfigError:
        log.critical("dynip failed to start: bad configuration")
        sys.exit(EXIT_CONFIG_ERROR)
    except DynipSetupError:
        log.critical("dynip failed to start")
        sys.exit(EXIT_SETUP_ERROR)

    # Installed before the first check, which may take a while
    install_signal_handlers(dynip_manager, log)
    dynip_manager.start()
    sdnotify.ready()
    dynip_manager.wait()


if __name__ == '__main__':
    main()
