#  aaaasync - AAAA record synchronizer for dynamic IPv6 hosts
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

import argparse
import datetime
import logging
import logging.handlers
import os
import os.path
import signal
import sys

from . import configuration, manager
from .addresses import AddressSource
from .directory.cloudflare import CloudflareClient
from .exceptions import AAAASyncException, ConfigError, SetupError

#: Name of the log file inside the configured log directory. Rotated daily.
LOGFILE_NAME = 'aaaasync.log'


class ISOFormatter(logging.Formatter):
    """Formats log lines as ``[<ISO 8601 UTC timestamp>] <message>``"""

    def __init__(self):
        super().__init__('[%(asctime)s] %(message)s')

    def formatTime(self, record, datefmt=None):
        ts = datetime.datetime.fromtimestamp(record.created,
                                             datetime.timezone.utc)
        return ts.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_args(argv):
    """Parse command line arguments

    :param argv: Either ``None`` or a list of arguments
    :returns: a :class:`argparse.Namespace` containing the parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Keep DNS AAAA records in sync with this host's IPv6 "
                    "addresses",
        epilog="SIGUSR1 will cause a running instance to immediately check "
               "and update all records",
    )
    parser.add_argument("-c", "--configfile", default="/etc/aaaasync.conf",
                        help="Path to the config file")
    parser.add_argument("-e", "--env",
                        help="Also read overrides from CONFIGFILE with .ENV "
                             "inserted before the extension")
    parser.add_argument("-d", "--debug-logs", action="store_true",
                        help="Increase verbosity of logging significantly")
    parser.add_argument("-s", "--stderr", action="store_true",
                        help="Log to stderr instead of syslog or file")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true",
                      help="Update once and exit instead of running on a "
                           "schedule")
    mode.add_argument("--list-zones", action="store_true",
                      help="Print the zones (and their IDs) visible to the "
                           "API token and exit")
    mode.add_argument("--show-addresses", action="store_true",
                      help="Print the IPv6 address(es) that would be "
                           "published for each domain and exit")
    return parser.parse_args(argv)


def make_log_handler(logdir: str) -> logging.Handler:
    """Create the log handler for the configured log destination

    :param logdir: ``'syslog'``, ``'stderr'``, or a directory to write daily
                   log files into
    :raises OSError: if the log directory or file cannot be created
    """
    if logdir == 'syslog':
        log_handler: logging.Handler = logging.handlers.SysLogHandler()
        log_handler.setFormatter(logging.Formatter('aaaasync: %(message)s'))
        return log_handler

    if logdir == 'stderr':
        log_handler = logging.StreamHandler()
    else:
        os.makedirs(logdir, exist_ok=True)
        log_handler = logging.handlers.TimedRotatingFileHandler(
            os.path.join(logdir, LOGFILE_NAME), when='midnight', utc=True,
        )
    log_handler.setFormatter(ISOFormatter())
    return log_handler


def list_zones(conf: configuration.Config) -> int:
    """Print every zone visible to the configured API token

    :return: Exit status
    """
    client = CloudflareClient(conf.api_token, conf.endpoint, conf.timeout)
    try:
        zones = client.list_zones()
    except AAAASyncException as e:
        print("Could not list zones:", e, file=sys.stderr)
        return 1
    for name, zone_id in zones:
        print(f"{name}\t{zone_id}")
    return 0


def show_addresses(conf: configuration.Config) -> int:
    """Print the addresses that would be published for each domain

    :return: Exit status
    """
    source = AddressSource()
    status = 0
    for domain in conf.domains:
        where = domain.iface if domain.iface is not None else "any interface"
        resolved = source.addresses_for(domain.iface)
        if resolved is None:
            print(f"{domain.name} ({where}): no qualifying IPv6 address")
            status = 1
            continue
        others = [a.compressed for a in resolved.addresses[1:]]
        line = f"{domain.name} ({where}): {resolved.target.compressed}"
        if others:
            line += f" (also found: {', '.join(others)})"
        print(line)
    return status


def main(argv=None):
    """Main entry point when run as a standalone program

    :param argv: List of arguments. If ``None``, read :data:`sys.argv`.
    """
    args = parse_args(argv)
    try:
        conf = configuration.read_config_from_path(args.configfile, args.env)
        conf.finalize()
    except ConfigError as e:
        print("Config error:", e, file=sys.stderr)
        sys.exit(2)

    if args.list_zones:
        sys.exit(list_zones(conf))
    if args.show_addresses:
        sys.exit(show_addresses(conf))

    logdir = 'stderr' if args.stderr else conf.logdir
    try:
        log_handler = make_log_handler(logdir)
    except OSError as e:
        print("Could not open log:", e, file=sys.stderr)
        sys.exit(2)
    log = logging.getLogger('aaaasync')
    log.addHandler(log_handler)

    if args.debug_logs:
        log.setLevel(logging.DEBUG)
    else:
        log.setLevel(logging.INFO)

    try:
        sync_manager = manager.SyncManager(conf)
    except SetupError:
        log.critical("aaaasync failed to start.")
        sys.exit(1)

    if args.once:
        try:
            sync_manager.update_once()
        except AAAASyncException as e:
            log.error("Update failed: %s", e)
            sys.exit(1)
        sys.exit(0)

    # Start up the actual scheduled updates
    sync_manager.start()

    # Do an immediate update on SIGUSR1
    def handle_sigusr1(sig, _):
        log.info("Received signal: %s", signal.Signals(sig).name)
        sync_manager.do_update()
    signal.signal(signal.SIGUSR1, handle_sigusr1)

    # Wait for SIGINT (^C) or SIGTERM
    def handle_signals(sig, _):
        log.info("Received signal: %s", signal.Signals(sig).name)
        sync_manager.stop()
    signal.signal(signal.SIGINT, handle_signals)
    signal.signal(signal.SIGTERM, handle_signals)
