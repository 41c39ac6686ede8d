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

"""Sync Manager: Builds the directory client, address source, reconciler, and
scheduler from the configuration and controls them"""

import logging
from typing import List, Optional

from . import configuration
from .addresses import AddressSource
from .directory import DirectoryClient
from .directory.cloudflare import CloudflareClient
from .exceptions import ConfigError, NotStartedError
from .reconciler import Reconciler, SubdomainResult
from .scheduler import Scheduler


class SyncManager:
    """Manages the rest of the aaaasync system.

    :param config: A :class:`~aaaasync.Config` with the configuration to use
    :param client: Directory client to use instead of a
                   :class:`~aaaasync.directory.cloudflare.CloudflareClient`
                   built from the config
    :param address_source: Address source to use instead of the default

    :raises ConfigError: if configuration is not valid
    """

    def __init__(self, config: configuration.Config,
                 client: Optional[DirectoryClient] = None,
                 address_source: Optional[AddressSource] = None):
        self.log = logging.getLogger('aaaasync')

        try:
            config.finalize()
        except ConfigError as e:
            self.log.critical("Config error: %s", e)
            raise
        self.config = config

        if client is None:
            client = CloudflareClient(config.api_token, config.endpoint,
                                      config.timeout)
        self.client: DirectoryClient = client

        if address_source is None:
            address_source = AddressSource()
        self.address_source: AddressSource = address_source

        self.reconciler = Reconciler(config.domains, self.client,
                                     self.address_source)
        self.scheduler = Scheduler(self.reconciler, config.interval)

    def start(self):
        """Start the scheduler. Returns right away; updates continue in
        background threads."""
        self.log.info("Starting updates for %d domain(s)...",
                      len(self.config.domains))
        self.scheduler.start()

    def do_update(self):
        """Do an on-demand update, for example when SIGUSR1 arrives.

        Does not raise any exceptions.
        """
        self.log.info("Updating once on demand...")
        try:
            self.scheduler.run_now()
        except NotStartedError as e:
            self.log.error("On-demand update not possible: %s", e)

    def update_once(self) -> List[SubdomainResult]:
        """Do a single update without starting the scheduler

        :raises DirectoryUnavailable: if any zone could not be listed
        """
        return self.reconciler.update()

    def stop(self):
        """Stop scheduled updates gracefully. This will allow Python to exit
        naturally.

        Does not raise any exceptions, even if not yet started.
        """
        self.log.info("Stopping updates...")
        self.scheduler.stop()
        self.log.info("Updates stopped.")
