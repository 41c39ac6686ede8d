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

"""aaaasync, keeps DNS AAAA records in sync with the IPv6 addresses assigned
to this host

Top-level module, containing the classes useful for embedding aaaasync or
writing a directory client for another provider.
"""

from .addresses import AddressSource, ResolvedAddress
from .configuration import (Config, DomainSpec, read_config,
                            read_config_from_path)
from .directory import DirectoryClient, DnsRecord
from .exceptions import (AAAASyncException, SetupError, ConfigError,
                         NotStartedError, AddressUnavailable,
                         DirectoryUnavailable, RecordWriteFailed)
from .manager import SyncManager
from .reconciler import Outcome, Reconciler, SubdomainResult
from .scheduler import Scheduler
