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

"""DNS directory client base class and record type"""

import dataclasses
import ipaddress
import logging
# Note: We are not using abstractmethod the way it is intended. We are using it
# purely to get Sphinx to mark methods as abstract. Thus, we intentionally do
# NOT use ABCMeta or inherit from ABC.
from abc import abstractmethod
from typing import List


#: The only record type aaaasync manages
RECORD_TYPE = 'AAAA'


@dataclasses.dataclass(frozen=True)
class DnsRecord:
    """A snapshot of one record as the provider reported it"""

    #: Provider-assigned record identifier
    id: str

    #: Fully-qualified name, without trailing dot
    name: str

    #: Address the record points to, as text
    content: str

    #: Whether the provider proxies traffic for this record
    proxied: bool = True

    #: Record type, always :data:`RECORD_TYPE`
    type: str = RECORD_TYPE

    def matches_name(self, fqdn: str) -> bool:
        """Check if this record is for the given FQDN (ignoring case and any
        trailing dot)"""
        return self.name.rstrip('.').lower() == fqdn.rstrip('.').lower()

    def has_address(self, address: ipaddress.IPv6Address) -> bool:
        """Check if this record already points to the given address. Textual
        variants of the same address (e.g. uncompressed) count as equal."""
        try:
            return ipaddress.IPv6Address(self.content) == address
        except ipaddress.AddressValueError:
            return False


class DirectoryClient:
    """Base class for clients of a DNS provider's record management API.

    Implementations must apply a bounded timeout to every remote call.

    :param name: Name used for the logger, e.g. ``'cloudflare'``
    """

    def __init__(self, name: str):
        #: Logger (see standard :mod:`logging` module)
        self.log: logging.Logger = logging.getLogger(
            f'aaaasync.directory.{name}'
        )

    @abstractmethod
    def list_aaaa(self, zone_id: str) -> List[DnsRecord]:
        """Get every AAAA record in the given zone.

        **Must be implemented by subclasses.**

        :param zone_id: The zone to list
        :return: The zone's AAAA records
        :raises DirectoryUnavailable: if the records could not be listed
        """
        raise NotImplementedError

    @abstractmethod
    def create_aaaa(self, zone_id: str, name: str,
                    address: ipaddress.IPv6Address) -> DnsRecord:
        """Create a new, proxied AAAA record.

        **Must be implemented by subclasses.**

        :param zone_id: The zone to create the record in
        :param name: FQDN for the record
        :param address: Address for the record
        :return: The created record
        :raises RecordWriteFailed: if the record could not be created
        """
        raise NotImplementedError

    @abstractmethod
    def update_aaaa(self, zone_id: str, record_id: str, name: str,
                    address: ipaddress.IPv6Address) -> DnsRecord:
        """Point an existing AAAA record at a new address, keeping it
        proxied.

        **Must be implemented by subclasses.**

        :param zone_id: The zone the record is in
        :param record_id: Identifier of the record to update
        :param name: FQDN of the record
        :param address: New address for the record
        :return: The updated record
        :raises RecordWriteFailed: if the record could not be updated
        """
        raise NotImplementedError
