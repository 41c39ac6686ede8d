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

"""Address source: finds the local IPv6 addresses that should be published"""

import dataclasses
import ipaddress
import logging
import socket
from typing import Callable, List, Optional, Tuple

from .exceptions import AddressUnavailable
from .util import InterfaceAddress, list_interfaces


@dataclasses.dataclass(frozen=True)
class ResolvedAddress:
    """The qualifying IPv6 addresses found for a domain"""

    #: Qualifying addresses, in interface enumeration order. Never empty.
    addresses: Tuple[ipaddress.IPv6Address, ...]

    #: The interface the addresses were looked up on, or ``None`` if they
    #: were gathered from all interfaces
    iface: Optional[str] = None

    @property
    def target(self) -> ipaddress.IPv6Address:
        """The address to publish. When several addresses qualify, this is
        simply the first one."""
        return self.addresses[0]


def qualifying_address(
    family: int,
    address: str,
) -> Optional[ipaddress.IPv6Address]:
    """Check whether an interface address may be published

    :param family: Address family of the address
    :param address: The address, as a string
    :return: The parsed :class:`~ipaddress.IPv6Address` if it is IPv6, not
             loopback, and not link-local; otherwise ``None``
    """
    if family != socket.AF_INET6:
        return None
    try:
        addr = ipaddress.IPv6Address(address.partition('%')[0])
    except ipaddress.AddressValueError:
        return None
    if addr.is_loopback or addr.is_link_local:
        return None
    return addr


class AddressSource:
    """Looks up the current IPv6 addresses of the local interfaces.

    Nothing is cached: every call queries the system again, since addresses
    can change in the middle of a reconciliation pass (e.g. when a PPP link
    renegotiates).

    :param lister: Callable returning ``(iface_name, family, address)``
                   tuples for all interfaces. Defaults to
                   :func:`~aaaasync.util.list_interfaces`.
    """

    def __init__(
        self,
        lister: Optional[Callable[[], List[InterfaceAddress]]] = None,
    ):
        self.log = logging.getLogger('aaaasync.addresses')
        self._lister: Callable[[], List[InterfaceAddress]] = (
            lister if lister is not None else list_interfaces
        )

    def addresses_for(
        self,
        iface: Optional[str] = None,
    ) -> Optional[ResolvedAddress]:
        """Get the qualifying addresses for the named interface, or for all
        interfaces if none is named.

        :param iface: Interface name, or ``None``
        :return: A :class:`ResolvedAddress`, or ``None`` if no qualifying
                 address is assigned
        """
        addresses = []
        for if_name, family, address in self._lister():
            if iface is not None and if_name != iface:
                continue
            addr = qualifying_address(family, address)
            if addr is None:
                continue
            if addr not in addresses:
                addresses.append(addr)

        if len(addresses) == 0:
            if iface is None:
                self.log.debug("No interface has a qualifying IPv6 address")
            else:
                self.log.debug("Interface %s has no qualifying IPv6 address",
                               iface)
            return None

        self.log.debug("Found IPv6 addresses %s",
                       ', '.join(a.compressed for a in addresses))
        return ResolvedAddress(tuple(addresses), iface)

    def require(self, iface: Optional[str] = None) -> ResolvedAddress:
        """Like :meth:`addresses_for`, but raise when there is no address

        :param iface: Interface name, or ``None``
        :raises AddressUnavailable: if no qualifying address is assigned
        """
        resolved = self.addresses_for(iface)
        if resolved is None:
            if iface is None:
                raise AddressUnavailable("No interface has a qualifying IPv6 "
                                         "address")
            raise AddressUnavailable(f"Interface {iface} has no qualifying "
                                     "IPv6 address")
        return resolved
