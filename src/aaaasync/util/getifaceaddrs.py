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

"""Helper functions to look up the IP addresses assigned to the current
system's interfaces"""

# Netifaces is no longer currently maintained (looking for a new maintainer).
# But the last release was in 2021 and it's not that complex, especially the
# address lookup part, which hasn't been modified in several releases.

import socket
from typing import Dict, List, Tuple, cast

import netifaces

#: One address assigned to an interface: ``(iface_name, family, address)``
#: where family is :data:`socket.AF_INET` or :data:`socket.AF_INET6`
InterfaceAddress = Tuple[str, int, str]


def get_iface_addrs(if_name: str) -> List[InterfaceAddress]:
    """Lookup current IPv4 and IPv6 addresses for the named interface.

    :param if_name: Name of the interface to look up
    :return: A list of ``(if_name, family, address)`` tuples, IPv4 first
    :raises ValueError: if there is no interface with the given name.
    """
    # Cast due to lack of type stubs for netifaces
    addresses = cast(Dict[int, List[Dict[str, str]]],
                     netifaces.ifaddresses(if_name))

    result: List[InterfaceAddress] = []
    for nf_family, family in ((netifaces.AF_INET, socket.AF_INET),
                              (netifaces.AF_INET6, socket.AF_INET6)):
        for entry in addresses.get(nf_family, []):
            try:
                addr = entry['addr']
            except KeyError:
                continue
            # Link-local IPv6 addresses come back with %ifacename at the end,
            # which ipaddress.IPv6Address rejects in Python < 3.9. Chop it off.
            addr = addr.partition('%')[0]
            result.append((if_name, family, addr))
    return result


def list_interfaces() -> List[InterfaceAddress]:
    """Lookup current addresses for every interface on the system, in the
    order the system lists the interfaces.

    :return: A list of ``(if_name, family, address)`` tuples
    """
    result: List[InterfaceAddress] = []
    for if_name in netifaces.interfaces():
        try:
            result += get_iface_addrs(if_name)
        except ValueError:
            # Interface went away between listing and lookup (e.g. a PPP
            # link dropping)
            continue
    return result
