"""Helper classes and functions for aaaasync"""

from .getifaceaddrs import get_iface_addrs, list_interfaces, InterfaceAddress

__all__ = [
    "get_iface_addrs",
    "list_interfaces",
    "InterfaceAddress",
]
