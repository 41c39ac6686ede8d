"""DNS directory clients and the directory client base class"""

from .directory import RECORD_TYPE, DirectoryClient, DnsRecord

from . import cloudflare

__all__ = ['RECORD_TYPE', 'DirectoryClient', 'DnsRecord']
