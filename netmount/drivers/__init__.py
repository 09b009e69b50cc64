"""Per-protocol strategy providers"""

from typing import Dict, Type

from netmount.drivers.base import BaseStrategyProvider
from netmount.drivers.ftp import FTPProvider
from netmount.drivers.s3 import S3Provider
from netmount.drivers.samba import SambaProvider
from netmount.drivers.sftp import SFTPProvider
from netmount.drivers.webdav import WebDAVProvider

PROVIDERS: Dict[str, Type[BaseStrategyProvider]] = {
    'ftp': FTPProvider,
    'sftp': SFTPProvider,
    'samba': SambaProvider,
    'webdav': WebDAVProvider,
    's3': S3Provider,
}


def build_providers(config) -> Dict[str, BaseStrategyProvider]:
    """One provider instance per connection type"""
    return {conn_type: cls(config) for conn_type, cls in PROVIDERS.items()}


__all__ = [
    'BaseStrategyProvider',
    'FTPProvider',
    'PROVIDERS',
    'S3Provider',
    'SFTPProvider',
    'SambaProvider',
    'WebDAVProvider',
    'build_providers',
]
