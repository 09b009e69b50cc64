"""
netmount - mount remote storage (FTP, SFTP, SMB, WebDAV, S3) as local volumes

netmount tries each protocol's OS-level mount methods in a fixed fallback
order, records what it mounted in its own registry, and unmounts cleanly.

Example:
    >>> from netmount import ConnectionDescriptor, ControlService, NetMountConfig
    >>>
    >>> config = NetMountConfig()
    >>> control = ControlService.from_config(config)
    >>> control.mount(ConnectionDescriptor(type='ftp', host='ftp.example.com'))
    {'success': True, 'message': '...', 'mount_point': '/Volumes/ftp.example.com', ...}
"""

from .config import NetMountConfig
from .models import ConnectionDescriptor, MountRecord
from .services import ControlService

__version__ = '1.0.0'

__all__ = [
    'ConnectionDescriptor',
    'ControlService',
    'MountRecord',
    'NetMountConfig',
    '__version__',
]
