"""Client package"""

from netmount.client.netmount_client import NetMountClient

__all__ = ['NetMountClient']
