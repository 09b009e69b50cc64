"""Services package"""

from netmount.services.connection_store import ConnectionStore
from netmount.services.control import ControlService
from netmount.services.dependency_gatekeeper import DependencyGatekeeper
from netmount.services.mount_service import MountService
from netmount.services.reconciliation import ReconciliationService
from netmount.services.registry import MountRegistry
from netmount.services.unmount_service import UnmountService

__all__ = [
    'ConnectionStore',
    'ControlService',
    'DependencyGatekeeper',
    'MountRegistry',
    'MountService',
    'ReconciliationService',
    'UnmountService',
]
