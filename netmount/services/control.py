"""
Transport-agnostic control surface.

Requests and responses are plain dictionaries so any transport (the
RabbitMQ RPC server, the CLI, tests) can drive the same operations:

    {'operation': 'mount', 'connection': {...}}   or   {'operation': 'mount', 'name': 'saved'}
    {'operation': 'unmount', 'mount_point': '/mnt/x'}
    {'operation': 'list_mounts'}
    {'operation': 'is_mounted', 'mount_point': '/mnt/x'}
    {'operation': 'reconcile', 'prune': true}
    {'operation': 'test_connection', 'connection': {...}}
    {'operation': 'unmount_all'}
    {'operation': 'reconciliation_status'}

Responses are ``{'success': True, 'message': ..., 'mount_point'?: ..., 'data'?: ...}``
or ``{'success': False, 'error': ...}``.
"""

from typing import Any, Dict, Optional

from netmount.models.database import DatabaseManager
from netmount.models.schemas import ConnectionDescriptor, MountResponse, records_to_dicts
from netmount.services.connection_store import ConnectionStore
from netmount.services.dependency_gatekeeper import DependencyGatekeeper
from netmount.services.mount_service import MountService, describe
from netmount.services.reconciliation import ReconciliationService
from netmount.services.registry import MountRegistry
from netmount.services.unmount_service import UnmountService
from netmount.lock_manager import get_lock_manager
from netmount.utils.exceptions import NetMountException, ValidationException
from netmount.utils.logger import get_logger, log_error
from netmount.utils.masking import mask_string
from netmount.utils.process import CommandRunner

LOG = get_logger(__name__)

OPERATIONS = (
    'mount', 'unmount', 'list_mounts', 'is_mounted', 'reconcile',
    'test_connection', 'unmount_all', 'reconciliation_status',
)


class ControlService:
    """Dispatches control requests to the mount, unmount and reconciliation services"""

    def __init__(self, config, registry: MountRegistry, mount_service: MountService,
                 unmount_service: UnmountService, reconciliation: ReconciliationService,
                 connection_store: Optional[ConnectionStore] = None):
        self.config = config
        self.registry = registry
        self.mount_service = mount_service
        self.unmount_service = unmount_service
        self.reconciliation = reconciliation
        self.connection_store = connection_store

    @classmethod
    def from_config(cls, config, runner: Optional[CommandRunner] = None,
                    gatekeeper: Optional[DependencyGatekeeper] = None,
                    connection_store: Optional[ConnectionStore] = None) -> 'ControlService':
        """Wire every service for ``config``; the registry is initialized here"""
        runner = runner or CommandRunner()
        config.ensure_directories()
        registry = MountRegistry(config.registry_file, get_lock_manager(config))
        registry.initialize()
        gatekeeper = gatekeeper or DependencyGatekeeper(config, runner)
        if connection_store is None:
            connection_store = ConnectionStore(DatabaseManager(config.db_url))
        return cls(
            config,
            registry,
            MountService(config, registry, gatekeeper, runner),
            UnmountService(config, registry, runner),
            ReconciliationService(config, registry, runner),
            connection_store,
        )

    def handle(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Handle one request dictionary; never raises"""
        operation = (request or {}).get('operation')
        try:
            if operation == 'mount':
                return self.mount(self._descriptor(request))
            if operation == 'unmount':
                return self.unmount(self._required(request, 'mount_point'))
            if operation == 'list_mounts':
                return self.list_mounts()
            if operation == 'is_mounted':
                return self.is_mounted(self._required(request, 'mount_point'))
            if operation == 'reconcile':
                return self.reconcile(prune=self._flag(request, 'prune', True))
            if operation == 'test_connection':
                return self.test_connection(self._descriptor(request))
            if operation == 'unmount_all':
                return self.shutdown()
            if operation == 'reconciliation_status':
                return self.reconciliation_status()
            return MountResponse.fail(
                f"Unknown operation: {operation}. Supported: {', '.join(OPERATIONS)}"
            ).to_dict()
        except NetMountException as e:
            return MountResponse.fail(e.message).to_dict()
        except Exception as e:
            log_error(LOG, f"handling {operation}", e)
            return MountResponse.fail(f"Server error: {mask_string(str(e))}").to_dict()

    def mount(self, descriptor: ConnectionDescriptor) -> Dict[str, Any]:
        try:
            record = self.mount_service.mount(descriptor)
        except NetMountException as e:
            return MountResponse.fail(e.message).to_dict()
        return MountResponse.ok(
            f"{describe(descriptor)} mounted successfully at {record.mount_point}",
            mount_point=record.mount_point,
            data=record.to_dict(),
        ).to_dict()

    def unmount(self, mount_point: str) -> Dict[str, Any]:
        try:
            message = self.unmount_service.unmount(mount_point)
        except NetMountException as e:
            return MountResponse.fail(e.message).to_dict()
        return MountResponse.ok(message, mount_point=mount_point).to_dict()

    def list_mounts(self) -> Dict[str, Any]:
        records = self.reconciliation.list_mounts()
        return MountResponse.ok(f"{len(records)} mount(s)", data=records_to_dicts(records)).to_dict()

    def is_mounted(self, mount_point: str) -> Dict[str, Any]:
        mounted = self.reconciliation.is_mounted(mount_point)
        state = 'mounted' if mounted else 'not mounted'
        return MountResponse.ok(f"{mount_point} is {state}", mount_point=mount_point,
                                data={'mounted': mounted}).to_dict()

    def reconcile(self, prune: bool = True) -> Dict[str, Any]:
        summary = self.reconciliation.reconcile(prune=prune)
        return MountResponse.ok(
            f"{summary['checked']} checked, {len(summary['stale'])} stale, {summary['removed']} removed",
            data=summary,
        ).to_dict()

    def reconciliation_status(self) -> Dict[str, Any]:
        status = self.reconciliation.get_reconciliation_status()
        return MountResponse.ok(
            f"{len(status['mounts'])} registered, {len(status['inconsistencies'])} not in the mount table",
            data=status,
        ).to_dict()

    def test_connection(self, descriptor: ConnectionDescriptor) -> Dict[str, Any]:
        reachable, message = self.mount_service.test_connection(descriptor)
        if reachable:
            return MountResponse.ok(message).to_dict()
        return MountResponse.fail(message).to_dict()

    def shutdown(self) -> Dict[str, Any]:
        """Process-exit hook: unmount everything we mounted, best effort"""
        LOG.info("Shutdown: unmounting all registered mounts")
        summary = self.unmount_service.unmount_all()
        for failure in summary['failed']:
            LOG.warning(f"Could not unmount {failure['mount_point']}: {failure['error']}")
        return MountResponse.ok(
            f"{len(summary['unmounted'])} unmounted, {len(summary['failed'])} failed",
            data=summary,
        ).to_dict()

    def _descriptor(self, request: Dict[str, Any]) -> ConnectionDescriptor:
        connection = request.get('connection')
        if connection:
            return ConnectionDescriptor.from_dict(connection)
        name = request.get('name')
        if name:
            if self.connection_store is None:
                raise ValidationException('No saved-connection store configured')
            descriptor = self.connection_store.get(name)
            if descriptor is None:
                raise ValidationException(f"No saved connection named {name}")
            return descriptor
        raise ValidationException("Request needs 'connection' or 'name'")

    @staticmethod
    def _required(request: Dict[str, Any], key: str) -> str:
        value = request.get(key)
        if not value:
            raise ValidationException(f"Request is missing '{key}'")
        return value

    @staticmethod
    def _flag(request: Dict[str, Any], key: str, default: bool) -> bool:
        value = request.get(key, default)
        if not isinstance(value, bool):
            raise ValidationException(f"'{key}' must be true or false, got {value!r}")
        return value
