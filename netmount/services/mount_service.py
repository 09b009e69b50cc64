"""Mount service - strategy chain executor"""

import os
from typing import Dict, List, Optional, Tuple

from netmount.drivers import BaseStrategyProvider, build_providers
from netmount.models.schemas import ConnectionDescriptor, MountAttempt, MountRecord
from netmount.services.dependency_gatekeeper import DependencyGatekeeper, INSTALL_SOURCES
from netmount.services.registry import MountRegistry
from netmount.utils.exceptions import (
    AggregatedMountFailure,
    DependencyMissingException,
    DuplicateMountException,
    NetMountException,
    RegistryIOException,
    ValidationException,
    install_hint,
    missing_hint,
)
from netmount.utils.logger import get_logger, log_error, log_event
from netmount.utils.masking import Redactor, strip_userinfo
from netmount.utils.process import CommandRunner
from netmount.utils.validators import validate_mount_path

LOG = get_logger(__name__)


def describe(descriptor: ConnectionDescriptor) -> str:
    """Short human label for a connection"""
    if descriptor.type == 'webdav':
        target = strip_userinfo(descriptor.url)
    elif descriptor.type == 's3':
        target = descriptor.bucket
    elif descriptor.type == 'samba':
        target = f"//{descriptor.host}/{descriptor.share}"
    else:
        target = descriptor.host
    return Redactor(descriptor.secrets())(f"{descriptor.type} {target}")


class MountService:
    """Runs a protocol's strategy chain and records the resulting mount"""

    def __init__(self, config, registry: MountRegistry, gatekeeper: DependencyGatekeeper,
                 runner: Optional[CommandRunner] = None,
                 providers: Optional[Dict[str, BaseStrategyProvider]] = None):
        self.config = config
        self.registry = registry
        self.gatekeeper = gatekeeper
        self.runner = runner or CommandRunner()
        self.providers = providers or build_providers(config)

    def provider_for(self, descriptor: ConnectionDescriptor) -> BaseStrategyProvider:
        try:
            return self.providers[descriptor.type]
        except KeyError:
            raise ValidationException(f"Unsupported connection type: {descriptor.type}")

    def mount(self, descriptor: ConnectionDescriptor) -> MountRecord:
        """
        Mount a connection.

        Args:
            descriptor: Connection to mount

        Returns:
            The MountRecord written to the registry; its mount_point is the
            path the successful strategy resolved to

        Raises:
            ValidationException: descriptor incomplete (no OS call made)
            DependencyMissingException: no strategy is viable on this system
            DuplicateMountException: identity already mounted, policy 'reject'
            AggregatedMountFailure: every viable strategy failed
        """
        redactor = Redactor(descriptor.secrets())
        label = describe(descriptor)

        descriptor.validate()
        provider = self.provider_for(descriptor)
        provider.preflight(descriptor)

        existing = self._check_duplicates(descriptor, label)
        if existing is not None:
            return existing

        mount_point = descriptor.mount_point or provider.default_mount_point(descriptor)
        if not validate_mount_path(mount_point):
            raise ValidationException(f"Invalid mount point: {mount_point}")

        log_event(LOG, f"Mounting {label} at {mount_point}", descriptor.to_dict())

        attempts, missing = self._viable_attempts(provider.build_attempts(descriptor, mount_point))
        if not attempts:
            hints = missing_hint(missing, INSTALL_SOURCES)
            error = DependencyMissingException(
                f"Cannot mount {label}: required driver(s) not installed: {', '.join(missing)}",
                missing=hints,
            )
            log_error(LOG, f"mount {label}", error)
            raise error

        created_dir = self._prepare_mount_point(mount_point)

        last_failure = None
        for index, attempt in enumerate(attempts, start=1):
            timeout = self.config.timeout_for(attempt.kind.value)
            LOG.info(f"Attempt {index}/{len(attempts)} for {label}: {attempt.description}")
            try:
                outcome = attempt.execute(self.runner, timeout)
            except (NetMountException, OSError) as e:
                outcome_reason = redactor(str(e))
                LOG.warning(f"Attempt '{attempt.description}' raised: {outcome_reason}")
                last_failure = outcome_reason
                continue

            if outcome.success:
                if created_dir and os.path.normpath(outcome.mount_point) != os.path.normpath(mount_point):
                    self._remove_empty_dir(mount_point)
                return self._record_success(descriptor, label, attempt, outcome.mount_point)

            last_failure = redactor(outcome.reason) or 'unknown error'
            LOG.warning(f"Attempt '{attempt.description}' failed: {last_failure}")

        if created_dir:
            self._remove_empty_dir(mount_point)

        hint = None
        message = f"All mount methods failed for {label}: {last_failure}"
        if missing:
            hint = install_hint(missing_hint(missing, INSTALL_SOURCES))
            message += f" (some methods were skipped; {hint})"
        error = AggregatedMountFailure(redactor(message), last_failure=last_failure, hint=hint)
        log_error(LOG, f"mount {label}", error)
        raise error

    def test_connection(self, descriptor: ConnectionDescriptor) -> Tuple[bool, str]:
        """
        Check that a connection's server is reachable, without mounting.

        Returns:
            (reachable, message)
        """
        descriptor.validate()
        provider = self.provider_for(descriptor)
        provider.preflight(descriptor)
        reachable, message = provider.probe(descriptor, self.runner)
        message = Redactor(descriptor.secrets())(message)
        log_event(LOG, f"Connection test for {describe(descriptor)}: {message}")
        return reachable, message

    def _check_duplicates(self, descriptor: ConnectionDescriptor,
                          label: str) -> Optional[MountRecord]:
        policy = self.config.duplicate_policy
        if policy == 'allow':
            return None
        try:
            existing = self.registry.find_by_identity(descriptor)
        except RegistryIOException as e:
            log_error(LOG, f"duplicate check for {label}", e)
            return None
        if not existing:
            return None
        if policy == 'reject':
            raise DuplicateMountException(
                f"{label} is already mounted at {existing[0].mount_point}"
            )
        LOG.info(f"{label} already mounted at {existing[0].mount_point}, reusing")
        return existing[0]

    def _viable_attempts(self, attempts: List[MountAttempt]) -> Tuple[List[MountAttempt], List[str]]:
        """Drop attempts whose drivers are absent; returns (viable, missing kinds)"""
        availability: Dict[str, bool] = {}
        missing: List[str] = []
        viable: List[MountAttempt] = []
        for attempt in attempts:
            usable = True
            for kind in attempt.requires:
                if kind.value not in availability:
                    availability[kind.value] = self.gatekeeper.is_driver_available(kind)
                    if not availability[kind.value]:
                        missing.append(kind.value)
                usable = usable and availability[kind.value]
            if usable:
                viable.append(attempt)
            else:
                LOG.info(f"Skipping '{attempt.description}': required driver not installed")
        return viable, missing

    def _under_volumes_dir(self, path: str) -> bool:
        volumes_dir = os.path.normpath(self.config.volumes_dir)
        return os.path.normpath(path).startswith(volumes_dir + os.sep)

    def _prepare_mount_point(self, mount_point: str) -> bool:
        """Create the target directory; returns True if it was created here"""
        if self._under_volumes_dir(mount_point) or os.path.isdir(mount_point):
            return False
        try:
            os.makedirs(mount_point, mode=0o755)
            LOG.info(f"Created mount directory: {mount_point}")
            return True
        except FileExistsError:
            return False
        except OSError as e:
            raise NetMountException(f"Cannot create mount point {mount_point}: {e}")

    @staticmethod
    def _remove_empty_dir(mount_point: str):
        try:
            if not os.listdir(mount_point):
                os.rmdir(mount_point)
                LOG.info(f"Removed unused mount directory: {mount_point}")
        except OSError as e:
            LOG.warning(f"Could not remove mount directory {mount_point}: {e}")

    def _record_success(self, descriptor: ConnectionDescriptor, label: str,
                        attempt: MountAttempt, mount_point: str) -> MountRecord:
        record = MountRecord.for_descriptor(descriptor, mount_point)
        LOG.info(f"Mounted {label} at {mount_point} via {attempt.description}")
        try:
            self.registry.add(record)
        except RegistryIOException as e:
            # The filesystem is mounted; only the bookkeeping failed
            log_error(LOG, f"registry write for {mount_point}", e)
        return record
