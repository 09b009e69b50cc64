"""Unmount service"""

import os
from typing import Dict, List, Optional, Tuple

from netmount.services.registry import MountRegistry
from netmount.utils.exceptions import RegistryIOException, UnmountException
from netmount.utils.logger import get_logger, log_error
from netmount.utils.process import CommandRunner

LOG = get_logger(__name__)


def unmount_commands(mount_point: str) -> List[Tuple[str, List[str]]]:
    """Unmount mechanisms, gentlest first"""
    return [
        ('umount', ['umount', mount_point]),
        ('diskutil unmount', ['diskutil', 'unmount', mount_point]),
        ('umount -f', ['umount', '-f', mount_point]),
    ]


class UnmountService:
    """Unmounts paths with escalating force and keeps the registry in step"""

    def __init__(self, config, registry: MountRegistry, runner: Optional[CommandRunner] = None):
        self.config = config
        self.registry = registry
        self.runner = runner or CommandRunner()

    def unmount(self, mount_point: str) -> str:
        """
        Unmount a path.

        Args:
            mount_point: Path to unmount

        Returns:
            Success message

        Raises:
            UnmountException: path missing, or every mechanism failed
        """
        if not os.path.exists(mount_point):
            raise UnmountException(f"Mount point {mount_point} does not exist")

        LOG.info(f"Unmounting {mount_point}")
        last_error = None
        for index, (name, cmd) in enumerate(unmount_commands(mount_point)):
            result = self.runner.run(cmd, timeout=self.config.unmount_timeout)
            if result.ok:
                self._forget(mount_point)
                forced = ' (forced)' if index == 2 else ''
                message = f"Successfully unmounted {mount_point}{forced}"
                LOG.info(f"{message} via {name}")
                return message
            last_error = result.error_text
            LOG.warning(f"{name} failed for {mount_point}: {last_error}")

        error = UnmountException(f"Failed to unmount {mount_point}: {last_error}")
        log_error(LOG, f"unmount {mount_point}", error)
        raise error

    def unmount_all(self) -> Dict[str, List]:
        """
        Unmount every registry entry, continuing past failures.

        Returns:
            {'unmounted': [mount points], 'failed': [{'mount_point', 'error'}]}
        """
        summary = {'unmounted': [], 'failed': []}
        try:
            records = self.registry.list()
        except RegistryIOException as e:
            log_error(LOG, 'unmount all', e)
            return summary

        LOG.info(f"Unmounting {len(records)} registered mount(s)")
        for record in records:
            try:
                self.unmount(record.mount_point)
                summary['unmounted'].append(record.mount_point)
            except UnmountException as e:
                summary['failed'].append({'mount_point': record.mount_point, 'error': e.message})
        return summary

    def _forget(self, mount_point: str):
        try:
            self.registry.remove(mount_point)
        except RegistryIOException as e:
            log_error(LOG, f"registry removal for {mount_point}", e)
