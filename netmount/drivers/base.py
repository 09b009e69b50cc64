"""Base strategy provider interface"""

import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from netmount.models.schemas import (
    AttemptOutcome,
    ConnectionDescriptor,
    DriverKind,
    MountAttempt,
    StrategyKind,
)
from netmount.utils.logger import get_logger
from netmount.utils.masking import Redactor
from netmount.utils.process import CommandRunner
from netmount.utils.validators import sanitize_volume_name

LOG = get_logger(__name__)


def encode_userinfo(username: Optional[str], password: Optional[str]) -> str:
    """Percent-encoded ``user:pass@`` (or ``user@``) for URL handoff"""
    if not username:
        return ''
    if password is None:
        return f"{quote(username, safe='')}@"
    return f"{quote(username, safe='')}:{quote(password, safe='')}@"


def applescript_mount_volume(url: str) -> List[str]:
    """osascript invocation asking Finder to mount ``url``"""
    escaped = url.replace('\\', '\\\\').replace('"', '\\"')
    return ['osascript', '-e', f'tell application "Finder" to mount volume "{escaped}"']


class BaseStrategyProvider(ABC):
    """
    Expands a connection descriptor into an ordered list of mount attempts.

    Providers never execute anything while building the list; every OS
    call happens inside an attempt's action, through the runner handed
    to it by the executor.
    """

    connection_type: str = ''

    def __init__(self, config):
        self.config = config

    def preflight(self, descriptor: ConnectionDescriptor):
        """
        Protocol-specific checks run before any attempt.

        Args:
            descriptor: Validated connection descriptor

        Raises:
            ValidationException: if the descriptor cannot be mounted as given
        """
        pass

    @abstractmethod
    def default_volume_name(self, descriptor: ConnectionDescriptor) -> str:
        """
        Name of the volume when no mount point is requested.

        Args:
            descriptor: Connection descriptor

        Returns:
            Unsanitized volume name
        """
        pass

    @abstractmethod
    def build_attempts(self, descriptor: ConnectionDescriptor,
                       mount_point: str) -> List[MountAttempt]:
        """
        Build the fixed-order strategy chain.

        Args:
            descriptor: Connection descriptor
            mount_point: Requested mount point

        Returns:
            Attempts in priority order
        """
        pass

    @abstractmethod
    def probe(self, descriptor: ConnectionDescriptor,
              runner: CommandRunner) -> Tuple[bool, str]:
        """
        Check reachability without mounting.

        Args:
            descriptor: Connection descriptor
            runner: Command runner

        Returns:
            (reachable, human-readable message)
        """
        pass

    def default_mount_point(self, descriptor: ConnectionDescriptor) -> str:
        return self.volume_path(self.default_volume_name(descriptor))

    def volume_path(self, name: str) -> str:
        """Path the OS assigns to an auto-named volume"""
        return os.path.join(self.config.volumes_dir, sanitize_volume_name(name))

    def command_attempt(self, description: str, kind: StrategyKind,
                        cmd: List[str], resolved_mount_point: str,
                        redactor: Redactor,
                        env: Optional[Dict[str, str]] = None,
                        requires: Tuple[DriverKind, ...] = ()) -> MountAttempt:
        """Attempt that succeeds when a single command exits 0"""
        def action(runner: CommandRunner, timeout: int) -> AttemptOutcome:
            return self.run_step(runner, cmd, timeout, resolved_mount_point, redactor, env=env)

        return MountAttempt(description=description, kind=kind, action=action, requires=requires)

    @staticmethod
    def run_step(runner: CommandRunner, cmd: List[str], timeout: int,
                 resolved_mount_point: str, redactor: Redactor,
                 env: Optional[Dict[str, str]] = None) -> AttemptOutcome:
        LOG.debug(f"Executing: {redactor.command(cmd)}")
        result = runner.run(cmd, timeout=timeout, env=env)
        if result.ok:
            return AttemptOutcome.succeeded(resolved_mount_point)
        reason = redactor(result.error_text)
        LOG.debug(f"Command failed ({result.returncode}): {reason}")
        return AttemptOutcome.failed(reason)
