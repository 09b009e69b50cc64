"""SFTP strategy provider"""

import os
from typing import List, Tuple

from netmount.drivers.base import BaseStrategyProvider, applescript_mount_volume, encode_userinfo
from netmount.models.schemas import (
    AttemptOutcome,
    ConnectionDescriptor,
    DriverKind,
    MountAttempt,
    StrategyKind,
)
from netmount.utils.exceptions import PrivateKeyNotFoundException
from netmount.utils.logger import get_logger
from netmount.utils.masking import Redactor
from netmount.utils.process import CommandRunner
from netmount.utils.secrets import askpass_script, secret_file

LOG = get_logger(__name__)

SSHFS_OPTIONS = 'reconnect,defer_permissions,noappledouble,noapplexattr'


class SFTPProvider(BaseStrategyProvider):
    """Mounts SFTP servers via Finder handoff, AppleScript, then sshfs."""

    connection_type = 'sftp'

    def preflight(self, descriptor: ConnectionDescriptor):
        key_path = self.key_path(descriptor)
        if key_path and not os.path.isfile(key_path):
            raise PrivateKeyNotFoundException(key_path)

    @staticmethod
    def key_path(descriptor: ConnectionDescriptor):
        if not descriptor.private_key_path:
            return None
        return os.path.abspath(os.path.expanduser(descriptor.private_key_path))

    def default_volume_name(self, descriptor: ConnectionDescriptor) -> str:
        return descriptor.host

    def server_url(self, descriptor: ConnectionDescriptor) -> str:
        userinfo = encode_userinfo(descriptor.username, descriptor.password)
        return f"sftp://{userinfo}{descriptor.host}:{descriptor.effective_port}"

    def sshfs_command(self, descriptor: ConnectionDescriptor, mount_point: str) -> List[str]:
        cmd = [
            'sshfs', f"{descriptor.username}@{descriptor.host}:/", mount_point,
            '-p', str(descriptor.effective_port),
            '-o', f"{SSHFS_OPTIONS},volname={descriptor.host}",
        ]
        key_path = self.key_path(descriptor)
        if key_path:
            cmd += ['-o', f"IdentityFile={key_path}"]
        return cmd

    def build_attempts(self, descriptor: ConnectionDescriptor,
                       mount_point: str) -> List[MountAttempt]:
        redactor = Redactor(descriptor.secrets())
        url = self.server_url(descriptor)

        return [
            self.command_attempt(
                'Finder handoff (open)', StrategyKind.NATIVE,
                ['open', url], self.volume_path(descriptor.host), redactor,
            ),
            self.command_attempt(
                'AppleScript mount volume', StrategyKind.SCRIPTED,
                applescript_mount_volume(url), mount_point, redactor,
                requires=(DriverKind.FUSE,),
            ),
            MountAttempt(
                description='sshfs',
                kind=StrategyKind.DRIVER,
                action=lambda runner, timeout: self._sshfs(
                    runner, timeout, descriptor, mount_point, redactor),
                requires=(DriverKind.FUSE, DriverKind.SSHFS),
            ),
        ]

    def _sshfs(self, runner: CommandRunner, timeout: int, descriptor: ConnectionDescriptor,
               mount_point: str, redactor: Redactor) -> AttemptOutcome:
        cmd = self.sshfs_command(descriptor, mount_point)
        if self.key_path(descriptor) or not descriptor.password:
            return self.run_step(runner, cmd, timeout, mount_point, redactor)

        # Password auth: ssh reads it through an askpass helper; both files
        # are removed when the attempt ends, whatever its outcome
        with secret_file(descriptor.password, prefix='sftp_pw_') as password_file:
            with askpass_script(password_file) as helper:
                env = {
                    'SSH_ASKPASS': helper,
                    'SSH_ASKPASS_REQUIRE': 'force',
                    'DISPLAY': os.environ.get('DISPLAY', ':0'),
                }
                return self.run_step(runner, cmd, timeout, mount_point, redactor, env=env)

    def probe(self, descriptor: ConnectionDescriptor,
              runner: CommandRunner) -> Tuple[bool, str]:
        timeout = self.config.probe_timeout
        result = runner.run(
            ['ssh-keyscan', '-p', str(descriptor.effective_port), '-T', str(timeout), descriptor.host],
            timeout=timeout,
        )
        if result.ok and result.stdout.strip():
            return True, f"SSH service on {descriptor.host}:{descriptor.effective_port} is reachable"
        return False, (f"SSH service on {descriptor.host}:{descriptor.effective_port} "
                       f"is not reachable: {result.error_text or 'no host key returned'}")
