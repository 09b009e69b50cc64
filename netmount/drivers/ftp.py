"""FTP strategy provider"""

from typing import List, Tuple

from netmount.drivers.base import BaseStrategyProvider, applescript_mount_volume, encode_userinfo
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
from netmount.utils.secrets import secret_file

LOG = get_logger(__name__)

ANONYMOUS = 'anonymous'


class FTPProvider(BaseStrategyProvider):
    """Mounts FTP servers via Finder handoff, AppleScript, mount_ftp, then a curl-checked generic mount."""

    connection_type = 'ftp'

    def default_volume_name(self, descriptor: ConnectionDescriptor) -> str:
        return descriptor.host

    @staticmethod
    def credentials(descriptor: ConnectionDescriptor) -> Tuple[str, str]:
        return descriptor.username or ANONYMOUS, descriptor.password or ''

    def server_url(self, descriptor: ConnectionDescriptor, with_credentials: bool = True) -> str:
        username, password = self.credentials(descriptor)
        userinfo = encode_userinfo(username, password) if with_credentials else ''
        return f"ftp://{userinfo}{descriptor.host}:{descriptor.effective_port}"

    @staticmethod
    def netrc(descriptor: ConnectionDescriptor, username: str, password: str) -> str:
        return f"machine {descriptor.host} login {username} password {password}\n"

    def build_attempts(self, descriptor: ConnectionDescriptor,
                       mount_point: str) -> List[MountAttempt]:
        redactor = Redactor(descriptor.secrets())
        url = self.server_url(descriptor)
        fuse = (DriverKind.FUSE,)

        return [
            self.command_attempt(
                'Finder handoff (open)', StrategyKind.NATIVE,
                ['open', url], self.volume_path(descriptor.host), redactor,
            ),
            self.command_attempt(
                'AppleScript mount volume', StrategyKind.SCRIPTED,
                applescript_mount_volume(url), mount_point, redactor,
            ),
            self.command_attempt(
                'mount_ftp', StrategyKind.DRIVER,
                ['mount_ftp', url, mount_point], mount_point, redactor, requires=fuse,
            ),
            MountAttempt(
                description='curl reachability check + generic mount',
                kind=StrategyKind.GENERIC,
                action=lambda runner, timeout: self._curl_then_mount(
                    runner, timeout, descriptor, mount_point, redactor),
                requires=fuse,
            ),
        ]

    def _curl_then_mount(self, runner: CommandRunner, timeout: int,
                         descriptor: ConnectionDescriptor, mount_point: str,
                         redactor: Redactor) -> AttemptOutcome:
        reachable, message = self._curl_check(runner, descriptor, timeout)
        if not reachable:
            return AttemptOutcome.failed(redactor(message))
        return self.run_step(
            runner, ['mount', '-t', 'ftp', self.server_url(descriptor), mount_point],
            timeout, mount_point, redactor,
        )

    def _curl_check(self, runner: CommandRunner, descriptor: ConnectionDescriptor,
                    timeout: int) -> Tuple[bool, str]:
        username, password = self.credentials(descriptor)
        url = self.server_url(descriptor, with_credentials=False) + '/'
        with secret_file(self.netrc(descriptor, username, password), prefix='netrc_') as netrc_path:
            result = runner.run(
                ['curl', '--silent', '--show-error', '--list-only',
                 '--connect-timeout', str(timeout), '--netrc-file', netrc_path,
                 '-o', '/dev/null', url],
                timeout=timeout,
            )
        if result.ok:
            return True, f"FTP server {descriptor.host} is reachable"
        return False, f"FTP server {descriptor.host} is not reachable: {result.error_text}"

    def probe(self, descriptor: ConnectionDescriptor,
              runner: CommandRunner) -> Tuple[bool, str]:
        reachable, message = self._curl_check(runner, descriptor, self.config.probe_timeout)
        return reachable, Redactor(descriptor.secrets())(message)
