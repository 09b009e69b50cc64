"""SMB/Samba strategy provider"""

from typing import List, Tuple
from urllib.parse import quote

from netmount.drivers.base import BaseStrategyProvider, applescript_mount_volume
from netmount.models.schemas import ConnectionDescriptor, MountAttempt, StrategyKind
from netmount.utils.logger import get_logger
from netmount.utils.masking import Redactor
from netmount.utils.process import CommandRunner

LOG = get_logger(__name__)

GUEST = 'guest'
SMBFS_OPTIONS = 'nobrowse,nosuid,nodev'


class SambaProvider(BaseStrategyProvider):
    """Mounts SMB shares via Finder handoff, AppleScript, mount_smbfs, then mount -t smbfs."""

    connection_type = 'samba'

    def default_volume_name(self, descriptor: ConnectionDescriptor) -> str:
        return descriptor.share or descriptor.host

    @staticmethod
    def userinfo(descriptor: ConnectionDescriptor) -> str:
        """
        SMB credential prefix.

        ``DOMAIN;user:pass@`` with a domain, ``user:pass@`` without one and
        ``guest@`` when no username is given.
        """
        if not descriptor.username:
            return f"{GUEST}@"
        userinfo = f"{quote(descriptor.username, safe='')}:{quote(descriptor.password or '', safe='')}@"
        if descriptor.domain:
            userinfo = f"{quote(descriptor.domain, safe='')};{userinfo}"
        return userinfo

    def share_url(self, descriptor: ConnectionDescriptor) -> str:
        # Finder treats a missing username as "ask", not as guest
        userinfo = self.userinfo(descriptor) if descriptor.username else ''
        return f"smb://{userinfo}{descriptor.host}/{descriptor.share}"

    def unc_path(self, descriptor: ConnectionDescriptor) -> str:
        return f"//{self.userinfo(descriptor)}{descriptor.host}/{descriptor.share}"

    def build_attempts(self, descriptor: ConnectionDescriptor,
                       mount_point: str) -> List[MountAttempt]:
        redactor = Redactor(descriptor.secrets())
        url = self.share_url(descriptor)
        unc = self.unc_path(descriptor)
        share_volume = self.volume_path(descriptor.share)

        return [
            self.command_attempt(
                'Finder handoff (open)', StrategyKind.NATIVE,
                ['open', url], share_volume, redactor,
            ),
            self.command_attempt(
                'AppleScript mount volume', StrategyKind.SCRIPTED,
                applescript_mount_volume(url), share_volume, redactor,
            ),
            self.command_attempt(
                'mount_smbfs', StrategyKind.DRIVER,
                ['mount_smbfs', unc, mount_point], mount_point, redactor,
            ),
            self.command_attempt(
                'mount -t smbfs', StrategyKind.GENERIC,
                ['mount', '-t', 'smbfs', '-o', SMBFS_OPTIONS, unc, mount_point], mount_point, redactor,
            ),
        ]

    def probe(self, descriptor: ConnectionDescriptor,
              runner: CommandRunner) -> Tuple[bool, str]:
        redactor = Redactor(descriptor.secrets())
        target = f"//{self.userinfo(descriptor)}{descriptor.host}"
        cmd = ['smbutil', 'view', '-N', target] if not descriptor.username else ['smbutil', 'view', target]
        result = runner.run(cmd, timeout=self.config.probe_timeout)
        if not result.ok:
            return False, redactor(f"SMB server {descriptor.host} is not reachable: {result.error_text}")
        if descriptor.share and descriptor.share.lower() not in result.stdout.lower():
            return False, f"SMB server {descriptor.host} does not list share {descriptor.share}"
        return True, f"SMB share //{descriptor.host}/{descriptor.share} is reachable"
