"""WebDAV strategy provider"""

from typing import List, Tuple
from urllib.parse import urlparse, urlunparse

import requests

from netmount.drivers.base import BaseStrategyProvider, applescript_mount_volume, encode_userinfo
from netmount.models.schemas import ConnectionDescriptor, MountAttempt, StrategyKind
from netmount.utils.exceptions import ValidationException
from netmount.utils.logger import get_logger
from netmount.utils.masking import Redactor
from netmount.utils.process import CommandRunner
from netmount.utils.validators import validate_webdav_url

LOG = get_logger(__name__)

PROPFIND_OK_STATUS = (200, 207)


def splice_credentials(url: str, username: str, password: str) -> str:
    """
    Put ``username``/``password`` into the userinfo of ``url``.

    Any userinfo already present is replaced, never duplicated. The URL is
    returned unchanged when no username is given.
    """
    if not username:
        return url
    parsed = urlparse(url)
    host = parsed.hostname or ''
    if ':' in host:
        host = f"[{host}]"
    netloc = encode_userinfo(username, password) + host
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc, path=parsed.path or '/'))


class WebDAVProvider(BaseStrategyProvider):
    """Mounts WebDAV servers via Finder handoff, AppleScript, mount_webdav, then mount -t webdav."""

    connection_type = 'webdav'

    def preflight(self, descriptor: ConnectionDescriptor):
        if not validate_webdav_url(descriptor.url):
            raise ValidationException(f"Invalid WebDAV URL: {descriptor.url}")

    def default_volume_name(self, descriptor: ConnectionDescriptor) -> str:
        return urlparse(descriptor.url).hostname or descriptor.url

    def build_attempts(self, descriptor: ConnectionDescriptor,
                       mount_point: str) -> List[MountAttempt]:
        redactor = Redactor(descriptor.secrets())
        spliced = splice_credentials(descriptor.url, descriptor.username, descriptor.password)

        mount_webdav = ['mount_webdav', '-i']
        if descriptor.username:
            mount_webdav += ['-u', descriptor.username, '-p', descriptor.password or '']
        mount_webdav += [descriptor.url, mount_point]

        return [
            self.command_attempt(
                'Finder handoff (open)', StrategyKind.NATIVE,
                ['open', spliced], self.volume_path(urlparse(descriptor.url).hostname), redactor,
            ),
            self.command_attempt(
                'AppleScript mount volume', StrategyKind.SCRIPTED,
                applescript_mount_volume(spliced), mount_point, redactor,
            ),
            self.command_attempt(
                'mount_webdav', StrategyKind.DRIVER,
                mount_webdav, mount_point, redactor,
            ),
            self.command_attempt(
                'mount -t webdav', StrategyKind.GENERIC,
                ['mount', '-t', 'webdav', spliced, mount_point], mount_point, redactor,
            ),
        ]

    def probe(self, descriptor: ConnectionDescriptor,
              runner: CommandRunner) -> Tuple[bool, str]:
        redactor = Redactor(descriptor.secrets())
        auth = (descriptor.username, descriptor.password or '') if descriptor.username else None
        try:
            response = requests.request(
                'PROPFIND', descriptor.url,
                auth=auth,
                headers={'Depth': '0'},
                timeout=self.config.probe_timeout,
            )
        except requests.RequestException as e:
            return False, redactor(f"WebDAV server {descriptor.url} is not reachable: {e}")

        if response.status_code in PROPFIND_OK_STATUS:
            return True, f"WebDAV server {descriptor.url} is reachable"
        if response.status_code == 401:
            return False, f"WebDAV server {descriptor.url} rejected the credentials"
        return False, f"WebDAV server {descriptor.url} answered HTTP {response.status_code}"
