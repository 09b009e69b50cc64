"""S3 strategy provider (s3fs-fuse)"""

from typing import List, Tuple

import requests

from netmount.drivers.base import BaseStrategyProvider
from netmount.models.schemas import (
    AttemptOutcome,
    ConnectionDescriptor,
    DriverKind,
    MountAttempt,
    StrategyKind,
)
from netmount.utils.exceptions import ValidationException
from netmount.utils.logger import get_logger
from netmount.utils.masking import Redactor
from netmount.utils.process import CommandRunner
from netmount.utils.validators import validate_s3_bucket

LOG = get_logger(__name__)

# Status codes an unsigned HEAD gets from an existing bucket
BUCKET_EXISTS_STATUS = (200, 301, 307, 403)


class S3Provider(BaseStrategyProvider):
    """Mounts S3 buckets with s3fs; there is no Finder or AppleScript path for S3."""

    connection_type = 's3'

    def preflight(self, descriptor: ConnectionDescriptor):
        if not validate_s3_bucket(descriptor.bucket):
            raise ValidationException(f"Invalid S3 bucket name: {descriptor.bucket}")

    def default_volume_name(self, descriptor: ConnectionDescriptor) -> str:
        return descriptor.bucket

    def mount_options(self, descriptor: ConnectionDescriptor) -> str:
        return ','.join([
            'use_path_request_style',
            f"url={self.config.s3_endpoint_url}",
            f"use_cache={self.config.s3_cache_dir}",
            'allow_other',
            f"region={descriptor.region}",
            'enable_noobj_cache',
            'enable_content_md5',
            'umask=022',
            'dbglevel=warn',
            'retries=5',
            'connect_timeout=30',
        ])

    def build_attempts(self, descriptor: ConnectionDescriptor,
                       mount_point: str) -> List[MountAttempt]:
        redactor = Redactor(descriptor.secrets())
        cmd = ['s3fs', descriptor.bucket, mount_point, '-o', self.mount_options(descriptor)]
        # Credentials travel in the environment, never on the command line
        env = {
            'AWSACCESSKEYID': descriptor.access_key_id,
            'AWSSECRETACCESSKEY': descriptor.secret_access_key,
        }

        def action(runner: CommandRunner, timeout: int) -> AttemptOutcome:
            outcome = self.run_step(runner, cmd, timeout, mount_point, redactor, env=env)
            if not outcome.success:
                return outcome
            listing = runner.run(['ls', '-la', mount_point], timeout=timeout)
            if not listing.ok:
                return AttemptOutcome.failed(
                    redactor(f"s3fs reported success but {mount_point} is not readable: {listing.error_text}")
                )
            return outcome

        return [
            MountAttempt(
                description='s3fs',
                kind=StrategyKind.DRIVER,
                action=action,
                requires=(DriverKind.S3FS,),
            )
        ]

    def bucket_url(self, descriptor: ConnectionDescriptor) -> str:
        return f"{self.config.s3_endpoint_url.rstrip('/')}/{descriptor.bucket}"

    def probe(self, descriptor: ConnectionDescriptor,
              runner: CommandRunner) -> Tuple[bool, str]:
        url = self.bucket_url(descriptor)
        try:
            response = requests.head(url, timeout=self.config.probe_timeout, allow_redirects=False)
        except requests.RequestException as e:
            return False, f"S3 endpoint for bucket {descriptor.bucket} is not reachable: {e}"

        if response.status_code in BUCKET_EXISTS_STATUS:
            return True, f"S3 bucket {descriptor.bucket} exists (HTTP {response.status_code})"
        if response.status_code == 404:
            return False, f"S3 bucket {descriptor.bucket} does not exist"
        return False, f"Unexpected response for bucket {descriptor.bucket}: HTTP {response.status_code}"
