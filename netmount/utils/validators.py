"""Validation utilities"""

import re
from typing import Dict, List, Tuple
from urllib.parse import urlparse

# Fields each connection type must carry before any OS call is made
REQUIRED_FIELDS: Dict[str, Tuple[str, ...]] = {
    'ftp': ('host',),
    'sftp': ('host', 'username'),
    'samba': ('host', 'share'),
    'webdav': ('url',),
    's3': ('bucket', 'region', 'access_key_id', 'secret_access_key'),
}

SUPPORTED_TYPES = tuple(REQUIRED_FIELDS)


def missing_fields(connection_type: str, values: Dict) -> List[str]:
    """Return the required fields absent (or blank) in ``values``"""
    return [
        field for field in REQUIRED_FIELDS.get(connection_type, ())
        if values.get(field) in (None, '')
    ]


def validate_mount_path(path: str) -> bool:
    """Validate mount path"""
    return path.startswith('/') and '..' not in path.split('/')


def validate_port(port) -> bool:
    """Validate TCP port"""
    try:
        return 0 < int(port) < 65536
    except (TypeError, ValueError):
        return False


def validate_webdav_url(url: str) -> bool:
    """Validate WebDAV URL (http or https with a host)"""
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.hostname)


def validate_s3_bucket(bucket: str) -> bool:
    """Validate S3 bucket name"""
    pattern = r'^[a-z0-9][a-z0-9.\-]*[a-z0-9]$'
    return bool(re.match(pattern, bucket)) and 3 <= len(bucket) <= 63


def sanitize_volume_name(name: str) -> str:
    """Make a name safe to use as a single path component"""
    return re.sub(r'[^a-zA-Z0-9\-_.]', '-', name)


def validate_and_fix_rabbitmq_url(url: str) -> str:
    """
    Validate and fix RabbitMQ URL.

    Converts common incorrect formats:
    - rabbit:// → amqp://
    - rabbitmq:// → amqp://
    - Adds default port if missing

    Args:
        url: RabbitMQ URL

    Returns:
        Corrected URL

    Raises:
        ValueError: If URL is invalid after fixes
    """
    if not url:
        raise ValueError("RabbitMQ URL cannot be empty")

    if url.startswith('rabbit://'):
        url = url.replace('rabbit://', 'amqp://', 1)
    elif url.startswith('rabbitmq://'):
        url = url.replace('rabbitmq://', 'amqp://', 1)
    elif url.startswith('rabbits://'):
        url = url.replace('rabbits://', 'amqps://', 1)

    parsed = urlparse(url)

    if parsed.scheme not in ['amqp', 'amqps']:
        raise ValueError(
            f"Invalid RabbitMQ URL scheme: '{parsed.scheme}'. "
            f"Must be 'amqp://' or 'amqps://'"
        )

    if not parsed.port:
        default_port = 5672 if parsed.scheme == 'amqp' else 5671
        netloc = f"{parsed.netloc}:{default_port}"
        url = f"{parsed.scheme}://{netloc}{parsed.path}"
        if parsed.query:
            url += f"?{parsed.query}"

    return url
