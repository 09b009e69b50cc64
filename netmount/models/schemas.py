"""Data schemas and validation"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from netmount.utils.exceptions import AttemptFailure, ValidationException
from netmount.utils.masking import strip_userinfo
from netmount.utils.validators import SUPPORTED_TYPES, missing_fields, validate_port

DEFAULT_PORTS = {'ftp': 21, 'sftp': 22, 'samba': 445}

# Wire/profile aliases accepted by from_dict
_CAMEL_ALIASES = {
    'mountPoint': 'mount_point',
    'privateKeyPath': 'private_key_path',
    'accessKeyId': 'access_key_id',
    'secretAccessKey': 'secret_access_key',
}


class StrategyKind(str, Enum):
    """Families of OS-level mount methods, in decreasing preference"""
    NATIVE = 'native'
    SCRIPTED = 'scripted'
    DRIVER = 'driver'
    GENERIC = 'generic'


class DriverKind(str, Enum):
    """Optional OS components some strategies depend on"""
    FUSE = 'fuse'
    SSHFS = 'sshfs'
    S3FS = 's3fs'


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Immutable description of one remote storage connection"""
    type: str
    name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    mount_point: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    private_key_path: Optional[str] = None
    share: Optional[str] = None
    domain: Optional[str] = None
    url: Optional[str] = None
    bucket: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = field(default=None, repr=False)
    secret_access_key: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectionDescriptor':
        """
        Build a descriptor from a request or profile dictionary.

        Accepts snake_case and camelCase keys; unknown keys are ignored.

        Raises:
            ValidationException: if ``type`` is missing or unsupported
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            key = _CAMEL_ALIASES.get(key, key)
            if key in known and value not in (None, ''):
                values[key] = value

        conn_type = str(values.get('type', '')).lower()
        if conn_type not in SUPPORTED_TYPES:
            raise ValidationException(
                f"Unsupported connection type: {values.get('type')!r}. "
                f"Supported types: {', '.join(SUPPORTED_TYPES)}"
            )
        values['type'] = conn_type

        if 'port' in values:
            if not validate_port(values['port']):
                raise ValidationException(f"Invalid port: {values['port']!r}")
            values['port'] = int(values['port'])

        return cls(**values)

    def to_dict(self, include_secrets: bool = True) -> Dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if not include_secrets:
            for key in ('password', 'access_key_id', 'secret_access_key'):
                data.pop(key, None)
        return data

    def validate(self):
        """
        Check the fields required by the connection type.

        Raises:
            ValidationException: naming every missing field
        """
        missing = missing_fields(self.type, asdict(self))
        if missing:
            label = self.name or self.type
            raise ValidationException(
                f"Missing required field(s) for {self.type} connection {label}: "
                f"{', '.join(missing)}"
            )

    @property
    def effective_port(self) -> Optional[int]:
        return self.port or DEFAULT_PORTS.get(self.type)

    def secrets(self) -> Tuple[Optional[str], ...]:
        """Values that must never be logged in clear text"""
        return (self.password, self.access_key_id, self.secret_access_key)

    def identity(self) -> Dict[str, str]:
        """Protocol-appropriate server identity (what a MountRecord stores)"""
        if self.type == 'webdav':
            return {'type': self.type, 'url': strip_userinfo(self.url)}
        if self.type == 's3':
            return {'type': self.type, 'bucket': self.bucket}
        if self.type == 'samba':
            return {'type': self.type, 'host': self.host, 'share': self.share}
        return {'type': self.type, 'host': self.host}


@dataclass
class MountRecord:
    """One entry of the mount registry"""
    type: str
    mount_point: str
    timestamp: str = field(default_factory=utc_timestamp)
    host: Optional[str] = None
    share: Optional[str] = None
    url: Optional[str] = None
    bucket: Optional[str] = None

    @classmethod
    def for_descriptor(cls, descriptor: ConnectionDescriptor, mount_point: str) -> 'MountRecord':
        return cls(mount_point=mount_point, **descriptor.identity())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MountRecord':
        known = {f.name for f in fields(cls)}
        values = {_CAMEL_ALIASES.get(k, k): v for k, v in data.items()}
        return cls(**{k: v for k, v in values.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def identity(self) -> Dict[str, Optional[str]]:
        identity = {'type': self.type}
        for key in ('host', 'share', 'url', 'bucket'):
            if getattr(self, key) is not None:
                identity[key] = getattr(self, key)
        return identity

    def matches(self, descriptor: ConnectionDescriptor) -> bool:
        """True when this record holds the same server identity"""
        return self.identity() == {k: v for k, v in descriptor.identity().items() if v is not None}


@dataclass
class AttemptOutcome:
    """Success(resolved mount point) or Failure(reason)"""
    success: bool
    mount_point: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, mount_point: str) -> 'AttemptOutcome':
        return cls(success=True, mount_point=mount_point)

    @classmethod
    def failed(cls, reason: str) -> 'AttemptOutcome':
        return cls(success=False, reason=reason)


@dataclass
class MountAttempt:
    """
    One strategy of a chain.

    ``action`` receives the command runner and this attempt's timeout and
    returns an AttemptOutcome; raising AttemptFailure is equivalent to
    returning a failed outcome.
    """
    description: str
    kind: StrategyKind
    action: Callable[[Any, int], AttemptOutcome]
    requires: Tuple[DriverKind, ...] = ()

    def execute(self, runner, timeout: int) -> AttemptOutcome:
        try:
            return self.action(runner, timeout)
        except AttemptFailure as e:
            return AttemptOutcome.failed(e.message)


@dataclass
class MountResponse:
    """Control-surface response envelope"""
    success: bool
    message: Optional[str] = None
    mount_point: Optional[str] = None
    error: Optional[str] = None
    data: Optional[Any] = None

    @classmethod
    def ok(cls, message: str, mount_point: Optional[str] = None, data: Any = None) -> 'MountResponse':
        return cls(success=True, message=message, mount_point=mount_point, data=data)

    @classmethod
    def fail(cls, error: str) -> 'MountResponse':
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def records_to_dicts(records: List[MountRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]
