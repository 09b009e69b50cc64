"""Custom exceptions for netmount"""

from typing import Dict, Iterable, Optional

from netmount.utils.masking import mask_string


class NetMountException(Exception):
    """Base exception for netmount"""

    def __init__(self, message: str = ''):
        super().__init__(mask_string(message))

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ''


class ValidationException(NetMountException):
    """Exception raised when a connection descriptor is incomplete"""
    pass


class PrivateKeyNotFoundException(ValidationException):
    """Exception raised when an SFTP private key file does not exist"""

    def __init__(self, key_path: str):
        self.key_path = key_path
        super().__init__(f"Private key file not found: {key_path}")


class DependencyMissingException(NetMountException):
    """Exception raised when a required OS driver or tool is absent"""

    def __init__(self, message: str, missing: Optional[Dict[str, str]] = None):
        # missing maps driver kind -> where to obtain it
        self.missing = dict(missing or {})
        super().__init__(message)

    @property
    def hint(self) -> str:
        return install_hint(self.missing)


class AttemptFailure(NetMountException):
    """Exception raised by a single mount strategy"""
    pass


class AggregatedMountFailure(NetMountException):
    """Exception raised when every mount strategy has failed"""

    def __init__(self, message: str, last_failure: Optional[str] = None,
                 hint: Optional[str] = None):
        self.last_failure = mask_string(last_failure)
        self.hint = hint
        super().__init__(message)


class DuplicateMountException(NetMountException):
    """Exception raised when the identity is already mounted and duplicates are rejected"""
    pass


class RegistryIOException(NetMountException):
    """Exception raised when the mount registry cannot be read or written"""
    pass


class UnmountException(NetMountException):
    """Exception raised during unmount operations"""
    pass


class InstallException(NetMountException):
    """Exception raised when a driver installation fails"""
    pass


class ConfigurationException(NetMountException):
    """Exception raised for configuration errors"""
    pass


class MessagingException(NetMountException):
    """Exception raised for messaging errors"""
    pass


class DatabaseException(NetMountException):
    """Exception raised for saved-connection store errors"""
    pass


def missing_hint(missing: Iterable[str], sources: Dict[str, str]) -> Dict[str, str]:
    """Map each missing driver kind to its install source."""
    return {kind: sources.get(kind, 'your package manager') for kind in missing}


def install_hint(missing: Dict[str, str]) -> str:
    """Render ``{kind: source}`` as a remediation sentence."""
    return '; '.join(f"install {kind} from {source}" for kind, source in missing.items())
