"""Models package"""

from netmount.models.database import Base, ConnectionProfile, DatabaseManager
from netmount.models.schemas import (
    AttemptOutcome,
    ConnectionDescriptor,
    DriverKind,
    MountAttempt,
    MountRecord,
    MountResponse,
    StrategyKind,
)

__all__ = [
    'AttemptOutcome',
    'Base',
    'ConnectionDescriptor',
    'ConnectionProfile',
    'DatabaseManager',
    'DriverKind',
    'MountAttempt',
    'MountRecord',
    'MountResponse',
    'StrategyKind',
]
