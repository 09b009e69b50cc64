"""
Mount registry.

A single JSON document ``{"mounts": [...]}`` listing the mounts this tool
created. It is the authoritative source for listing, independent of what
the OS mount table currently reports. Every mutation is a full
read-modify-write performed under the registry file lock.
"""

import json
import os
import tempfile
from typing import Callable, List, Optional

from netmount.lock_manager import LockManager
from netmount.models.schemas import ConnectionDescriptor, MountRecord
from netmount.utils.exceptions import RegistryIOException
from netmount.utils.logger import get_logger

LOG = get_logger(__name__)

LOCK_NAME = 'registry'


class MountRegistry:
    """Durable record of active mounts"""

    def __init__(self, path: str, lock_manager: LockManager):
        self.path = path
        self.lock_manager = lock_manager

    def initialize(self):
        """Ensure the registry directory and document exist"""
        try:
            os.makedirs(os.path.dirname(self.path) or '.', mode=0o700, exist_ok=True)
            with self._locked():
                if not os.path.exists(self.path):
                    self._write([])
                    LOG.info(f"Created mount registry at {self.path}")
        except OSError as e:
            raise RegistryIOException(f"Failed to initialize registry {self.path}: {e}")

    def list(self) -> List[MountRecord]:
        """Return every record, in insertion order"""
        return self._read()

    def find_by_mount_point(self, mount_point: str) -> Optional[MountRecord]:
        wanted = os.path.normpath(mount_point)
        for record in self._read():
            if os.path.normpath(record.mount_point) == wanted:
                return record
        return None

    def find_by_identity(self, descriptor: ConnectionDescriptor) -> List[MountRecord]:
        return [record for record in self._read() if record.matches(descriptor)]

    def add(self, record: MountRecord) -> MountRecord:
        """Add a record, replacing any record with the same mount point"""
        def mutate(records: List[MountRecord]) -> List[MountRecord]:
            kept = [r for r in records if r.mount_point != record.mount_point]
            if len(kept) != len(records):
                LOG.info(f"Replacing registry entry for {record.mount_point}")
            kept.append(record)
            return kept

        self._update(mutate)
        LOG.info(f"Registered {record.type} mount at {record.mount_point}")
        return record

    def remove(self, mount_point: str) -> bool:
        """Remove the record matching ``mount_point`` exactly; True if one was removed"""
        removed = []

        def mutate(records: List[MountRecord]) -> List[MountRecord]:
            kept = [r for r in records if r.mount_point != mount_point]
            removed.extend(r for r in records if r.mount_point == mount_point)
            return kept

        self._update(mutate)
        if removed:
            LOG.info(f"Removed registry entry for {mount_point}")
        return bool(removed)

    def remove_many(self, mount_points: List[str]) -> int:
        targets = set(mount_points)
        count = []

        def mutate(records: List[MountRecord]) -> List[MountRecord]:
            kept = [r for r in records if r.mount_point not in targets]
            count.append(len(records) - len(kept))
            return kept

        self._update(mutate)
        return count[0]

    def _update(self, mutate: Callable[[List[MountRecord]], List[MountRecord]]):
        try:
            with self._locked():
                self._write(mutate(self._read()))
        except OSError as e:
            raise RegistryIOException(f"Failed to update registry {self.path}: {e}")

    def _locked(self):
        # TimeoutError from the lock is an OSError, reported as RegistryIOException
        return self.lock_manager.acquire_lock(LOCK_NAME)

    def _read(self) -> List[MountRecord]:
        try:
            with open(self.path, 'r') as f:
                content = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise RegistryIOException(f"Failed to read registry {self.path}: {e}")

        if not content.strip():
            return []
        try:
            document = json.loads(content)
            return [MountRecord.from_dict(item) for item in document.get('mounts', [])]
        except (ValueError, TypeError, AttributeError) as e:
            raise RegistryIOException(f"Corrupt registry {self.path}: {e}")

    def _write(self, records: List[MountRecord]):
        directory = os.path.dirname(self.path) or '.'
        os.makedirs(directory, mode=0o700, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix='.mounts_', dir=directory)
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump({'mounts': [r.to_dict() for r in records]}, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
