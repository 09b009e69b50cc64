"""
Reconciliation of the mount registry against the live OS mount table.

The registry stays the source of truth for listing. The OS table is only
consulted to answer "is this still mounted", and that answer is best
effort: Finder-mounted volumes may be auto-named differently from the
path we recorded, so paths under the volumes directory are additionally
matched by scanning mount sources for the recorded server identity.
"""

import os
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from netmount.models.schemas import MountRecord
from netmount.services.registry import MountRegistry
from netmount.utils.exceptions import RegistryIOException
from netmount.utils.logger import get_logger, log_error
from netmount.utils.masking import strip_userinfo
from netmount.utils.process import CommandRunner

LOG = get_logger(__name__)

# "<source> on <path> (<fstype>, <options>)" on macOS,
# "<source> on <path> type <fstype> (<options>)" on Linux
_MOUNT_LINE_RE = re.compile(r'^(?P<source>.+?) on (?P<path>.+?)(?: type (?P<type>\S+))? \((?P<opts>[^)]*)\)\s*$')


@dataclass
class MountTableEntry:
    source: str
    path: str
    fstype: str = ''


def parse_mount_table(output: str) -> List[MountTableEntry]:
    """Parse the output of ``mount``"""
    entries = []
    for line in output.splitlines():
        match = _MOUNT_LINE_RE.match(line.strip())
        if not match:
            continue
        fstype = match.group('type') or match.group('opts').split(',')[0].strip()
        entries.append(MountTableEntry(match.group('source'), match.group('path'), fstype))
    return entries


def source_matches(record: MountRecord, source: str) -> bool:
    """Heuristic: does a mount-table source belong to the record's server?"""
    source = strip_userinfo(source).lower()
    if record.type == 'ftp' and record.host:
        return f"ftp://{record.host.lower()}" in source
    if record.type == 'sftp' and record.host:
        return f"sftp://{record.host.lower()}" in source or f"{record.host.lower()}:/" in source
    if record.type == 'samba' and record.host and record.share:
        return f"//{record.host.lower()}/{record.share.lower()}" in source
    if record.type == 'webdav' and record.url:
        return strip_userinfo(record.url).lower().rstrip('/') in source
    return False


class ReconciliationService:
    """Service for reconciling mount state"""

    def __init__(self, config, registry: MountRegistry, runner: Optional[CommandRunner] = None):
        self.config = config
        self.registry = registry
        self.runner = runner or CommandRunner()

    def mount_table(self) -> Optional[List[MountTableEntry]]:
        """Live OS mount table, or None if it could not be read"""
        result = self.runner.run(['mount'], timeout=self.config.mount_table_timeout)
        if not result.ok:
            LOG.warning(f"Could not read mount table: {result.error_text}")
            return None
        return parse_mount_table(result.stdout)

    def list_mounts(self) -> List[MountRecord]:
        """Registry contents, verbatim; stale entries are not filtered here"""
        return self.registry.list()

    def is_mounted(self, mount_point: str, table: Optional[List[MountTableEntry]] = None) -> bool:
        """
        Best-effort check that ``mount_point`` is mounted.

        Args:
            mount_point: Path to check
            table: Pre-read mount table (read on demand when omitted)

        Returns:
            True on an exact path match, or for paths under the volumes
            directory, when a volume's source matches the registry
            identity recorded for ``mount_point``
        """
        if table is None:
            table = self.mount_table()
        if not table:
            return False

        normalized = os.path.normpath(mount_point)
        if any(os.path.normpath(entry.path) == normalized for entry in table):
            return True

        volumes_dir = os.path.normpath(self.config.volumes_dir)
        if not normalized.startswith(volumes_dir + os.sep):
            return False

        try:
            record = self.registry.find_by_mount_point(normalized)
        except RegistryIOException as e:
            log_error(LOG, f"is_mounted {mount_point}", e)
            return False
        if record is None:
            return False

        for entry in table:
            if entry.path.startswith(volumes_dir + os.sep) and source_matches(record, entry.source):
                LOG.debug(f"{mount_point} matched volume {entry.path} ({entry.source})")
                return True
        return False

    def get_reconciliation_status(self) -> Dict:
        """
        Get current reconciliation status for monitoring.

        Returns:
            Dictionary with every registry entry and its live state, plus
            the entries the OS no longer reports
        """
        table = self.mount_table()
        status = {
            'mount_table_available': table is not None,
            'mounts': [],
            'inconsistencies': [],
        }

        for record in self.registry.list():
            mounted = self.is_mounted(record.mount_point, table=table) if table is not None else None
            entry = dict(record.to_dict(), is_mounted=mounted)
            status['mounts'].append(entry)
            if mounted is False:
                status['inconsistencies'].append({
                    'mount_point': record.mount_point,
                    'type': record.type,
                    'issue': 'registered_but_not_mounted',
                })
        return status

    def reconcile(self, prune: bool = True) -> Dict:
        """
        Cross-check the registry with the OS mount table.

        Args:
            prune: Remove entries the OS no longer reports as mounted

        Returns:
            {'checked': n, 'stale': [mount points], 'removed': n}
        """
        LOG.info("Starting reconciliation...")
        table = self.mount_table()
        records = self.registry.list()
        if table is None:
            LOG.warning("Mount table unavailable, skipping reconciliation")
            return {'checked': len(records), 'stale': [], 'removed': 0}

        stale = [r.mount_point for r in records if not self.is_mounted(r.mount_point, table=table)]
        removed = 0
        if stale and prune:
            removed = self.registry.remove_many(stale)
            for mount_point in stale:
                LOG.info(f"Removed stale registry entry {mount_point}")

        LOG.info(f"Reconciliation complete: {len(records)} checked, {len(stale)} stale, {removed} removed")
        return {'checked': len(records), 'stale': stale, 'removed': removed}
