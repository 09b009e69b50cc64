"""
File lock manager for netmount state mutations.
Uses file-based locking so only one thread or process at a time performs
a read-modify-write of shared state such as the mount registry.
"""

import errno
import fcntl
import os
import threading
import time
from contextlib import contextmanager
from typing import Optional

from netmount.utils.logger import get_logger

LOG = get_logger(__name__)


class LockManager:
    """
    Manages named exclusive locks.
    Uses flock for cross-process synchronization; a per-name thread lock
    covers threads of the same process, since flock is per open file.
    """

    LOCK_TIMEOUT = 30

    def __init__(self, lock_dir: str, timeout: int = LOCK_TIMEOUT):
        """
        Initialize the lock manager.

        Args:
            lock_dir: Directory to store lock files
            timeout: Maximum time to wait for lock acquisition in seconds
        """
        self.lock_dir = lock_dir
        self.timeout = timeout
        self._thread_locks = {}
        self._guard = threading.Lock()

        os.makedirs(self.lock_dir, mode=0o700, exist_ok=True)

    def _thread_lock(self, name: str) -> threading.Lock:
        with self._guard:
            return self._thread_locks.setdefault(name, threading.Lock())

    @contextmanager
    def acquire_lock(self, operation: str = 'registry'):
        """
        Context manager to acquire an exclusive lock.

        Args:
            operation: Name of the lock (used in lock filename)

        Yields:
            bool: True once the lock is held

        Raises:
            TimeoutError: If lock cannot be acquired within timeout period

        Example:
            with lock_manager.acquire_lock('registry'):
                # read, mutate, write
                pass
        """
        lock_file_path = os.path.join(self.lock_dir, f"netmount_{operation}.lock")
        thread_lock = self._thread_lock(operation)
        start_time = time.time()

        if not thread_lock.acquire(timeout=self.timeout):
            raise TimeoutError(
                f"Could not acquire lock for {operation} after {self.timeout} seconds"
            )

        lock_file = None
        acquired = False
        try:
            lock_file = open(lock_file_path, 'w')

            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    acquired = True
                    LOG.debug(f"Acquired lock for {operation}")
                    break
                except OSError as e:
                    if e.errno not in (errno.EAGAIN, errno.EACCES):
                        raise

                    elapsed = time.time() - start_time
                    if elapsed >= self.timeout:
                        raise TimeoutError(
                            f"Could not acquire lock for {operation} "
                            f"after {self.timeout} seconds"
                        )

                    time.sleep(0.05)
                    LOG.debug(f"Waiting for lock on {operation} ({elapsed:.1f}s elapsed)...")

            yield True

        finally:
            if acquired and lock_file:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
                    LOG.debug(f"Released lock for {operation}")
                except OSError as e:
                    LOG.error(f"Error releasing lock: {e}")

            if lock_file:
                try:
                    lock_file.close()
                except OSError as e:
                    LOG.error(f"Error closing lock file: {e}")

            thread_lock.release()


def get_lock_manager(config) -> LockManager:
    """Build the lock manager for a configuration"""
    return LockManager(lock_dir=config.lock_dir, timeout=config.lock_timeout)
