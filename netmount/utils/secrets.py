"""Short-lived credential files"""

import os
import shlex
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

from netmount.utils.logger import get_logger

LOG = get_logger(__name__)

TEMP_DIR_NAME = 'netmount'


def _temp_dir() -> str:
    path = os.path.join(tempfile.gettempdir(), TEMP_DIR_NAME)
    os.makedirs(path, mode=0o700, exist_ok=True)
    return path


def _remove(path: Optional[str]):
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        LOG.error(f"Failed to remove temporary credential file {path}: {e}")


@contextmanager
def secret_file(content: str, prefix: str = 'secret_', mode: int = 0o600) -> Iterator[str]:
    """
    Write ``content`` to a private temp file and yield its path.

    The file is created with ``mode`` before any byte is written and is
    always removed on exit, including when the body raises or times out.
    """
    fd, path = tempfile.mkstemp(prefix=prefix, dir=_temp_dir())
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, 'w') as f:
            f.write(content)
        yield path
    finally:
        _remove(path)


@contextmanager
def askpass_script(password_file: str) -> Iterator[str]:
    """Yield an executable SSH_ASKPASS helper that prints ``password_file``"""
    content = f"#!/bin/sh\ncat {shlex.quote(password_file)}\n"
    with secret_file(content, prefix='askpass_', mode=0o700) as path:
        yield path
