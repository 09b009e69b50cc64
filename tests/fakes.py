"""
Shared test doubles: a scripted command runner and a driver gatekeeper stub
"""

import os
import threading
from collections import namedtuple

from netmount.config import NetMountConfig
from netmount.models.schemas import DriverKind
from netmount.services.dependency_gatekeeper import INSTALL_SOURCES
from netmount.utils.process import CommandResult

RecordedCall = namedtuple('RecordedCall', ['cmd', 'timeout', 'env'])

OK = CommandResult(0)


def failed(stderr='failed', returncode=1):
    return CommandResult(returncode, '', stderr)


class RecordingRunner:
    """
    Command runner that never touches the OS.

    Results are scripted by command prefix; the first matching rule wins.
    A rule's result may be a callable ``(cmd, env) -> CommandResult`` for
    commands whose effect must be observed while they "run".
    """

    def __init__(self, default=None):
        self.rules = []
        self.default = default or failed('no result scripted')
        self.calls = []
        self._lock = threading.Lock()

    def when(self, *prefix, result=OK):
        self.rules.append((tuple(prefix), result))
        return self

    def run(self, cmd, timeout=30, env=None):
        with self._lock:
            self.calls.append(RecordedCall(list(cmd), timeout, env))
        for prefix, result in self.rules:
            if tuple(cmd[:len(prefix)]) == prefix:
                return result(cmd, env) if callable(result) else result
        return self.default

    @property
    def programs(self):
        return [call.cmd[0] for call in self.calls]

    def calls_to(self, program):
        return [call for call in self.calls if call.cmd[0] == program]


class StubGatekeeper:
    """Reports a fixed set of drivers as installed"""

    def __init__(self, available=('fuse', 'sshfs', 's3fs')):
        self.available = set(available)
        self.checked = []

    def is_driver_available(self, kind):
        kind = DriverKind(kind).value
        self.checked.append(kind)
        return kind in self.available

    def check_all(self):
        return {kind.value: kind.value in self.available for kind in DriverKind}

    @staticmethod
    def install_source(kind):
        return INSTALL_SOURCES[DriverKind(kind).value]


def make_config(root, **overrides):
    """Configuration rooted in a scratch directory"""
    overrides.setdefault('volumes_dir', os.path.join(root, 'Volumes'))
    config = NetMountConfig(data_dir=os.path.join(root, 'data'), **overrides)
    config.ensure_directories()
    return config
