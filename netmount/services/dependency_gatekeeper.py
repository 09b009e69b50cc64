"""
Dependency gatekeeper.

Detects the optional OS components some mount strategies need (macFUSE,
sshfs, s3fs) and installs them on request. Detection consults several
independent signals and reports a driver as present when any of them is
positive; a failing signal counts as "not detected", never as an error.
"""

import glob
import os
import shutil
import tempfile
from typing import Callable, Dict, List, Optional

import requests

from netmount.models.schemas import DriverKind
from netmount.utils.exceptions import InstallException
from netmount.utils.logger import get_logger, log_error
from netmount.utils.process import CommandRunner
from netmount.utils.secrets import secret_file

LOG = get_logger(__name__)

INSTALL_SOURCES: Dict[str, str] = {
    DriverKind.FUSE.value: 'https://osxfuse.github.io/ (brew install --cask macfuse)',
    DriverKind.SSHFS.value: 'https://osxfuse.github.io/ (brew install sshfs)',
    DriverKind.S3FS.value: 'https://github.com/s3fs-fuse/s3fs-fuse (brew install s3fs)',
}

BREW_FORMULAE: Dict[str, str] = {
    DriverKind.FUSE.value: '--cask macfuse',
    DriverKind.SSHFS.value: 'sshfs',
    DriverKind.S3FS.value: 's3fs',
}

HOMEBREW_INSTALL = '/bin/bash -c "$(curl -fsSL https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
BREW_PREFIXES = ('/opt/homebrew/bin', '/usr/local/bin')

ProgressCallback = Callable[[str], None]


def _noop(message: str):
    pass


class DependencyGatekeeper:
    """Detects and installs optional mount drivers"""

    FILESYSTEM_BUNDLES = (
        '/Library/Filesystems/macfuse.fs',
        '/Library/Filesystems/osxfuse.fs',
    )
    DEVICE_NODES = ('/dev/macfuse0', '/dev/osxfuse0', '/dev/fuse')

    def __init__(self, config, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or CommandRunner()

    # ------------------------------------------------------------------ detection

    def is_driver_available(self, kind) -> bool:
        """
        Check whether a driver is installed.

        Args:
            kind: DriverKind or its string value

        Returns:
            True if any detection signal is positive
        """
        kind = DriverKind(kind)
        if kind == DriverKind.FUSE:
            signals = (
                self._pkgutil_lists_fuse,
                lambda: self._brew_lists('macfuse'),
                self._filesystem_bundle_present,
                self._kext_loaded,
                self._device_node_present,
            )
        else:
            signals = (
                lambda: self._binary_present(kind.value),
                lambda: self._brew_lists(kind.value),
            )

        for signal in signals:
            if self._safe(signal):
                LOG.debug(f"Driver {kind.value} detected")
                return True
        LOG.debug(f"Driver {kind.value} not detected")
        return False

    def check_all(self) -> Dict[str, bool]:
        return {kind.value: self.is_driver_available(kind) for kind in DriverKind}

    @staticmethod
    def install_source(kind) -> str:
        return INSTALL_SOURCES[DriverKind(kind).value]

    @staticmethod
    def _safe(signal: Callable[[], bool]) -> bool:
        try:
            return bool(signal())
        except Exception as e:
            LOG.debug(f"Detection signal failed: {e}")
            return False

    def _run_stdout(self, cmd: List[str]) -> str:
        result = self.runner.run(cmd, timeout=self.config.probe_timeout)
        return result.stdout.lower() if result.ok else ''

    def _pkgutil_lists_fuse(self) -> bool:
        return 'fuse' in self._run_stdout(['pkgutil', '--pkgs'])

    def _brew_lists(self, name: str) -> bool:
        brew = self._brew_path()
        if not brew:
            return False
        return name in self._run_stdout([brew, 'list'])

    def _filesystem_bundle_present(self) -> bool:
        return any(os.path.exists(path) for path in self.FILESYSTEM_BUNDLES)

    def _kext_loaded(self) -> bool:
        return 'fuse' in self._run_stdout(['kextstat'])

    def _device_node_present(self) -> bool:
        return any(os.path.exists(path) for path in self.DEVICE_NODES)

    def _binary_present(self, name: str) -> bool:
        if shutil.which(name):
            return True
        return any(os.access(os.path.join(prefix, name), os.X_OK) for prefix in BREW_PREFIXES)

    def _brew_path(self) -> Optional[str]:
        brew = shutil.which('brew')
        if brew:
            return brew
        for prefix in BREW_PREFIXES:
            candidate = os.path.join(prefix, 'brew')
            if os.access(candidate, os.X_OK):
                return candidate
        return None

    # ------------------------------------------------------------------ installation

    def install_driver(self, kind, on_progress: Optional[ProgressCallback] = None) -> str:
        """
        Install a driver with administrator privileges.

        Runs a Homebrew script (installing Homebrew first when absent) through
        the macOS administrator prompt; if that fails and a direct package is
        configured for the driver, downloads and installs it instead.

        Args:
            kind: DriverKind or its string value
            on_progress: Receives human-readable progress lines

        Returns:
            Success message

        Raises:
            InstallException: if every installation method failed
        """
        kind = DriverKind(kind)
        progress = on_progress or _noop
        progress(f"Starting {kind.value} installation...")

        try:
            self._install_with_brew(kind, progress)
            return self._installed_message(kind, progress)
        except InstallException as e:
            log_error(LOG, f"install {kind.value} via Homebrew", e)
            progress(f"Homebrew installation failed: {e.message}")
            primary_error = e

        package_url = self._package_url(kind)
        if not package_url:
            progress(f"Please install {kind.value} manually: {self.install_source(kind)}")
            raise InstallException(
                f"Failed to install {kind.value}: {primary_error.message}. "
                f"Install it manually from {self.install_source(kind)}"
            )

        try:
            self._install_from_package(kind, package_url, progress)
        except InstallException as e:
            log_error(LOG, f"install {kind.value} from package", e)
            progress(f"Please install {kind.value} manually: {self.install_source(kind)}")
            raise InstallException(
                f"Failed to install {kind.value}: {e.message}. "
                f"Install it manually from {self.install_source(kind)}"
            )
        return self._installed_message(kind, progress)

    def _installed_message(self, kind: DriverKind, progress: ProgressCallback) -> str:
        message = f"{kind.value} installed successfully"
        if kind == DriverKind.FUSE:
            message += '. Please restart your computer to complete the installation'
        progress(message)
        LOG.info(message)
        return message

    def _package_url(self, kind: DriverKind) -> Optional[str]:
        return getattr(self.config, f"{'macfuse' if kind == DriverKind.FUSE else kind.value}_pkg_url", None)

    def brew_script(self, kind: DriverKind) -> str:
        lines = ['#!/bin/bash', 'set -e']
        if not self._brew_path():
            lines += [
                'echo "Installing Homebrew..."',
                HOMEBREW_INSTALL,
                'echo "Adding Homebrew to PATH..."',
                'if [[ $(uname -m) == "arm64" ]]; then',
                '  eval "$(/opt/homebrew/bin/brew shellenv)"',
                'else',
                '  eval "$(/usr/local/bin/brew shellenv)"',
                'fi',
            ]
        lines += [
            f'echo "Installing {kind.value} via Homebrew..."',
            f"brew install {BREW_FORMULAE[kind.value]}",
            f'echo "{kind.value} installation completed!"',
        ]
        return '\n'.join(lines) + '\n'

    def _install_with_brew(self, kind: DriverKind, progress: ProgressCallback):
        progress(f"Preparing to install {kind.value}...")
        self._run_privileged_script(self.brew_script(kind), progress)

    def _install_from_package(self, kind: DriverKind, url: str, progress: ProgressCallback):
        progress(f"Downloading {kind.value} package from {url}...")
        fd, download_path = tempfile.mkstemp(prefix=f"{kind.value}_", suffix=os.path.splitext(url)[1])
        try:
            try:
                with os.fdopen(fd, 'wb') as f:
                    with requests.get(url, stream=True, timeout=self.config.request_timeout) as response:
                        response.raise_for_status()
                        for chunk in response.iter_content(chunk_size=1024 * 1024):
                            f.write(chunk)
            except (requests.RequestException, OSError) as e:
                raise InstallException(f"Download of {url} failed: {e}")

            progress(f"Installing {kind.value} package...")
            if download_path.endswith('.dmg'):
                self._install_from_dmg(download_path, progress)
            else:
                self._run_privileged_script(
                    f"#!/bin/bash\nset -e\ninstaller -pkg '{download_path}' -target /\n", progress
                )
        finally:
            if os.path.exists(download_path):
                os.unlink(download_path)

    def _install_from_dmg(self, dmg_path: str, progress: ProgressCallback):
        attach_point = tempfile.mkdtemp(prefix='netmount_dmg_')
        try:
            result = self.runner.run(
                ['hdiutil', 'attach', '-nobrowse', '-readonly', '-mountpoint', attach_point, dmg_path],
                timeout=self.config.unmount_timeout * 4,
            )
            if not result.ok:
                raise InstallException(f"Could not open disk image: {result.error_text}")
            try:
                packages = sorted(glob.glob(os.path.join(attach_point, '*.pkg')))
                if not packages:
                    raise InstallException('Disk image contains no installer package')
                self._run_privileged_script(
                    f"#!/bin/bash\nset -e\ninstaller -pkg '{packages[0]}' -target /\n", progress
                )
            finally:
                self.runner.run(['hdiutil', 'detach', attach_point], timeout=self.config.unmount_timeout)
        finally:
            try:
                os.rmdir(attach_point)
            except OSError:
                pass

    def _run_privileged_script(self, script: str, progress: ProgressCallback):
        """Run ``script`` behind the macOS administrator prompt; the script file is always removed"""
        with secret_file(script, prefix='install_script_', mode=0o700) as script_path:
            progress('Requesting administrator privileges...')
            escaped = script_path.replace('\\', '\\\\').replace('"', '\\"')
            result = self.runner.run(
                ['osascript', '-e', f'do shell script "{escaped}" with administrator privileges'],
                timeout=self.config.install_timeout,
            )
        for line in result.stdout.splitlines():
            if line.strip():
                progress(line.strip())
        if not result.ok:
            raise InstallException(f"Command failed: {result.error_text}")
