"""External command execution"""

import os
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional

from netmount.utils.logger import get_logger

LOG = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command"""
    returncode: int
    stdout: str = ''
    stderr: str = ''
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def error_text(self) -> str:
        """Best human-readable failure description"""
        if self.timed_out:
            return self.stderr or 'command timed out'
        return (self.stderr or self.stdout or f'exit code {self.returncode}').strip()


class CommandRunner:
    """Runs OS commands with a hard timeout; never raises on command failure"""

    def run(self, cmd: List[str], timeout: float = 30,
            env: Optional[Dict[str, str]] = None) -> CommandResult:
        """
        Run command.

        Args:
            cmd: Command as list of strings
            timeout: Seconds before the child is killed
            env: Extra environment variables (merged over os.environ)

        Returns:
            CommandResult
        """
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=full_env,
                stdin=subprocess.DEVNULL,
            )
            return CommandResult(result.returncode, result.stdout or '', result.stderr or '')
        except subprocess.TimeoutExpired:
            # subprocess.run kills the child before re-raising
            return CommandResult(-1, '', f'Command timeout after {timeout} seconds', timed_out=True)
        except FileNotFoundError as e:
            return CommandResult(127, '', f'Command not found: {e.filename or cmd[0]}')
        except OSError as e:
            return CommandResult(-1, '', str(e))
