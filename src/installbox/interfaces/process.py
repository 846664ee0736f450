"""Abstract interface for process execution."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class ProcessResult:
    """Result of process execution."""

    returncode: int
    stdout: str
    stderr: str


class ProcessRunner(ABC):
    """Abstract interface for process execution.

    Implementations must never change the working directory of the calling
    process; ``cwd`` applies only to the child.
    """

    @abstractmethod
    def run(
        self,
        command: List[str],
        capture_output: bool = True,
        timeout: Optional[int] = None,
        check: bool = True,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> ProcessResult:
        """Run a command and wait for it to finish."""
        pass

    @abstractmethod
    def spawn(self, command: List[str], cwd: Optional[Path] = None) -> int:
        """Start a command detached from this process. Returns its PID."""
        pass
