"""Exceptions raised by InstallBox."""

from pathlib import Path
from typing import List, Optional


class InstallBoxError(Exception):
    pass


class HypervisorNotFoundError(InstallBoxError):
    """The VirtualBox installation directory does not exist."""

    def __init__(self, install_dir):
        self.install_dir = install_dir
        super().__init__(f"VirtualBox installation not found at {install_dir}")


class HypervisorCommandError(InstallBoxError):
    """A VBoxManage invocation exited non-zero or could not be started.

    ``returncode`` is None when the executable never ran.
    """

    def __init__(
        self,
        operation: str,
        args: List[str],
        returncode: Optional[int],
        stderr: Optional[str] = None,
    ):
        self.operation = operation
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        if returncode is None:
            message = f"VBoxManage {operation} could not be started"
        else:
            message = f"VBoxManage {operation} failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class HypervisorLaunchError(InstallBoxError):
    """The VirtualBox front end could not be started for a provisioned VM."""

    def __init__(self, descriptor_file: Path, reason: str):
        self.descriptor_file = descriptor_file
        self.reason = reason
        super().__init__(f"Could not open {descriptor_file} in VirtualBox: {reason}")


class ConfigError(InstallBoxError, ValueError):
    pass
