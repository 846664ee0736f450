"""VBoxManage command wrapper."""

import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from installbox.errors import (
    HypervisorCommandError,
    HypervisorLaunchError,
    HypervisorNotFoundError,
)
from installbox.interfaces.process import ProcessResult, ProcessRunner
from installbox.logging import get_logger
from installbox.paths import frontend_executable, manage_executable

log = get_logger(__name__)

DEFAULT_FOLDER_LABEL = "Default machine folder:"


class HypervisorClient:
    """Run VBoxManage operations from a VirtualBox installation directory.

    Every call passes the installation directory to the child process as its
    working directory; the caller's own working directory is left alone.
    """

    def __init__(self, install_dir: Path, runner: Optional[ProcessRunner] = None):
        if runner is None:
            from installbox.backends.subprocess_runner import SubprocessRunner

            runner = SubprocessRunner()
        self.install_dir = Path(install_dir)
        self.runner = runner

    @property
    def executable(self) -> Path:
        return manage_executable(self.install_dir)

    def is_installed(self) -> bool:
        return self.install_dir.is_dir()

    def ensure_installed(self) -> None:
        if not self.is_installed():
            raise HypervisorNotFoundError(self.install_dir)

    def command(self, operation: str, args: Sequence[str] = ()) -> List[str]:
        return [str(self.executable), operation, *[str(a) for a in args]]

    def run(self, operation: str, args: Sequence[str] = (), quiet: bool = True) -> ProcessResult:
        """Run ``VBoxManage <operation> <args...>``.

        With ``quiet=False`` the tool writes its progress straight to the
        terminal and the returned stdout is empty.
        """
        cmd = self.command(operation, args)
        log.debug("vboxmanage.run", operation=operation, args=cmd[2:])
        try:
            return self.runner.run(cmd, capture_output=quiet, check=True, cwd=self.install_dir)
        except subprocess.CalledProcessError as e:
            raise HypervisorCommandError(operation, cmd[2:], e.returncode, e.stderr) from e
        except OSError as e:
            raise HypervisorCommandError(operation, cmd[2:], None, str(e)) from e

    def get_default_machine_folder(self) -> Optional[Path]:
        """VirtualBox's configured default machine folder, if it exists.

        Best effort: a failed or unstartable query is logged at debug level
        and yields None.
        """
        try:
            result = self.run("list", ["systemproperties"])
            for line in result.stdout.splitlines():
                if line.startswith(DEFAULT_FOLDER_LABEL):
                    folder = line[len(DEFAULT_FOLDER_LABEL):].strip()
                    if folder and Path(folder).is_dir():
                        return Path(folder)
                    log.debug("default_machine_folder_missing", path=folder)
                    return None
        except HypervisorCommandError as e:
            log.debug("default_machine_folder_query_failed", error=str(e))
        return None

    def launch(self, descriptor_file: Path) -> int:
        """Open the VM in the VirtualBox front end without waiting for it."""
        cmd = [str(frontend_executable(self.install_dir)), str(descriptor_file)]
        log.debug("virtualbox.launch", descriptor=str(descriptor_file))
        try:
            return self.runner.spawn(cmd, cwd=self.install_dir)
        except OSError as e:
            raise HypervisorLaunchError(Path(descriptor_file), str(e)) from e
