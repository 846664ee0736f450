"""
Pytest fixtures and test doubles for InstallBox tests.
"""
import logging
import os
import subprocess
from typing import Dict, List, Optional
from unittest.mock import MagicMock, patch

import pytest

from installbox.interfaces.process import ProcessResult, ProcessRunner
from installbox.interfaces.prompt import PathPrompter


class RecordingRunner(ProcessRunner):
    """ProcessRunner that records commands instead of executing them.

    ``responses`` maps a VBoxManage operation name to either stdout text or
    an exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.responses = responses or {}
        self.calls: List[dict] = []
        self.spawned: List[dict] = []
        self.cwd_seen: List[str] = []

    def run(self, command, capture_output=True, timeout=None, check=True, cwd=None, env=None):
        self.cwd_seen.append(os.getcwd())
        self.calls.append(
            {"command": list(command), "capture_output": capture_output, "cwd": cwd, "check": check}
        )
        response = self.responses.get(command[1], "")
        if isinstance(response, Exception):
            raise response
        return ProcessResult(returncode=0, stdout=response, stderr="")

    def spawn(self, command, cwd=None):
        self.spawned.append({"command": list(command), "cwd": cwd})
        return 4242

    @property
    def operations(self) -> List[str]:
        return [c["command"][1] for c in self.calls]


class FakePrompter(PathPrompter):
    """PathPrompter returning canned answers and recording each prompt."""

    def __init__(self, directory=None, file=None):
        self.directory = directory
        self.file = file
        self.directory_prompts: List[dict] = []
        self.file_prompts: List[dict] = []

    def ask_directory(self, message, initial=None):
        self.directory_prompts.append({"message": message, "initial": initial})
        return self.directory

    def ask_file(self, message, filters, initial=None):
        self.file_prompts.append({"message": message, "filters": list(filters), "initial": initial})
        return self.file


def failed(operation: str, returncode: int = 1, stderr: str = "VBOX_E_FILE_ERROR") -> Exception:
    return subprocess.CalledProcessError(returncode, ["VBoxManage", operation], "", stderr)


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def install_dir(tmp_path):
    d = tmp_path / "VirtualBox"
    d.mkdir()
    return d


@pytest.fixture
def vm_base(tmp_path):
    d = tmp_path / "vms"
    d.mkdir()
    return d


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "disk.iso"
    path.write_bytes(b"\0" * 2048)
    return path


@pytest.fixture
def no_color_console():
    from rich.console import Console

    return Console(record=True, width=200, color_system=None)


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for testing without actual command execution."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield mock_run


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by configure_logging so they don't outlive capture streams."""
    yield
    logging.getLogger().handlers.clear()
