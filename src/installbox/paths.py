"""
Canonical path helpers for the VirtualBox installation and VM storage.

Every module that needs to locate VirtualBox binaries or the default VM
folder should import from here instead of computing paths inline.
"""

import os
import sys
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger(__name__)

INSTALL_DIR_ENV = "INSTALLBOX_VBOX_DIR"


# ── VirtualBox installation ─────────────────────────────────────────────────

def platform_install_dir(platform: Optional[str] = None) -> Path:
    """Where VirtualBox installs itself by default on this platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return Path(r"C:\Program Files\Oracle\VirtualBox")
    if platform == "darwin":
        return Path("/Applications/VirtualBox.app/Contents/MacOS")
    return Path("/usr/lib/virtualbox")


def default_install_dir() -> Path:
    """$INSTALLBOX_VBOX_DIR, else the platform default."""
    override = os.getenv(INSTALL_DIR_ENV)
    if override:
        return Path(override)
    return platform_install_dir()


def _exe(name: str) -> str:
    return f"{name}.exe" if os.name == "nt" else name


def manage_executable(install_dir: Path) -> Path:
    """Path to VBoxManage inside an installation directory."""
    return Path(install_dir) / _exe("VBoxManage")


def frontend_executable(install_dir: Path) -> Path:
    """Path to the VirtualBox GUI front end inside an installation directory."""
    return Path(install_dir) / _exe("VirtualBox")


# ── VM storage ──────────────────────────────────────────────────────────────

def fallback_machine_folder() -> Path:
    """~/VirtualBox VMs, VirtualBox's own out-of-the-box default."""
    return Path.home() / "VirtualBox VMs"


def default_storage_suggestion(client) -> Path:
    """Initial suggestion for the VM storage prompt.

    Resolution order:
      1. VirtualBox's reported default machine folder, if it exists
      2. ``~/VirtualBox VMs``
    """
    folder = client.get_default_machine_folder()
    if folder is not None:
        return folder
    fb = fallback_machine_folder()
    log.debug("machine_folder_fallback", path=str(fb))
    return fb
