"""
InstallBox - Provision a VirtualBox VM that boots an OS installer image.

Drives VBoxManage through a fixed sequence: create and configure the VM,
convert and resize the installer image, add a runtime disk, attach both and
launch the VM.
"""

__version__ = "0.1.0"
__author__ = "InstallBox Team"

from installbox.hypervisor import HypervisorClient
from installbox.orchestrator import ProvisioningOrchestrator
from installbox.resolver import PathResolver

__all__ = ["HypervisorClient", "ProvisioningOrchestrator", "PathResolver", "__version__"]
