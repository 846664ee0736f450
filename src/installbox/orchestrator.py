#!/usr/bin/env python3
"""
Provisioning pipeline for an installer VM.

The pipeline is a fixed, ordered list of VBoxManage operations followed by a
detached launch of the VirtualBox front end:

    createvm -> modifyvm -> convertfromraw -> modifymedium (resize)
    -> storagectl -> storageattach (installer) -> createmedium (runtime)
    -> storageattach (runtime) -> launch

Nothing is retried. The first failing step raises and the remaining steps
are skipped. Artifacts of completed steps stay on disk and registered with
VirtualBox unless cleanup on failure was requested. Cleanup covers the
VBoxManage steps only: once they all succeed the VM is kept, even if the
front end then fails to start.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from installbox.hypervisor import HypervisorClient
from installbox.logging import get_logger, log_operation
from installbox.models import (
    HardwareProfile,
    ProvisioningProfile,
    ProvisioningRequest,
    ResolvedInputs,
    StorageProfile,
    VmLayout,
)
from installbox.rollback import RollbackContext

log = get_logger(__name__)

LAUNCH = "launch"


def on_off(value: bool) -> str:
    return "on" if value else "off"


@dataclass(frozen=True)
class ProvisioningStep:
    """One entry of the provisioning plan."""

    name: str
    operation: str
    args: List[str]
    quiet: bool = True

    @property
    def is_launch(self) -> bool:
        return self.operation == LAUNCH


@dataclass
class ProvisioningResult:
    """Outcome of a completed provisioning run."""

    vm_name: str
    layout: VmLayout
    steps: List[str] = field(default_factory=list)
    viewer_pid: Optional[int] = None


def _modifyvm_args(vm_name: str, hw: HardwareProfile) -> List[str]:
    return [
        vm_name,
        "--cpus", str(hw.cpus),
        "--memory", str(hw.memory_mb),
        "--vram", str(hw.vram_mb),
        "--acpi", on_off(hw.acpi),
        "--hpet", on_off(hw.hpet),
        "--graphicscontroller", hw.graphics_controller,
        "--firmware", hw.firmware,
        "--usbohci", on_off(hw.usb),
        "--bioslogodisplaytime", str(hw.bios_logo_display_time_ms),
    ]


def _attach_args(vm_name: str, storage: StorageProfile, port: int, medium: Path) -> List[str]:
    return [
        vm_name,
        "--storagectl", storage.controller_name,
        "--port", str(port),
        "--device", "0",
        "--type", "hdd",
        "--medium", str(medium),
    ]


def provision_steps(
    vm_name: str,
    inputs: ResolvedInputs,
    profile: Optional[ProvisioningProfile] = None,
) -> List[ProvisioningStep]:
    """Build the ordered plan for ``vm_name``."""
    profile = profile or ProvisioningProfile()
    hw = profile.hardware
    storage = profile.storage
    layout = VmLayout.for_vm(inputs.vm_base_path, vm_name, storage)

    return [
        ProvisioningStep(
            "create_vm",
            "createvm",
            [
                "--name", vm_name,
                "--basefolder", str(inputs.vm_base_path),
                "--ostype", hw.os_type,
                "--register",
            ],
        ),
        ProvisioningStep("configure_vm", "modifyvm", _modifyvm_args(vm_name, hw)),
        ProvisioningStep(
            "convert_installer_image",
            "convertfromraw",
            [
                str(inputs.installer_image_path),
                str(layout.installer_disk),
                "--format", storage.installer_disk_format,
            ],
            quiet=False,
        ),
        ProvisioningStep(
            "resize_installer_disk",
            "modifymedium",
            ["disk", str(layout.installer_disk), "--resize", str(storage.installer_disk_size_mb)],
            quiet=False,
        ),
        ProvisioningStep(
            "add_storage_controller",
            "storagectl",
            [
                vm_name,
                "--name", storage.controller_name,
                "--add", storage.controller_bus,
                "--controller", storage.controller_chipset,
                "--hostiocache", on_off(storage.host_io_cache),
                "--bootable", on_off(storage.bootable),
            ],
        ),
        ProvisioningStep(
            "attach_installer_disk",
            "storageattach",
            _attach_args(vm_name, storage, storage.installer_port, layout.installer_disk),
        ),
        ProvisioningStep(
            "create_runtime_disk",
            "createmedium",
            [
                "disk",
                "--filename", str(layout.runtime_disk),
                "--size", str(storage.runtime_disk_size_mb),
                "--format", storage.runtime_disk_format,
            ],
            quiet=False,
        ),
        ProvisioningStep(
            "attach_runtime_disk",
            "storageattach",
            _attach_args(vm_name, storage, storage.runtime_port, layout.runtime_disk),
        ),
        ProvisioningStep("launch_vm", LAUNCH, [str(layout.descriptor_file)]),
    ]


class ProvisioningOrchestrator:
    """Drive VBoxManage through the provisioning plan."""

    def __init__(
        self,
        client: HypervisorClient,
        profile: Optional[ProvisioningProfile] = None,
        console: Optional[Console] = None,
        cleanup_on_failure: bool = False,
    ):
        self.client = client
        self.profile = profile or ProvisioningProfile()
        self.console = console or Console()
        self.cleanup_on_failure = cleanup_on_failure

    def provision(self, request: ProvisioningRequest, inputs: ResolvedInputs) -> ProvisioningResult:
        vm_name = request.vm_name
        layout = VmLayout.for_vm(inputs.vm_base_path, vm_name, self.profile.storage)
        result = ProvisioningResult(vm_name=vm_name, layout=layout)
        vm_dir_existed = layout.vm_directory.exists()
        steps = provision_steps(vm_name, inputs, self.profile)
        launch = steps.pop()

        with RollbackContext(
            operation_name=f"provision VM '{vm_name}'",
            enabled=self.cleanup_on_failure,
            _console=self.console,
        ) as ctx:
            for step in steps:
                with log_operation(log, step.name, vm_name=vm_name, vbox_operation=step.operation):
                    if not step.quiet:
                        self.console.print(f"[cyan]{step.name.replace('_', ' ').capitalize()}...[/]")
                    self.client.run(step.operation, step.args, quiet=step.quiet)
                result.steps.append(step.name)
                self._register_compensation(ctx, step, vm_name, layout, vm_dir_existed)
            ctx.commit()

        # The VM is complete here; a viewer that fails to start leaves it in place.
        with log_operation(log, launch.name, vm_name=vm_name, vbox_operation=launch.operation):
            result.viewer_pid = self.client.launch(Path(launch.args[0]))
        result.steps.append(launch.name)

        return result

    def _register_compensation(
        self,
        ctx: RollbackContext,
        step: ProvisioningStep,
        vm_name: str,
        layout: VmLayout,
        vm_dir_existed: bool,
    ) -> None:
        if step.operation == "createvm":
            if not vm_dir_existed:
                ctx.add_directory(layout.vm_directory)
            ctx.add_action(
                f"unregister VM {vm_name}",
                lambda: self.client.run("unregistervm", [vm_name, "--delete"]),
            )
        elif step.operation == "convertfromraw":
            ctx.add_action(
                f"delete medium {layout.installer_disk}",
                lambda: self.client.run("closemedium", ["disk", str(layout.installer_disk), "--delete"]),
            )
        elif step.operation == "createmedium":
            ctx.add_action(
                f"delete medium {layout.runtime_disk}",
                lambda: self.client.run("closemedium", ["disk", str(layout.runtime_disk), "--delete"]),
            )
