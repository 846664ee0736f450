"""Tests for the provisioning pipeline."""
from pathlib import Path

import pytest

from installbox.errors import HypervisorCommandError, HypervisorLaunchError
from installbox.hypervisor import HypervisorClient
from installbox.models import (
    HardwareProfile,
    ProvisioningProfile,
    ProvisioningRequest,
    ResolvedInputs,
)
from installbox.orchestrator import ProvisioningOrchestrator, provision_steps

from conftest import RecordingRunner, failed

EXPECTED_ORDER = [
    "createvm",
    "modifyvm",
    "convertfromraw",
    "modifymedium",
    "storagectl",
    "storageattach",
    "createmedium",
    "storageattach",
]


@pytest.fixture
def tc1(tmp_path):
    """The TC1 scenario: a 2 GiB image in the working dir and an existing VM folder."""
    image = tmp_path / "disk.iso"
    with open(image, "wb") as f:
        f.truncate(2 * 1024 ** 3)
    vms = tmp_path / "vms"
    vms.mkdir()
    request = ProvisioningRequest(
        vm_name="TC1", installer_image="disk.iso", vm_storage_path=str(vms)
    )
    inputs = ResolvedInputs(installer_image_path=image, vm_base_path=vms)
    return request, inputs


def args_of(runner, index):
    return runner.calls[index]["command"][2:]


class TestProvisionTC1:
    @pytest.fixture
    def run_tc1(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = RecordingRunner()
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console
        )
        result = orchestrator.provision(request, inputs)
        return runner, result, inputs

    def test_exactly_nine_operations_in_order(self, run_tc1):
        runner, result, _ = run_tc1
        assert runner.operations == EXPECTED_ORDER
        assert len(runner.spawned) == 1
        assert len(result.steps) == 9
        assert result.steps[-1] == "launch_vm"

    def test_createvm(self, run_tc1):
        runner, _, inputs = run_tc1
        assert args_of(runner, 0) == [
            "--name", "TC1",
            "--basefolder", str(inputs.vm_base_path),
            "--ostype", "FreeBSD_64",
            "--register",
        ]

    def test_modifyvm_hardware_profile(self, run_tc1):
        runner, _, _ = run_tc1
        args = args_of(runner, 1)
        assert args[0] == "TC1"
        opts = dict(zip(args[1::2], args[2::2]))
        assert opts == {
            "--cpus": "2",
            "--memory": "1024",
            "--vram": "128",
            "--acpi": "on",
            "--hpet": "on",
            "--graphicscontroller": "vmsvga",
            "--firmware": "efi64",
            "--usbohci": "on",
            "--bioslogodisplaytime": "0",
        }

    def test_convert_and_resize_installer_disk(self, run_tc1):
        runner, result, inputs = run_tc1
        installer = str(result.layout.installer_disk)
        assert installer.endswith(str(Path("TC1") / "TC1_installer.vdi"))
        assert args_of(runner, 2) == [str(inputs.installer_image_path), installer, "--format", "VDI"]
        assert args_of(runner, 3) == ["disk", installer, "--resize", "8192"]

    def test_storage_controller(self, run_tc1):
        runner, _, _ = run_tc1
        assert args_of(runner, 4) == [
            "TC1",
            "--name", "SATA",
            "--add", "sata",
            "--controller", "IntelAhci",
            "--hostiocache", "on",
            "--bootable", "on",
        ]

    def test_disk_attachment_ports(self, run_tc1):
        runner, result, _ = run_tc1
        installer_attach = args_of(runner, 5)
        runtime_attach = args_of(runner, 7)
        assert installer_attach == [
            "TC1", "--storagectl", "SATA", "--port", "1", "--device", "0",
            "--type", "hdd", "--medium", str(result.layout.installer_disk),
        ]
        assert runtime_attach == [
            "TC1", "--storagectl", "SATA", "--port", "0", "--device", "0",
            "--type", "hdd", "--medium", str(result.layout.runtime_disk),
        ]

    def test_runtime_disk(self, run_tc1):
        runner, result, _ = run_tc1
        assert args_of(runner, 6) == [
            "disk", "--filename", str(result.layout.runtime_disk), "--size", "16384", "--format", "VHD",
        ]

    def test_launch_references_descriptor(self, run_tc1):
        runner, result, inputs = run_tc1
        expected = inputs.vm_base_path / "TC1" / "TC1.vbox"
        assert runner.spawned[0]["command"][1] == str(expected)
        assert result.layout.descriptor_file == expected
        assert result.viewer_pid == 4242

    def test_progress_output_only_for_disk_steps(self, run_tc1):
        runner, _, _ = run_tc1
        loud = [c["command"][1] for c in runner.calls if not c["capture_output"]]
        assert loud == ["convertfromraw", "modifymedium", "createmedium"]


class TestFailFast:
    def test_failure_stops_sequence_without_rollback(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = RecordingRunner({"storagectl": failed("storagectl")})
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console
        )

        with pytest.raises(HypervisorCommandError) as exc_info:
            orchestrator.provision(request, inputs)

        assert exc_info.value.operation == "storagectl"
        assert runner.operations == EXPECTED_ORDER[:5]
        assert runner.spawned == []
        assert "unregistervm" not in runner.operations

    def test_no_retry(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = RecordingRunner({"createvm": failed("createvm")})
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console
        )
        with pytest.raises(HypervisorCommandError):
            orchestrator.provision(request, inputs)
        assert runner.operations == ["createvm"]


class TestCleanupOnFailure:
    def test_rollback_in_reverse_order(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = RecordingRunner({"storagectl": failed("storagectl")})
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console, cleanup_on_failure=True
        )

        with pytest.raises(HypervisorCommandError):
            orchestrator.provision(request, inputs)

        layout_disk = str(inputs.vm_base_path / "TC1" / "TC1_installer.vdi")
        assert runner.operations[5:] == ["closemedium", "unregistervm"]
        assert args_of(runner, 5) == ["disk", layout_disk, "--delete"]
        assert args_of(runner, 6) == ["TC1", "--delete"]
        assert "Rolling back" in no_color_console.export_text()

    def test_rollback_errors_do_not_mask_original(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = RecordingRunner({
            "modifyvm": failed("modifyvm"),
            "unregistervm": failed("unregistervm"),
        })
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console, cleanup_on_failure=True
        )

        with pytest.raises(HypervisorCommandError) as exc_info:
            orchestrator.provision(request, inputs)

        assert exc_info.value.operation == "modifyvm"
        assert "Rollback completed with errors" in no_color_console.export_text()

    def test_removes_new_vm_directory(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        vm_dir = inputs.vm_base_path / "TC1"

        class CreatingRunner(RecordingRunner):
            def run(self, command, **kwargs):
                if command[1] == "createvm":
                    vm_dir.mkdir()
                return super().run(command, **kwargs)

        runner = CreatingRunner({"modifyvm": failed("modifyvm")})
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console, cleanup_on_failure=True
        )
        with pytest.raises(HypervisorCommandError):
            orchestrator.provision(request, inputs)
        assert not vm_dir.exists()

    def test_success_runs_no_compensation(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = RecordingRunner()
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console, cleanup_on_failure=True
        )
        orchestrator.provision(request, inputs)
        assert runner.operations == EXPECTED_ORDER


class ViewerMissingRunner(RecordingRunner):
    def spawn(self, command, cwd=None):
        super().spawn(command, cwd)
        raise FileNotFoundError(2, "No such file or directory", command[0])


class TestLaunchFailure:
    def test_completed_vm_survives_viewer_failure(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        vm_dir = inputs.vm_base_path / "TC1"

        class CreatingRunner(ViewerMissingRunner):
            def run(self, command, **kwargs):
                if command[1] == "createvm":
                    vm_dir.mkdir()
                return super().run(command, **kwargs)

        runner = CreatingRunner()
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console, cleanup_on_failure=True
        )

        with pytest.raises(HypervisorLaunchError) as exc_info:
            orchestrator.provision(request, inputs)

        assert exc_info.value.descriptor_file == vm_dir / "TC1.vbox"
        assert runner.operations == EXPECTED_ORDER
        assert len(runner.spawned) == 1
        assert vm_dir.exists()
        assert "Rolling back" not in no_color_console.export_text()

    def test_viewer_failure_without_cleanup(self, tc1, install_dir, no_color_console):
        request, inputs = tc1
        runner = ViewerMissingRunner()
        orchestrator = ProvisioningOrchestrator(
            HypervisorClient(install_dir, runner), console=no_color_console
        )
        with pytest.raises(HypervisorLaunchError):
            orchestrator.provision(request, inputs)
        assert runner.operations == EXPECTED_ORDER


class TestProvisionSteps:
    def test_plan_matches_execution(self, tc1):
        _, inputs = tc1
        steps = provision_steps("TC1", inputs)
        assert [s.operation for s in steps] == EXPECTED_ORDER + ["launch"]
        assert steps[-1].is_launch
        assert not any(s.is_launch for s in steps[:-1])

    def test_profile_overrides(self, tc1):
        _, inputs = tc1
        profile = ProvisioningProfile(
            hardware=HardwareProfile(cpus=4, usb=False),
            storage={"runtime_disk_size_mb": 32768},
        )
        steps = {s.name: s for s in provision_steps("TC1", inputs, profile)}
        modify = steps["configure_vm"].args
        assert modify[modify.index("--cpus") + 1] == "4"
        assert modify[modify.index("--usbohci") + 1] == "off"
        runtime = steps["create_runtime_disk"].args
        assert runtime[runtime.index("--size") + 1] == "32768"
