#!/usr/bin/env python3
"""
The provisioning command.
"""

import sys
from pathlib import Path

from installbox.backends.questionary_prompter import QuestionaryPrompter
from installbox.backends.subprocess_runner import SubprocessRunner
from installbox.cli.utils import console, plan_table
from installbox.config import load_config
from installbox.errors import HypervisorLaunchError, HypervisorNotFoundError, InstallBoxError
from installbox.hypervisor import HypervisorClient
from installbox.logging import get_logger
from installbox.models import CANCELLED, ProvisioningRequest
from installbox.orchestrator import ProvisioningOrchestrator, provision_steps
from installbox.resolver import PathResolver

log = get_logger(__name__)


def build_request(args, config) -> ProvisioningRequest:
    fields = {
        "vm_name": args.name,
        "installer_image": args.image,
        "vm_storage_path": args.storage,
    }
    install_dir = args.install_dir or config.hypervisor.install_dir
    if install_dir:
        fields["hypervisor_install_dir"] = Path(install_dir)
    return ProvisioningRequest(**fields)


def cmd_provision(args, runner=None, prompter=None) -> None:
    """Provision and launch an installer VM."""
    config = load_config(Path(args.config) if args.config else None, required=bool(args.config))
    request = build_request(args, config)

    client = HypervisorClient(request.hypervisor_install_dir, runner or SubprocessRunner())
    try:
        client.ensure_installed()
    except HypervisorNotFoundError as e:
        console.print(f"[red]❌ {e}[/]")
        log.error("hypervisor.not_found", install_dir=str(request.hypervisor_install_dir))
        sys.exit(1)

    resolver = PathResolver(prompter or QuestionaryPrompter(), console)
    inputs = resolver.resolve(request, client, Path.cwd())
    if inputs is CANCELLED:
        sys.exit()

    if args.dry_run:
        console.print(plan_table(request.vm_name, provision_steps(request.vm_name, inputs, config.profile)))
        return

    orchestrator = ProvisioningOrchestrator(
        client,
        config.profile,
        console=console,
        cleanup_on_failure=args.cleanup_on_failure,
    )
    console.print(f"\n[cyan]Provisioning VM '{request.vm_name}'...[/]")
    try:
        result = orchestrator.provision(request, inputs)
    except HypervisorLaunchError as e:
        console.print(f"[yellow]⚠️  VM '{request.vm_name}' was created but VirtualBox did not start: {e.reason}[/]")
        console.print(f"[dim]Open {e.descriptor_file} manually.[/]")
        sys.exit(1)
    except InstallBoxError as e:
        console.print(f"[red]❌ {e}[/]")
        sys.exit(1)

    console.print(f"\n[bold green]🎉 VM '{result.vm_name}' created in {result.layout.vm_directory}[/]")
