#!/usr/bin/env python3
"""
Shared utilities for the InstallBox CLI.
"""

from rich.console import Console
from rich.table import Table

from installbox.backends.questionary_prompter import custom_style

console = Console()


def plan_table(vm_name: str, steps) -> Table:
    """Render a provisioning plan as a table."""
    table = Table(title=f"Provisioning plan for {vm_name}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Command")
    for i, step in enumerate(steps, 1):
        if step.is_launch:
            command = f"VirtualBox {' '.join(step.args)}"
        else:
            command = f"VBoxManage {step.operation} {' '.join(step.args)}"
        table.add_row(str(i), step.name, command)
    return table
