#!/usr/bin/env python3
"""
Argument parser for the InstallBox CLI.
"""

import argparse
import sys
from pathlib import Path

from installbox import __version__
from installbox.cli.provision_commands import cmd_provision
from installbox.cli.utils import console
from installbox.errors import ConfigError
from installbox.logging import configure_logging
from installbox.paths import INSTALL_DIR_ENV


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="installbox",
        description="Create a VirtualBox VM that boots an OS installer image",
    )
    parser.add_argument("--version", action="version", version=f"installbox {__version__}")
    parser.add_argument("--name", "-n", required=True, help="VM name")
    parser.add_argument(
        "--image", "-i", help="Installer image (.iso/.img), relative to the current directory"
    )
    parser.add_argument("--storage", "-s", help="Directory that will hold the VM folder")
    parser.add_argument(
        "--install-dir",
        help=f"VirtualBox installation directory (default: ${INSTALL_DIR_ENV} or the platform default)",
    )
    parser.add_argument("--config", "-c", help="Config file (default: ./.installbox.yaml)")
    parser.add_argument(
        "--cleanup-on-failure",
        action="store_true",
        help="Unregister the VM and delete its disks if a step fails",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Resolve inputs and print the plan only"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    parser.add_argument(
        "--log-file", type=Path, help="Also write all log records, down to DEBUG, to this file as JSON"
    )
    parser.set_defaults(func=cmd_provision)
    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, json_output=args.json_logs, log_file=args.log_file)

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/]")
        sys.exit(1)
    except (ConfigError, ValueError) as e:
        console.print(f"[red]Error: {e}[/]")
        sys.exit(1)
