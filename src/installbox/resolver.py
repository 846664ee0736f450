"""
Resolution of the VM storage directory and installer image.

Explicit parameters win when they point at something that exists. Anything
missing degrades to a single interactive prompt; dismissing that prompt
cancels the run before VirtualBox is touched.
"""

from pathlib import Path
from typing import Callable, Optional, Union

from rich.console import Console

from installbox.interfaces.prompt import FileFilter, PathPrompter
from installbox.logging import get_logger
from installbox.models import CANCELLED, Cancelled, ProvisioningRequest, ResolvedInputs
from installbox.paths import default_storage_suggestion

log = get_logger(__name__)

IMAGE_FILTERS = (
    FileFilter("ISO image (*.iso)", (".iso",)),
    FileFilter("Raw disk image (*.img)", (".img",)),
    FileFilter("Installer images (*.iso, *.img)", (".iso", ".img")),
    FileFilter("All files (*.*)"),
)


class PathResolver:
    """Turn optional path parameters into validated paths."""

    def __init__(self, prompter: PathPrompter, console: Optional[Console] = None):
        self.prompter = prompter
        self.console = console or Console(stderr=True)

    def resolve_storage_path(
        self,
        explicit: Optional[str],
        default_provider: Callable[[], Path],
    ) -> Union[Path, Cancelled]:
        if explicit:
            candidate = Path(explicit).expanduser()
            if candidate.is_dir():
                log.debug("storage_path.explicit", path=str(candidate))
                return candidate
            self.console.print(
                f"[yellow]⚠️  VM storage directory not found: {candidate}[/]"
            )
            log.warning("storage_path.missing", path=str(candidate))

        initial = default_provider()

        selected = self.prompter.ask_directory(
            "Select the folder where the VM will be stored:", initial=initial
        )
        if selected is None:
            self.console.print("[yellow]No VM storage directory selected. Aborting.[/]")
            log.warning("storage_path.cancelled")
            return CANCELLED
        return Path(selected)

    def resolve_image_path(
        self,
        explicit: Optional[str],
        working_dir: Path,
    ) -> Union[Path, Cancelled]:
        working_dir = Path(working_dir)
        if explicit:
            candidate = working_dir / Path(explicit).expanduser()
            if candidate.is_file():
                log.debug("image_path.explicit", path=str(candidate))
                return candidate
            self.console.print(
                f"[yellow]⚠️  Installer image '{explicit}' not found in {working_dir}[/]"
            )
            log.warning("image_path.missing", filename=explicit, directory=str(working_dir))

        selected = self.prompter.ask_file(
            "Select the installer image:", IMAGE_FILTERS, initial=working_dir
        )
        if selected is None:
            name = explicit or "the installer image"
            self.console.print(
                f"[yellow]No installer image selected. Place {name} in {working_dir} "
                "or choose another image when prompted.[/]"
            )
            log.warning("image_path.cancelled")
            return CANCELLED
        return Path(selected)

    def resolve(
        self,
        request: ProvisioningRequest,
        client,
        working_dir: Optional[Path] = None,
    ) -> Union[ResolvedInputs, Cancelled]:
        """Resolve both inputs, storage directory first."""
        working_dir = Path(working_dir) if working_dir else Path.cwd()

        base = self.resolve_storage_path(
            request.vm_storage_path, lambda: default_storage_suggestion(client)
        )
        if base is CANCELLED:
            return CANCELLED

        image = self.resolve_image_path(request.installer_image, working_dir)
        if image is CANCELLED:
            return CANCELLED

        return ResolvedInputs(installer_image_path=image, vm_base_path=base)
