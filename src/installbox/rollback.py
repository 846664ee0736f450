"""
Best-effort rollback of a partially provisioned VM.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

log = logging.getLogger(__name__)


@dataclass
class RollbackAction:
    """A single rollback action."""

    description: str
    action: Callable[[], None]


@dataclass
class RollbackContext:
    """
    Context manager that undoes registered steps when the block raises.

    Usage:
        with RollbackContext("provision VM 'fbsd'") as ctx:
            client.run("createvm", [...])
            ctx.add_action("unregister VM", lambda: client.run("unregistervm", [...]))
            ...
            ctx.commit()

    A disabled context records nothing and never rolls back.
    """

    operation_name: str
    enabled: bool = True
    _directories: List[Path] = field(default_factory=list)
    _actions: List[RollbackAction] = field(default_factory=list)
    _committed: bool = False
    _console: Optional[Any] = None

    def add_directory(self, path: Path) -> Path:
        """Register a directory for removal on rollback."""
        if self.enabled:
            self._directories.append(path)
            log.debug(f"Registered directory for rollback: {path}")
        return path

    def add_action(self, description: str, action: Callable[[], None]) -> None:
        """Register a compensating action."""
        if not self.enabled:
            return
        self._actions.append(RollbackAction(description=description, action=action))
        log.debug(f"Registered action for rollback: {description}")

    def commit(self) -> None:
        """Mark operation as successful, preventing rollback."""
        self._committed = True
        log.info(f"Operation '{self.operation_name}' committed successfully")

    def rollback(self) -> List[str]:
        """Execute every rollback action newest first, then remove directories.

        A failing action does not stop the ones after it. Returns the errors.
        """
        errors = []

        if self._console:
            self._console.print(
                f"[yellow]Rolling back '{self.operation_name}'...[/yellow]"
            )

        for action in reversed(self._actions):
            try:
                log.info(f"Rollback action: {action.description}")
                action.action()
            except Exception as e:
                error_msg = f"Rollback action '{action.description}' failed: {e}"
                errors.append(error_msg)
                log.error(error_msg)

        for path in reversed(self._directories):
            try:
                if path.exists():
                    shutil.rmtree(path)
                    log.info(f"Deleted directory: {path}")
            except Exception as e:
                errors.append(f"Failed to delete {path}: {e}")

        return errors

    def __enter__(self) -> "RollbackContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None and self.enabled and not self._committed:
            errors = self.rollback()
            if errors and self._console:
                self._console.print("[red]Rollback completed with errors:[/red]")
                for error in errors:
                    self._console.print(f"  [dim]- {error}[/dim]")
        return False  # Don't suppress the exception
