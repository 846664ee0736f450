"""Abstract interface for asking the user for filesystem paths."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class FileFilter:
    """A named set of file extensions offered in a file picker."""

    label: str
    extensions: Tuple[str, ...] = ()

    def matches(self, path: str) -> bool:
        if not self.extensions:
            return True
        return path.lower().endswith(self.extensions)


class PathPrompter(ABC):
    """Ask the user to pick a directory or a file.

    Both methods return ``None`` when the user dismisses the prompt.
    """

    @abstractmethod
    def ask_directory(self, message: str, initial: Optional[Path] = None) -> Optional[Path]:
        """Prompt for an existing directory."""
        pass

    @abstractmethod
    def ask_file(
        self,
        message: str,
        filters: Sequence[FileFilter],
        initial: Optional[Path] = None,
    ) -> Optional[Path]:
        """Prompt for an existing file, offering ``filters`` to narrow the choice."""
        pass
