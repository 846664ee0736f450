"""Terminal path prompts built on questionary."""

import os
from pathlib import Path
from typing import Optional, Sequence

import questionary
from questionary import Style

from ..interfaces.prompt import FileFilter, PathPrompter

# Custom questionary style
custom_style = Style(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:green"),
        ("pointer", "fg:cyan bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:green"),
        ("separator", "fg:gray"),
        ("instruction", "fg:gray italic"),
    ]
)


class QuestionaryPrompter(PathPrompter):
    """Ask for paths with questionary's completing path prompt.

    Ctrl-C or an empty answer counts as a dismissed prompt.
    """

    def __init__(self, style=custom_style):
        self.style = style

    def ask_directory(self, message: str, initial: Optional[Path] = None) -> Optional[Path]:
        answer = questionary.path(
            message,
            default=_with_sep(initial),
            only_directories=True,
            validate=lambda p: not p or os.path.isdir(os.path.expanduser(p)) or "Not a directory",
            style=self.style,
        ).ask()
        return _to_path(answer)

    def ask_file(
        self,
        message: str,
        filters: Sequence[FileFilter],
        initial: Optional[Path] = None,
    ) -> Optional[Path]:
        selected = filters[0] if filters else FileFilter("All files (*.*)")
        if len(filters) > 1:
            selected = questionary.select(
                "File type:",
                choices=[questionary.Choice(f.label, value=f) for f in filters],
                default=filters[0],
                style=self.style,
            ).ask()
            if selected is None:
                return None

        def file_filter(p: str) -> bool:
            return os.path.isdir(p) or selected.matches(p)

        def validate(p: str):
            if not p:
                return True
            p = os.path.expanduser(p)
            if not os.path.isfile(p):
                return "Not a file"
            if not selected.matches(p):
                return f"Expected {selected.label}"
            return True

        answer = questionary.path(
            message,
            default=_with_sep(initial),
            file_filter=file_filter,
            validate=validate,
            style=self.style,
        ).ask()
        return _to_path(answer)


def _with_sep(path: Optional[Path]) -> str:
    if path is None:
        return ""
    text = str(path)
    return text if text.endswith(os.sep) else text + os.sep


def _to_path(answer: Optional[str]) -> Optional[Path]:
    if answer is None or not answer.strip():
        return None
    return Path(answer.strip()).expanduser()
