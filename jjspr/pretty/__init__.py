"""Pretty formatting utilities for CLI output."""

import shutil
import sys
from typing import IO, TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..jj import PreparedCommit

def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    try:
        return shutil.get_terminal_size().columns
    except (OSError, ValueError):
        return 80


def truncate(text: str, width: int) -> str:
    """Cut text to width, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[:max(width - 1, 0)] + "…"


def output(icon: str, text: str, file: Optional[IO[str]] = None) -> None:
    """Print a status line, indenting continuation lines under the text."""
    if file is None:
        file = sys.stdout
    lines = text.strip().split("\n")
    print(f"{icon} {lines[0]}", file=file)
    for line in lines[1:]:
        print(f"   {line}", file=file)


def write_commit_title(commit: 'PreparedCommit', file: Optional[IO[str]] = None) -> None:
    """Print the line introducing a commit, before anything is done to it."""
    if file is None:
        file = sys.stdout
    width = get_term_width()
    line = f"{commit.short_id} {commit.title}"
    print("", file=file)
    print(truncate(line, width), file=file)
