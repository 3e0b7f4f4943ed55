"""Common types and errors used across the codebase."""

from dataclasses import dataclass
from typing import NewType

# Create NewTypes for revision identifiers
ChangeID = NewType('ChangeID', str)
CommitHash = NewType('CommitHash', str)


@dataclass(frozen=True)
class GitHubBranch:
    """A branch on GitHub, seen from the local clone through a remote."""
    branch_name: str
    remote_name: str
    master_branch_name: str

    @classmethod
    def from_ref(cls, ref: str, remote_name: str, master_branch_name: str) -> 'GitHubBranch':
        """Build from either ``refs/heads/<name>`` or a bare branch name."""
        if ref.startswith("refs/heads/"):
            ref = ref[len("refs/heads/"):]
        elif ref.startswith("refs/"):
            raise ValueError(f"Ref {ref} does not name a branch on GitHub")
        return cls(ref, remote_name, master_branch_name)

    @property
    def ref_on_github(self) -> str:
        return f"refs/heads/{self.branch_name}"

    @property
    def ref_local(self) -> str:
        return f"refs/remotes/{self.remote_name}/{self.branch_name}"

    @property
    def is_master_branch(self) -> bool:
        return self.branch_name == self.master_branch_name


class SprError(Exception):
    """Base class for errors reported to the user."""


class InvalidRangeFormat(SprError):
    """Raised when a revision range has more or fewer than two operands."""

    def __init__(self, revision: str, operator: str):
        super().__init__(
            f"Invalid revision range format: {revision}. "
            f"Use 'base{operator}target' format"
        )
        self.revision = revision


class NotAPullRequest(SprError):
    """Raised when a commit carries no Pull Request reference."""

    def __init__(self) -> None:
        super().__init__("This commit does not refer to a Pull Request.")


class AlreadyClosed(SprError):
    """Raised when operating on a Pull Request that is no longer open."""

    def __init__(self, number: int):
        super().__init__(f"Pull Request #{number} is already closed!")
        self.number = number


class MissingRequiredSection(SprError):
    """Raised when a commit message lacks a required section."""

    def __init__(self, section: str):
        super().__init__(f"Commit message does not have a {section}!")
        self.section = section


class ValidationFailed(SprError):
    """Raised once at the end of a run when any commit failed validation.

    The individual failures have already been reported per commit.
    """

    def __init__(self, count: int = 0):
        super().__init__("")
        self.count = count
