"""Jujutsu interfaces and implementation.

Reads revisions with ``jj log`` and writes commit messages back with
``jj describe``. Commands are executed through GitPython's process runner so
they are logged and fail the same way git commands do.
"""

import os
import shlex
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, cast

import git
from git.exc import GitCommandError

from ..config import Config
from ..message import MessageSection, MessageSectionsMap, build_commit_message, parse_message
from ..typing import ChangeID, CommitHash, SprError

# Get module logger
logger = logging.getLogger(__name__)

RECORD_END = "@@jjspr-commit-end@@"

# One record per revision: ids on separate lines, then the full description
LOG_TEMPLATE = (
    r'change_id ++ "\n" ++ change_id.short() ++ "\n" ++ commit_id ++ "\n"'
    r' ++ parents.map(|c| c.commit_id()).join(",") ++ "\n"'
    r' ++ description ++ "\n' + RECORD_END + r'\n"'
)


@dataclass
class PreparedCommit:
    """Snapshot of one local revision being processed."""
    short_id: str
    change_id: ChangeID
    commit_id: CommitHash
    parent_commit_id: CommitHash
    message: MessageSectionsMap
    message_changed: bool = False
    pull_request_number: Optional[int] = None
    # Description as read from the repository
    description: str = ""

    @property
    def title(self) -> str:
        return self.message.get(MessageSection.TITLE, "")

    def __str__(self) -> str:
        return f"{self.short_id} {self.title}"


class CommitStackProvider(Protocol):
    """What the synchronizer needs from the local repository."""
    def get_prepared_commit_for_revision(self, revision: str) -> PreparedCommit: ...
    def get_prepared_commits_from_to(self, base: str, target: str, inclusive: bool) -> List[PreparedCommit]: ...
    def rewrite_commit_messages(self, commits: List[PreparedCommit]) -> None: ...


def prepare_commit(config: Config, short_id: str, change_id: str, commit_id: str,
                   parent_commit_id: str, description: str) -> PreparedCommit:
    """Build a PreparedCommit from raw revision data.

    Commits always start out clean. Only an explicit change to the message
    marks one for rewriting.
    """
    message = parse_message(description, MessageSection.TITLE)
    pull_request_number = config.parse_pull_request_field(message.get(MessageSection.PULL_REQUEST, ""))
    return PreparedCommit(
        short_id=short_id,
        change_id=ChangeID(change_id),
        commit_id=CommitHash(commit_id),
        parent_commit_id=CommitHash(parent_commit_id),
        message=message,
        pull_request_number=pull_request_number,
        description=description,
    )


def parse_log_output(config: Config, output: str) -> List[PreparedCommit]:
    """Parse the output of ``jj log`` run with LOG_TEMPLATE."""
    commits: List[PreparedCommit] = []
    for record in output.split(RECORD_END):
        record = record.lstrip("\n")
        if not record.strip():
            continue
        fields = record.split("\n", 4)
        if len(fields) < 4:
            raise SprError(f"Unexpected jj log output: {record!r}")
        change_id, short_id, commit_id, parents = fields[:4]
        description = fields[4] if len(fields) > 4 else ""
        parent_commit_id = parents.split(",")[0] if parents else ""
        commits.append(prepare_commit(config, short_id, change_id, commit_id,
                                      parent_commit_id, description))
    return commits


class Jujutsu:
    """Commit stack provider backed by the jj CLI."""

    def __init__(self, config: Config, repo_path: Optional[str] = None):
        """Initialize with config."""
        self.config = config
        self.repo_path = repo_path or os.getcwd()
        self._runner = git.cmd.Git(self.repo_path)

    def run_jj(self, args: List[str]) -> str:
        """Run jj command, failing on error."""
        if self.config.user.log_commands:
            logger.info(f"> jj {shlex.join(args)}")
        return cast(str, self._runner.execute(["jj", "--color", "never", *args]))

    def _log(self, revset: str, reversed_order: bool = False) -> List[PreparedCommit]:
        args = ["log", "--no-graph", "-r", revset, "-T", LOG_TEMPLATE]
        if reversed_order:
            args.insert(1, "--reversed")
        commits = parse_log_output(self.config, self.run_jj(args))
        logger.debug(f"Revset {revset} resolved to {len(commits)} commit(s)")
        for c in commits:
            logger.debug(f"  {c.short_id}: commit={c.commit_id[:8]} pr={c.pull_request_number} dirty={c.message_changed}")
        return commits

    def get_prepared_commit_for_revision(self, revision: str) -> PreparedCommit:
        commits = self._log(revision)
        if len(commits) != 1:
            raise SprError(f"Revision {revision} resolves to {len(commits)} commits, expected exactly one")
        return commits[0]

    def get_prepared_commits_from_to(self, base: str, target: str, inclusive: bool) -> List[PreparedCommit]:
        """Get the commits between base and target, bottom of the stack first."""
        operator = "::" if inclusive else ".."
        return self._log(f"{base}{operator}{target}", reversed_order=True)

    def rewrite_commit_messages(self, commits: List[PreparedCommit]) -> None:
        """Write back every changed message; clean commits are left alone."""
        for commit in commits:
            if not commit.message_changed:
                continue
            message = build_commit_message(commit.message)
            self.run_jj(["describe", "-r", commit.change_id, "-m", message])
            commit.description = message
            commit.message_changed = False

    def config_get(self, key: str) -> Optional[str]:
        """Read a jj config value, None if unset."""
        try:
            value = self.run_jj(["config", "get", key]).strip()
        except GitCommandError:
            return None
        return value or None
