"""Git interfaces and implementation.

jj repositories handled by jjspr are colocated with a git repository; all
traffic with the GitHub remote (listing remote refs, pushing and deleting
branches) goes through git.
"""

import os
import shlex
import logging
from typing import AbstractSet, Optional, Protocol, Set
import git
from git.exc import GitCommandError, InvalidGitRepositoryError
from ..config.models import SprConfig
from ..typing import CommitHash, GitHubBranch
from ..util import slugify

# Get module logger
logger = logging.getLogger(__name__)


class GitInterface(Protocol):
    """What the rest of jjspr needs from git."""
    def run_cmd(self, command: str) -> str: ...
    def remote_ref_names(self) -> Set[str]: ...
    def fetch(self) -> None: ...
    def push_branch(self, commit_hash: CommitHash, branch: GitHubBranch) -> None: ...
    def delete_remote_branch(self, branch: GitHubBranch) -> None: ...
    def is_on_master(self, commit_hash: CommitHash) -> bool: ...
    def config_get(self, key: str) -> Optional[str]: ...


def _find_unused_branch_name(config: SprConfig, existing_ref_names: AbstractSet[str], slug: str) -> str:
    """Probe ``<prefix><slug>``, ``<prefix><slug>-1``, ... against the remote refs."""
    remote = config.repo.github_remote
    prefix = config.repo.branch_prefix
    branch_name = f"{prefix}{slug}"
    suffix = 0

    while f"refs/remotes/{remote}/{branch_name}" in existing_ref_names:
        suffix += 1
        branch_name = f"{prefix}{slug}-{suffix}"

    return branch_name


def new_branch_name(config: SprConfig, existing_ref_names: AbstractSet[str], title: str) -> str:
    """Get an unused head branch name for a pull request with the given title."""
    return _find_unused_branch_name(config, existing_ref_names, slugify(title) or "change")


def base_branch_name(config: SprConfig, existing_ref_names: AbstractSet[str], title: str) -> str:
    """Get an unused name for the intermediate base branch of a stacked pull request."""
    slug = slugify(title) or "change"
    return _find_unused_branch_name(config, existing_ref_names, f"{config.repo.github_branch}.{slug}")


class RealGit:
    """Real Git implementation."""
    def __init__(self, config: SprConfig, repo_path: Optional[str] = None):
        """Initialize with config."""
        self.config: SprConfig = config
        self.repo_path = repo_path or os.getcwd()
        self._repo: Optional[git.Repo] = None

    @property
    def repo(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.repo_path, search_parent_directories=True)
            except InvalidGitRepositoryError:
                raise Exception("Not in a git repository")
        return self._repo

    def run_cmd(self, command: str) -> str:
        """Run git command."""
        cmd_str = command.strip()

        if self.config.user.log_commands:
            logger.info(f"> git {cmd_str}")
        cmd_parts = shlex.split(cmd_str)
        method = getattr(self.repo.git, cmd_parts[0].replace('-', '_'))
        try:
            result = method(*cmd_parts[1:])
        except GitCommandError as e:
            logger.debug(f"Git command failed: {e}")
            raise
        return result if isinstance(result, str) else str(result)

    def remote_ref_names(self) -> Set[str]:
        """Get all refs under ``refs/remotes/<remote>/``."""
        remote = self.config.repo.github_remote
        output = self.run_cmd(f"for-each-ref --format=%(refname) refs/remotes/{remote}/")
        return {line.strip() for line in output.split("\n") if line.strip()}

    def fetch(self) -> None:
        self.run_cmd(f"fetch --prune {self.config.repo.github_remote}")

    def push_branch(self, commit_hash: CommitHash, branch: GitHubBranch) -> None:
        """Force-push a commit to a branch on the GitHub remote."""
        remote = self.config.repo.github_remote
        cmd = f"push --no-verify --force -- {remote} {commit_hash}:{branch.ref_on_github}"
        if self.config.tool.pretend:
            logger.info(f"[PRETEND] > git {cmd}")
            return
        self.run_cmd(cmd)

    def delete_remote_branch(self, branch: GitHubBranch) -> None:
        """Delete a branch on the GitHub remote."""
        remote = self.config.repo.github_remote
        cmd = f"push --no-verify --delete -- {remote} {branch.ref_on_github}"
        if self.config.tool.pretend:
            logger.info(f"[PRETEND] > git {cmd}")
            return
        self.run_cmd(cmd)

    def is_on_master(self, commit_hash: CommitHash) -> bool:
        """Check whether a commit is already contained in the remote master branch."""
        master = self.config.repo.github_branch
        remote = self.config.repo.github_remote
        upstream = f"{remote}/{master}"
        logger.debug(f"Checking if {commit_hash[:8]} is an ancestor of {upstream}")
        return self.repo.is_ancestor(commit_hash, upstream)

    def config_get(self, key: str) -> Optional[str]:
        """Read a git config value, None if unset."""
        try:
            value = self.repo.git.config("--get", key).strip()
        except GitCommandError:
            return None
        return value or None
