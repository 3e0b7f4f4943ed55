"""GitHub interfaces and implementation."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional, Protocol, Tuple, runtime_checkable

import yaml
from git.cmd import Git
from git.exc import GitCommandError, GitCommandNotFound

from ..config import Config
from ..message import MessageSection, MessageSectionsMap, parse_message
from ..stack_info import strip_stack_info
from ..typing import GitHubBranch
from ..util import ensure
from .types import PullRequestState, PullRequestUpdate, ReviewState

# Get module logger
logger = logging.getLogger(__name__)

@dataclass
class PullRequest:
    """Pull request info."""
    number: int
    state: PullRequestState
    title: str
    body: str
    sections: MessageSectionsMap
    base: GitHubBranch
    head: GitHubBranch
    head_oid: str = ""
    merged: bool = False
    reviewers: List[str] = field(default_factory=list)
    approved_by: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        """Convert to string."""
        return f"PR #{self.number} - {self.title}"

@dataclass(frozen=True)
class AuthTokenSource:
    """A GitHub token and where it came from."""
    kind: Literal["config", "github_cli"]
    token: str

# Define protocols for GitHub objects
@runtime_checkable
class GitHubUserProtocol(Protocol):
    """Protocol for GitHub user objects (real or fake)."""
    @property
    def login(self) -> str:
        """Get the user's login name."""
        ...

@runtime_checkable
class GitHubRefProtocol(Protocol):
    """Protocol for GitHub ref objects (base/head references)."""
    @property
    def ref(self) -> str:
        """Get the ref name (e.g., 'main', 'spr/add-feature')."""
        ...

    @property
    def sha(self) -> str:
        """Get the commit SHA."""
        ...

@runtime_checkable
class GitHubReviewProtocol(Protocol):
    """Protocol for pull request reviews."""
    @property
    def state(self) -> str:
        ...

    @property
    def user(self) -> Optional[GitHubUserProtocol]:
        ...

@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        ...

    @property
    def title(self) -> str:
        ...

    @property
    def body(self) -> Optional[str]:
        ...

    @property
    def state(self) -> str:
        """Get the PR state (open, closed)."""
        ...

    @property
    def base(self) -> GitHubRefProtocol:
        ...

    @property
    def head(self) -> GitHubRefProtocol:
        ...

    @property
    def merged(self) -> bool:
        ...

    def edit(self, title: Optional[str] = None, body: Optional[str] = None, state: Optional[str] = None,
             base: Optional[str] = None) -> None:
        """Edit the pull request."""
        ...

    def get_review_requests(self) -> Tuple[List[GitHubUserProtocol], List[object]]:
        """Get users and teams requested for review."""
        ...

    def get_reviews(self) -> List[GitHubReviewProtocol]:
        """Get submitted reviews, oldest first."""
        ...

    def create_review_request(self, reviewers: List[str]) -> None:
        """Request reviews from users."""
        ...

@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        ...

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        ...

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake)."""
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        ...

    def get_user(self, login: Optional[str] = None) -> Optional[GitHubUserProtocol]:
        ...

def _token_from_gh_cli() -> Optional[str]:
    try:
        token = Git().execute(["gh", "auth", "token"])
    except (GitCommandError, GitCommandNotFound) as e:
        logger.debug(f"gh auth token failed: {e}")
        return None
    return str(token).strip() or None

def find_github_token(config: Config) -> Optional[AuthTokenSource]:
    """Find GitHub token from config, env var, gh CLI or the gh CLI hosts file."""
    # Prefer the configured token if it exists
    if config.user.github_auth_token:
        return AuthTokenSource("config", config.user.github_auth_token)

    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return AuthTokenSource("config", token)

    token = _token_from_gh_cli()
    if token:
        return AuthTokenSource("github_cli", token)

    # Older gh versions keep the token in ~/.config/gh/hosts.yml
    try:
        gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
        if gh_config_path.exists():
            with open(gh_config_path, "r") as f:
                gh_config = yaml.safe_load(f)
            if gh_config and "github.com" in gh_config:
                github_config: Dict[str, object] = gh_config["github.com"]
                oauth_token = github_config.get("oauth_token")
                if isinstance(oauth_token, str) and oauth_token:
                    return AuthTokenSource("github_cli", oauth_token)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading gh CLI config: {e}")

    return None


class GitHubClient:
    """GitHub client implementation."""
    def __init__(self, config: Config, github_client: PyGithubProtocol):
        """Initialize with config and GitHub client implementation.

        Args:
            config: The configuration
            github_client: GitHub client implementation (real or fake)
        """
        self.config = config
        self.client = github_client
        self._repo: Optional[GitHubRepoProtocol] = None

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            if not self.config.owner or not self.config.name:
                raise Exception("GitHub repository not configured - set spr.githubRepository")
            self._repo = self.client.get_repo(f"{self.config.owner}/{self.config.name}")
        return self._repo

    def get_pull_request(self, number: int) -> PullRequest:
        """Load a pull request and parse its body into message sections."""
        logger.info(f"> github get #{number}")
        gh_pr = self.repo.get_pull(number)

        users, _teams = gh_pr.get_review_requests()
        requested = [u.login for u in users]

        # Only the latest verdict of each reviewer counts
        verdicts: Dict[str, str] = {}
        for review in gh_pr.get_reviews():
            if review.user is None or review.state in (ReviewState.COMMENTED.value, ReviewState.PENDING.value):
                continue
            verdicts[review.user.login] = review.state
        approved = [login for login, state in verdicts.items() if state == ReviewState.APPROVED.value]
        reviewers = requested + [login for login in verdicts if login not in requested]

        body = (gh_pr.body or "").replace("\r\n", "\n")
        title = gh_pr.title.strip()
        sections = parse_message(strip_stack_info(body), MessageSection.SUMMARY)
        sections[MessageSection.TITLE] = title
        sections[MessageSection.PULL_REQUEST] = self.config.pull_request_url(number)
        if reviewers:
            sections[MessageSection.REVIEWERS] = ", ".join(reviewers)
        if approved:
            sections[MessageSection.REVIEWED_BY] = ", ".join(approved)

        state = PullRequestState.OPEN if gh_pr.state == PullRequestState.OPEN.value else PullRequestState.CLOSED
        logger.debug(f"PR #{number}: state={state.value} base={gh_pr.base.ref} head={gh_pr.head.ref}")
        return PullRequest(
            number=number,
            state=state,
            title=title,
            body=body,
            sections=sections,
            base=self.config.new_github_branch_from_ref(gh_pr.base.ref),
            head=self.config.new_github_branch_from_ref(gh_pr.head.ref),
            head_oid=gh_pr.head.sha,
            merged=gh_pr.merged,
            reviewers=reviewers,
            approved_by=approved,
        )

    def update_pull_request(self, number: int, update: PullRequestUpdate) -> None:
        """Apply a partial update to a pull request."""
        if update.is_empty():
            return
        kwargs = update.edit_kwargs()
        logger.info(f"> github update #{number} : {', '.join(sorted(kwargs))}")
        gh_pr = self.repo.get_pull(number)
        gh_pr.edit(**kwargs)

    def create_pull_request(self, title: str, body: str, base: GitHubBranch, head: GitHubBranch,
                            draft: bool = False) -> int:
        """Create a pull request and return its number."""
        logger.info(f"> github create : {title} ({head.branch_name} -> {base.branch_name})")
        gh_pr = self.repo.create_pull(title=title, body=body, base=base.branch_name,
                                      head=head.branch_name, draft=draft)
        return gh_pr.number

    def request_reviewers(self, number: int, reviewers: List[str]) -> None:
        """Request reviews, filtering out the authenticated user."""
        current_user = ensure(self.client.get_user()).login.lower()
        filtered = [r for r in reviewers if r.lower() != current_user]
        if not filtered:
            logger.debug(f"No valid reviewers for PR #{number} after filtering self-review")
            return
        logger.info(f"> github add reviewers #{number} : {filtered}")
        gh_pr = self.repo.get_pull(number)
        gh_pr.create_review_request(reviewers=filtered)
