"""Adapter classes to wrap PyGithub objects with our protocol interfaces."""

from typing import List, Optional, Tuple, Union
import logging

from github import Github
from github.Repository import Repository
from github.PullRequest import PullRequest as PyGithubPullRequest
from github.PullRequestReview import PullRequestReview
from github.NamedUser import NamedUser
from github.AuthenticatedUser import AuthenticatedUser
from github.GithubObject import NotSet

from . import (
    PyGithubProtocol,
    GitHubRepoProtocol,
    GitHubPullRequestProtocol,
    GitHubReviewProtocol,
    GitHubUserProtocol,
    GitHubRefProtocol,
)

logger = logging.getLogger(__name__)


class PyGithubUserAdapter(GitHubUserProtocol):
    """Adapter for PyGithub NamedUser or AuthenticatedUser objects."""

    def __init__(self, user: Union[NamedUser, AuthenticatedUser]) -> None:
        self._user = user

    @property
    def login(self) -> str:
        """Get the user's login name."""
        return self._user.login


class PyGithubReviewAdapter(GitHubReviewProtocol):
    """Adapter for PyGithub PullRequestReview objects."""

    def __init__(self, review: PullRequestReview) -> None:
        self._review = review

    @property
    def state(self) -> str:
        return self._review.state

    @property
    def user(self) -> Optional[GitHubUserProtocol]:
        return PyGithubUserAdapter(self._review.user) if self._review.user else None


class PyGithubPullRequestAdapter(GitHubPullRequestProtocol):
    """Adapter for PyGithub PullRequest objects."""

    def __init__(self, pr: PyGithubPullRequest) -> None:
        self._pr = pr

    @property
    def number(self) -> int:
        return self._pr.number

    @property
    def title(self) -> str:
        return self._pr.title

    @property
    def body(self) -> Optional[str]:
        return self._pr.body

    @property
    def state(self) -> str:
        return self._pr.state

    @property
    def base(self) -> GitHubRefProtocol:
        return self._pr.base

    @property
    def head(self) -> GitHubRefProtocol:
        return self._pr.head

    @property
    def merged(self) -> bool:
        return self._pr.merged

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Edit the pull request."""
        # Convert None to NotSet for PyGithub
        self._pr.edit(
            title=title if title is not None else NotSet,
            body=body if body is not None else NotSet,
            state=state if state is not None else NotSet,
            base=base if base is not None else NotSet
        )

    def get_review_requests(self) -> Tuple[List[GitHubUserProtocol], List[object]]:
        """Get users and teams requested for review."""
        users, teams = self._pr.get_review_requests()
        # Convert PaginatedList to List
        return ([PyGithubUserAdapter(u) for u in users], list(teams))

    def get_reviews(self) -> List[GitHubReviewProtocol]:
        """Get submitted reviews, oldest first."""
        return [PyGithubReviewAdapter(r) for r in self._pr.get_reviews()]

    def create_review_request(self, reviewers: List[str]) -> None:
        """Create review request with reviewers."""
        self._pr.create_review_request(reviewers=reviewers)


class PyGithubRepoAdapter(GitHubRepoProtocol):
    """Adapter for PyGithub Repository objects."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        """Get a pull request by number."""
        return PyGithubPullRequestAdapter(self._repo.get_pull(number))

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        """Create a new pull request."""
        pr = self._repo.create_pull(
            title=title,
            body=body,
            base=base,
            head=head,
            draft=draft
        )
        return PyGithubPullRequestAdapter(pr)


class PyGithubAdapter(PyGithubProtocol):
    """Adapter for the main PyGithub object."""

    def __init__(self, github: Github) -> None:
        self._github = github

    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        return PyGithubRepoAdapter(self._github.get_repo(full_name_or_id))

    def get_user(self, login: Optional[str] = None) -> Optional[GitHubUserProtocol]:
        """Get a user by login or the authenticated user if login is None."""
        # PyGithub uses NotSet instead of None
        if login is None:
            user = self._github.get_user()
        else:
            user = self._github.get_user(login)
        return PyGithubUserAdapter(user) if user else None
