"""In-memory fake of the PyGithub surface used by jjspr."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from github import UnknownObjectException

logger = logging.getLogger(__name__)

@dataclass
class FakeNamedUser:
    """Fake implementation of the NamedUser class from PyGithub."""
    login: str

@dataclass
class FakeRef:
    """Fake implementation of the head/base ref of a pull request."""
    ref: str
    sha: str = ""

@dataclass
class FakeReview:
    """Fake implementation of the PullRequestReview class from PyGithub."""
    state: str
    user: Optional[FakeNamedUser]

@dataclass
class FakePullRequest:
    """API object for a pull request, holding its own state."""
    number: int
    title: str
    body: str
    state: str = "open"
    base_ref: str = "main"
    head_ref: str = ""
    head_sha: str = ""
    merged: bool = False
    draft: bool = False
    requested_reviewers: List[str] = field(default_factory=list)
    reviews: List[FakeReview] = field(default_factory=list)
    edits: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def base(self) -> FakeRef:
        return FakeRef(self.base_ref)

    @property
    def head(self) -> FakeRef:
        return FakeRef(self.head_ref, self.head_sha)

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Update pull request properties."""
        changes = {k: v for k, v in dict(title=title, body=body, state=state, base=base).items() if v is not None}
        self.edits.append(changes)
        if title is not None:
            self.title = title
        if body is not None:
            self.body = body
        if state is not None:
            self.state = state
        if base is not None:
            self.base_ref = base

    def get_review_requests(self) -> Tuple[List[FakeNamedUser], List[Any]]:
        return [FakeNamedUser(login) for login in self.requested_reviewers], []

    def get_reviews(self) -> List[FakeReview]:
        return list(self.reviews)

    def create_review_request(self, reviewers: List[str]) -> None:
        for reviewer in reviewers:
            if reviewer not in self.requested_reviewers:
                self.requested_reviewers.append(reviewer)

class FakeRepository:
    """Fake implementation of the Repository class from PyGithub."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        self.pulls: Dict[int, FakePullRequest] = {}
        self.get_pull_calls: List[int] = []
        self._lock = threading.Lock()

    def add_pull(self, number: int, title: str, body: str = "", **kwargs: Any) -> FakePullRequest:
        pr = FakePullRequest(number=number, title=title, body=body, **kwargs)
        self.pulls[number] = pr
        return pr

    def get_pull(self, number: int) -> FakePullRequest:
        with self._lock:
            self.get_pull_calls.append(number)
        if number not in self.pulls:
            raise UnknownObjectException(404, {"message": "Not Found"}, None)
        return self.pulls[number]

    def create_pull(self, title: str, body: str, base: str, head: str, draft: bool = False) -> FakePullRequest:
        number = max(self.pulls, default=0) + 1
        logger.debug(f"Fake create PR #{number}: {head} -> {base}")
        return self.add_pull(number, title, body, base_ref=base, head_ref=head, draft=draft)

class FakeGithub:
    """Fake implementation of the Github class from PyGithub."""

    def __init__(self, login: str = "me"):
        self.login = login
        self.repos: Dict[str, FakeRepository] = {}

    def get_repo(self, full_name_or_id: str) -> FakeRepository:
        if full_name_or_id not in self.repos:
            self.repos[full_name_or_id] = FakeRepository(full_name_or_id)
        return self.repos[full_name_or_id]

    def get_user(self, login: Optional[str] = None) -> FakeNamedUser:
        return FakeNamedUser(login or self.login)
