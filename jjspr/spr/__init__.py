"""Stacked PR implementation.

Every command works on the list of prepared commits named by a revision
expression and ends with a single call that writes changed commit messages
back to the repository, also when the command fails halfway.
"""

import concurrent.futures
import logging
from concurrent.futures import Future
from typing import Dict, List, Optional, Sequence, Set

from git.exc import GitCommandError

from ..config import Config
from ..git import GitInterface, base_branch_name, new_branch_name
from ..github import GitHubClient, PullRequest
from ..github.types import PullRequestState, PullRequestUpdate
from ..jj import CommitStackProvider, PreparedCommit
from ..message import MessageSection, build_commit_message, build_github_body, validate_commit_message
from ..pretty import output, write_commit_title
from ..revision import parse_revision_and_range
from ..stack_info import body_with_stack_info, build_stack_info_text, detect_stack_position
from ..typing import AlreadyClosed, GitHubBranch, MissingRequiredSection, NotAPullRequest, ValidationFailed

# Get module logger
logger = logging.getLogger(__name__)

class StackedPR:
    """StackedPR implementation."""

    def __init__(self, config: Config, github: GitHubClient, jj: CommitStackProvider, git_cmd: GitInterface):
        """Initialize with config, GitHub, jj and git clients."""
        self.config = config
        self.github = github
        self.jj = jj
        self.git_cmd = git_cmd
        self.pretend: bool = config.tool.pretend
        self.concurrency: int = config.tool.concurrency

    def _executor(self) -> concurrent.futures.ThreadPoolExecutor:
        return concurrent.futures.ThreadPoolExecutor(max_workers=self.concurrency if self.concurrency > 0 else None)

    def get_prepared_commits(self, revision: Optional[str], all_mode: bool,
                             base: Optional[str]) -> List[PreparedCommit]:
        """Resolve a revision expression to the commits to work on, bottom first."""
        revision_range = parse_revision_and_range(revision, all_mode, base)
        if revision_range.is_range:
            return self.jj.get_prepared_commits_from_to(
                revision_range.base, revision_range.target, revision_range.inclusive)
        return [self.jj.get_prepared_commit_for_revision(revision_range.target)]

    def fetch_pull_requests(self, executor: concurrent.futures.Executor,
                            commits: Sequence[PreparedCommit]) -> List[Optional['Future[PullRequest]']]:
        """Start loading the pull request of every commit that has one.

        Futures come back in stack order; commits without a pull request get None.
        """
        return [
            executor.submit(self.github.get_pull_request, commit.pull_request_number)
            if commit.pull_request_number is not None else None
            for commit in commits
        ]

    def _check_message(self, commit: PreparedCommit) -> None:
        """Validate a commit message, reporting a missing section before raising."""
        try:
            validate_commit_message(commit.message, self.config)
        except MissingRequiredSection as e:
            output("💔", str(e))
            raise

    def _validate(self, commit: PreparedCommit) -> bool:
        try:
            self._check_message(commit)
        except MissingRequiredSection:
            return False
        return True

    def _persist_after_failure(self, commits: List[PreparedCommit]) -> None:
        """Save whatever was changed before a failure, keeping the original error."""
        try:
            self.jj.rewrite_commit_messages(commits)
        except Exception as e:
            logger.error(f"Failed to update commit messages: {e}")

    def format_commits(self, revision: Optional[str] = None, all_mode: bool = False,
                       base: Optional[str] = None) -> None:
        """Rewrite commit messages into canonical form and check them."""
        commits = self.get_prepared_commits(revision, all_mode, base)
        if not commits:
            output("👋", "No commits found - nothing to do. Good bye!")
            return

        failures = 0
        for commit in commits:
            write_commit_title(commit)
            if build_commit_message(commit.message) != commit.description.strip():
                commit.message_changed = True
            if not self._validate(commit):
                failures += 1

        self.jj.rewrite_commit_messages(commits)
        if failures:
            raise ValidationFailed(failures)

    def amend_commits(self, revision: Optional[str] = None, all_mode: bool = False,
                      base: Optional[str] = None) -> None:
        """Replace local commit messages with the title and body of their pull requests."""
        commits = self.get_prepared_commits(revision, all_mode, base)
        if not commits:
            output("👋", "No commits found - nothing to do. Good bye!")
            return

        failures = 0
        with self._executor() as executor:
            futures = self.fetch_pull_requests(executor, commits)

            for commit, future in zip(commits, futures):
                write_commit_title(commit)
                if future is not None:
                    pull_request = future.result()
                    commit.message = pull_request.sections.copy()
                    commit.message_changed = True
                if not self._validate(commit):
                    failures += 1

        self.jj.rewrite_commit_messages(commits)
        if failures:
            raise ValidationFailed(failures)

    def close_pull_requests(self, revision: Optional[str] = None, all_mode: bool = False,
                            base: Optional[str] = None) -> None:
        """Close the pull requests of the given commits, stopping at the first failure."""
        commits = self.get_prepared_commits(revision, all_mode, base)
        if not commits:
            output("👋", "No commits found - nothing to do. Good bye!")
            return

        try:
            for commit in commits:
                write_commit_title(commit)
                self._close_commit(commit)
        except Exception:
            self._persist_after_failure(commits)
            raise

        self.jj.rewrite_commit_messages(commits)

    def _close_commit(self, commit: PreparedCommit) -> None:
        number = commit.pull_request_number
        if number is None:
            raise NotAPullRequest()
        output("#️⃣ ", f"Pull Request #{number}")

        pull_request = self.github.get_pull_request(number)
        if pull_request.state != PullRequestState.OPEN:
            raise AlreadyClosed(number)

        output("📖", "Getting started...")
        if self.pretend:
            logger.info(f"[PRETEND] Would close PR #{number} and delete {pull_request.head.branch_name}")
            return

        try:
            self.github.update_pull_request(number, PullRequestUpdate(state=PullRequestState.CLOSED))
        except Exception:
            output("❌", "GitHub Pull Request close failed")
            raise
        output("📕", "Closed!")

        # These sections no longer apply once the pull request is closed
        commit.message.pop(MessageSection.PULL_REQUEST, None)
        commit.message.pop(MessageSection.REVIEWED_BY, None)
        commit.message_changed = True
        commit.pull_request_number = None

        branches = [pull_request.head]
        if not pull_request.base.is_master_branch:
            branches.append(pull_request.base)
        self._delete_remote_branches(branches)

    def _delete_remote_branches(self, branches: List[GitHubBranch]) -> None:
        """Delete branches on the remote concurrently, ignoring failures.

        GitHub may be configured to delete head branches automatically, in
        which case they are already gone.
        """
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(branches)) as executor:
            futures = [executor.submit(self.git_cmd.delete_remote_branch, branch) for branch in branches]
            for branch, future in zip(branches, futures):
                try:
                    future.result()
                except GitCommandError as e:
                    logger.debug(f"Deleting remote branch {branch.branch_name} failed: {e}")

    def update_pull_requests(self, revision: Optional[str] = None, all_mode: bool = False,
                             base: Optional[str] = None, draft: bool = False,
                             reviewers: Optional[List[str]] = None) -> None:
        """Create or update a pull request for every commit, bottom of the stack first."""
        commits = self.get_prepared_commits(revision, all_mode, base)
        if not commits:
            output("👋", "No commits found - nothing to do. Good bye!")
            return

        try:
            self._update_pull_requests(commits, draft, reviewers or [])
        except Exception:
            self._persist_after_failure(commits)
            raise

        self.jj.rewrite_commit_messages(commits)

    def _update_pull_requests(self, commits: List[PreparedCommit], draft: bool, reviewers: List[str]) -> None:
        self.git_cmd.fetch()
        existing_ref_names = self.git_cmd.remote_ref_names()
        known_bodies: Dict[int, str] = {}

        with self._executor() as executor:
            futures = self.fetch_pull_requests(executor, commits)

            for commit, future in zip(commits, futures):
                write_commit_title(commit)
                self._check_message(commit)
                pull_request = future.result() if future is not None else None
                body = self._update_commit(commit, pull_request, existing_ref_names, draft, reviewers)
                if body is not None and commit.pull_request_number is not None:
                    known_bodies[commit.pull_request_number] = body

        self._update_stack_info(commits, known_bodies)

    def _update_commit(self, commit: PreparedCommit, pull_request: Optional[PullRequest],
                       existing_ref_names: Set[str], draft: bool, reviewers: List[str]) -> Optional[str]:
        """Push one commit and create or update its pull request.

        Returns the pull request body as it is on GitHub afterwards.
        """
        if pull_request is not None and pull_request.state != PullRequestState.OPEN:
            raise AlreadyClosed(pull_request.number)

        title = commit.title
        if pull_request is not None:
            head = pull_request.head
        else:
            head = self.config.new_github_branch(new_branch_name(self.config, existing_ref_names, title))
            existing_ref_names.add(head.ref_local)

        # Commits stacked on unlanded work get a base branch of their own
        if not commit.parent_commit_id or self.git_cmd.is_on_master(commit.parent_commit_id):
            base = self.config.master_ref
        else:
            if pull_request is not None and not pull_request.base.is_master_branch:
                base = pull_request.base
            else:
                base = self.config.new_github_branch(base_branch_name(self.config, existing_ref_names, title))
                existing_ref_names.add(base.ref_local)
            self.git_cmd.push_branch(commit.parent_commit_id, base)

        self.git_cmd.push_branch(commit.commit_id, head)
        body = build_github_body(commit.message)

        if pull_request is None:
            if self.pretend:
                logger.info(f"[PRETEND] Would create PR {head.branch_name} -> {base.branch_name}: {title}")
                return None
            number = self.github.create_pull_request(title, body, base, head, draft=draft)
            url = self.config.pull_request_url(number)
            output("✨", f"Created {url}")
            commit.pull_request_number = number
            commit.message[MessageSection.PULL_REQUEST] = url
            commit.message_changed = True

            requested = reviewers + self._reviewers_from_message(commit)
            if requested:
                self.github.request_reviewers(number, list(dict.fromkeys(requested)))
            return body

        update = PullRequestUpdate(
            title=title if title != pull_request.title else None,
            base=base.branch_name if base != pull_request.base else None,
        )
        if update.is_empty():
            output("✅", f"No metadata changes for #{pull_request.number}")
        elif self.pretend:
            logger.info(f"[PRETEND] Would update PR #{pull_request.number}: {update.edit_kwargs()}")
        else:
            self.github.update_pull_request(pull_request.number, update)
            output("🔄", f"Updated {self.config.pull_request_url(pull_request.number)}")
            if base.is_master_branch and not pull_request.base.is_master_branch:
                self._delete_remote_branches([pull_request.base])
        return pull_request.body

    def _reviewers_from_message(self, commit: PreparedCommit) -> List[str]:
        text = commit.message.get(MessageSection.REVIEWERS, "")
        return [r.strip().lstrip("@") for r in text.replace("\n", ",").split(",") if r.strip()]

    def _update_stack_info(self, commits: List[PreparedCommit], known_bodies: Dict[int, str]) -> None:
        """Regenerate the stack block in every pull request body of the stack."""
        all_commits = [(commit.pull_request_number, commit.message) for commit in commits]
        for index, commit in enumerate(commits):
            number = commit.pull_request_number
            if number is None:
                continue
            position = detect_stack_position(index, all_commits)
            stack_info = build_stack_info_text(position, self.config, all_commits) if position else None
            body = body_with_stack_info(build_github_body(commit.message), stack_info)
            if body == known_bodies.get(number):
                continue
            if self.pretend:
                logger.info(f"[PRETEND] Would update body of PR #{number}")
                continue
            self.github.update_pull_request(number, PullRequestUpdate(body=body))
