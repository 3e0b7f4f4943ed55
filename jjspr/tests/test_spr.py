"""Tests for the StackedPR commands against fake GitHub and jj."""

from unittest.mock import MagicMock, call

import pytest
from git.exc import GitCommandError

from jjspr.config import Config
from jjspr.github import GitHubClient
from jjspr.spr import StackedPR
from jjspr.tests.fake_github import FakeGithub, FakeRepository
from jjspr.tests.fakes import FakeJujutsu, make_config, pr_url
from jjspr.typing import AlreadyClosed, CommitHash, MissingRequiredSection, NotAPullRequest, ValidationFailed


def make_spr(config: Config, jj: FakeJujutsu, fake_github: FakeGithub, git_cmd: MagicMock) -> StackedPR:
    return StackedPR(config, GitHubClient(config, fake_github), jj, git_cmd)


class TestFormat:
    """Tests for format_commits."""

    def test_rewrites_non_canonical_messages(self, config: Config, fake_github: FakeGithub,
                                             git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["title: First", "Second\n\nBody"])
        make_spr(config, jj, fake_github, git_cmd).format_commits("trunk()..@")

        assert jj.ranges == [("trunk()", "@", False)]
        assert jj.rewrite_calls == [["change0"]]
        assert jj.descriptions["change0"] == "First"

    def test_idempotent(self, config: Config, fake_github: FakeGithub, git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["title: First\ntest plan: ran it", "Second\nsummary: Body"])
        spr = make_spr(config, jj, fake_github, git_cmd)

        spr.format_commits("trunk()..@")
        spr.format_commits("trunk()..@")

        assert jj.rewrite_calls == [["change0", "change1"], []]

    def test_missing_title_fails_at_end(self, config: Config, fake_github: FakeGithub,
                                        git_cmd: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
        jj = FakeJujutsu(config, ["Test Plan: untitled", "title: Second"])

        with pytest.raises(ValidationFailed) as exc_info:
            make_spr(config, jj, fake_github, git_cmd).format_commits("trunk()..@")

        assert exc_info.value.count == 1
        assert str(exc_info.value) == ""
        # The other commit was still fixed
        assert jj.rewrite_calls == [["change1"]]
        assert "💔 Commit message does not have a Title!" in capsys.readouterr().out

    def test_single_revision_by_default(self, config: Config, fake_github: FakeGithub,
                                        git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["First", "Second"])
        make_spr(config, jj, fake_github, git_cmd).format_commits()
        assert jj.revisions == ["@-"]
        assert jj.rewrite_calls == [[]]

    def test_empty_stack(self, config: Config, fake_github: FakeGithub, git_cmd: MagicMock,
                         capsys: pytest.CaptureFixture[str]) -> None:
        jj = FakeJujutsu(config, [])
        make_spr(config, jj, fake_github, git_cmd).format_commits("trunk()..@")
        assert jj.rewrite_calls == []
        assert "No commits found - nothing to do. Good bye!" in capsys.readouterr().out


class TestAmend:
    """Tests for amend_commits."""

    def test_only_pr_commits_change(self, config: Config, fake_github: FakeGithub,
                                    fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["First", "Second", f"Third\n\nPull Request: {pr_url(3)}"])
        fake_repo.add_pull(3, "Third, as reviewed", "Summary from GitHub", head_ref="spr/third")

        make_spr(config, jj, fake_github, git_cmd).amend_commits("base..top")

        assert fake_repo.get_pull_calls == [3]
        assert jj.rewrite_calls == [["change2"]]
        assert jj.descriptions["change0"] == "First"
        assert jj.descriptions["change2"] == (
            f"Third, as reviewed\n\nSummary from GitHub\n\nPull Request: {pr_url(3)}")
        git_cmd.fetch.assert_not_called()
        git_cmd.push_branch.assert_not_called()

    def test_non_canonical_ancestors_untouched(self, config: Config, fake_github: FakeGithub,
                                               fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        """Commits without a pull request keep their messages as written."""
        first = "First\n\nTest Plan:\nran it"
        second = "Second line one\nline two"
        jj = FakeJujutsu(config, [first, second, f"Third\n\nPull Request: {pr_url(3)}"])
        fake_repo.add_pull(3, "Third", "Summary from GitHub", head_ref="spr/third")

        make_spr(config, jj, fake_github, git_cmd).amend_commits("base..top")

        assert jj.rewrite_calls == [["change2"]]
        assert jj.descriptions["change0"] == first
        assert jj.descriptions["change1"] == second

    def test_fetches_every_pr(self, fake_github: FakeGithub, fake_repo: FakeRepository,
                              git_cmd: MagicMock) -> None:
        config = make_config(concurrency=2)
        jj = FakeJujutsu(config, [f"One\n\nPull Request: #{n}" for n in (5, 6, 7)])
        for n in (5, 6, 7):
            fake_repo.add_pull(n, f"Remote {n}", "")

        make_spr(config, jj, fake_github, git_cmd).amend_commits("base..top")

        assert sorted(fake_repo.get_pull_calls) == [5, 6, 7]
        assert [jj.descriptions[f"change{i}"].split("\n")[0] for i in range(3)] == ["Remote 5", "Remote 6", "Remote 7"]

    def test_pr_without_title_fails_validation(self, config: Config, fake_github: FakeGithub,
                                               fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, [f"Local\n\nPull Request: {pr_url(3)}"])
        fake_repo.add_pull(3, "   ", "Body")

        with pytest.raises(ValidationFailed):
            make_spr(config, jj, fake_github, git_cmd).amend_commits()

        assert jj.rewrite_calls == [["change0"]]


class TestClose:
    """Tests for close_pull_requests."""

    def test_close(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                   git_cmd: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
        jj = FakeJujutsu(config, [f"Fix\n\nReviewed By: alice\n\nPull Request: {pr_url(3)}"])
        pr = fake_repo.add_pull(3, "Fix", "", head_ref="spr/fix", base_ref="main")

        make_spr(config, jj, fake_github, git_cmd).close_pull_requests()

        assert pr.state == "closed"
        assert jj.descriptions["change0"] == "Fix"
        git_cmd.delete_remote_branch.assert_called_once_with(config.new_github_branch("spr/fix"))
        out = capsys.readouterr().out
        assert "#️⃣  Pull Request #3" in out
        assert "📕 Closed!" in out

    def test_close_deletes_base_branch(self, config: Config, fake_github: FakeGithub,
                                       fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, [f"Fix\n\nPull Request: {pr_url(3)}"])
        fake_repo.add_pull(3, "Fix", "", head_ref="spr/fix", base_ref="spr/main.fix")
        git_cmd.delete_remote_branch.side_effect = GitCommandError(["git", "push"], 1)

        make_spr(config, jj, fake_github, git_cmd).close_pull_requests()

        deleted = {c.args[0].branch_name for c in git_cmd.delete_remote_branch.call_args_list}
        assert deleted == {"spr/fix", "spr/main.fix"}
        assert jj.rewrite_calls == [["change0"]]

    def test_not_a_pull_request(self, config: Config, fake_github: FakeGithub, git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["Fix"])
        with pytest.raises(NotAPullRequest):
            make_spr(config, jj, fake_github, git_cmd).close_pull_requests()
        assert jj.rewrite_calls == [[]]

    def test_already_closed(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                            git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, [f"Fix\n\nPull Request: {pr_url(3)}"])
        pr = fake_repo.add_pull(3, "Fix", "", state="closed")

        with pytest.raises(AlreadyClosed):
            make_spr(config, jj, fake_github, git_cmd).close_pull_requests()

        assert pr.edits == []
        git_cmd.delete_remote_branch.assert_not_called()

    def test_stops_at_first_failure_and_keeps_progress(self, config: Config, fake_github: FakeGithub,
                                                       fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, [f"First\n\nPull Request: {pr_url(1)}", "Local only",
                                  f"Third\n\nPull Request: {pr_url(3)}"])
        first = fake_repo.add_pull(1, "First", "", head_ref="spr/first")
        third = fake_repo.add_pull(3, "Third", "", head_ref="spr/third")

        with pytest.raises(NotAPullRequest):
            make_spr(config, jj, fake_github, git_cmd).close_pull_requests("base..top")

        assert first.state == "closed"
        assert third.state == "open"
        assert jj.rewrite_calls == [["change0"]]
        assert jj.descriptions["change0"] == "First"

    def test_persist_error_does_not_hide_failure(self, config: Config, fake_github: FakeGithub,
                                                 git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["Fix"])
        jj.rewrite_error = GitCommandError(["jj", "describe"], 1)
        with pytest.raises(NotAPullRequest):
            make_spr(config, jj, fake_github, git_cmd).close_pull_requests()


class TestDiff:
    """Tests for update_pull_requests."""

    def test_creates_stack(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                           git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["First", "Second\n\nMore about it\n\nReviewers: alice"])

        make_spr(config, jj, fake_github, git_cmd).update_pull_requests("trunk()..@", reviewers=["bob"])

        first, second = fake_repo.pulls[1], fake_repo.pulls[2]
        assert (first.head_ref, first.base_ref) == ("spr/first", "main")
        assert (second.head_ref, second.base_ref) == ("spr/second", "spr/main.second")
        assert first.requested_reviewers == ["bob"]
        assert second.requested_reviewers == ["bob", "alice"]

        assert git_cmd.push_branch.call_args_list == [
            call(CommitHash("commit0"), config.new_github_branch("spr/first")),
            call(CommitHash("commit0"), config.new_github_branch("spr/main.second")),
            call(CommitHash("commit1"), config.new_github_branch("spr/second")),
        ]

        assert "**Stack Position: 1 of 2**" in first.body
        assert second.body.startswith("More about it\n\n---\n**Stack Position: 2 of 2**")
        assert "⬆️ **Depends on:** acme/widgets#1 - First" in second.body

        assert jj.rewrite_calls == [["change0", "change1"]]
        assert jj.descriptions["change0"] == f"First\n\nPull Request: {pr_url(1)}"

    def test_updates_existing(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                              git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, [f"New title\n\nBody\n\nPull Request: {pr_url(4)}"])
        pr = fake_repo.add_pull(4, "Old title", "Body", head_ref="spr/old-title", base_ref="main")
        git_cmd.remote_ref_names.return_value = {"refs/remotes/origin/spr/old-title"}

        make_spr(config, jj, fake_github, git_cmd).update_pull_requests()

        assert pr.edits == [{"title": "New title"}]
        git_cmd.push_branch.assert_called_once_with(CommitHash("commit0"), config.new_github_branch("spr/old-title"))
        assert jj.rewrite_calls == [[]]

    def test_taken_branch_name(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                               git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["Fix"])
        git_cmd.remote_ref_names.return_value = {"refs/remotes/origin/spr/fix"}

        make_spr(config, jj, fake_github, git_cmd).update_pull_requests()

        assert fake_repo.pulls[1].head_ref == "spr/fix-1"

    def test_closed_pr_stops(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                             git_cmd: MagicMock) -> None:
        jj = FakeJujutsu(config, ["First", f"Second\n\nPull Request: {pr_url(9)}"])
        fake_repo.add_pull(9, "Second", "", state="closed")

        with pytest.raises(AlreadyClosed):
            make_spr(config, jj, fake_github, git_cmd).update_pull_requests("trunk()..@")

        # The first PR was created and recorded before the failure
        assert list(fake_repo.pulls) == [9, 10]
        assert jj.rewrite_calls == [["change0"]]
        assert jj.descriptions["change0"] == f"First\n\nPull Request: {pr_url(10)}"

    def test_missing_title_stops(self, config: Config, fake_github: FakeGithub, fake_repo: FakeRepository,
                                 git_cmd: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
        jj = FakeJujutsu(config, ["Test Plan: nothing"])
        with pytest.raises(MissingRequiredSection):
            make_spr(config, jj, fake_github, git_cmd).update_pull_requests()
        assert fake_repo.pulls == {}
        git_cmd.push_branch.assert_not_called()
        # Progress is still saved, and there is none
        assert jj.rewrite_calls == [[]]
        assert "💔 Commit message does not have a Title!" in capsys.readouterr().out

    def test_non_canonical_commits_not_rewritten(self, config: Config, fake_github: FakeGithub,
                                                fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        """Publishing leaves messages alone unless it records a new pull request."""
        description = f"Fix\n\nTest Plan:\nran it\n\nPull Request: {pr_url(4)}"
        jj = FakeJujutsu(config, [description])
        fake_repo.add_pull(4, "Fix", "Test Plan: ran it", head_ref="spr/fix", base_ref="main")
        git_cmd.remote_ref_names.return_value = {"refs/remotes/origin/spr/fix"}

        make_spr(config, jj, fake_github, git_cmd).update_pull_requests()

        assert jj.rewrite_calls == [[]]
        assert jj.descriptions["change0"] == description

    def test_pretend(self, fake_github: FakeGithub, fake_repo: FakeRepository, git_cmd: MagicMock) -> None:
        config = make_config(pretend=True)
        jj = FakeJujutsu(config, ["First", f"Second\n\nPull Request: {pr_url(4)}"])
        pr = fake_repo.add_pull(4, "Old", "", head_ref="spr/second", base_ref="spr/main.second")

        make_spr(config, jj, fake_github, git_cmd).update_pull_requests("trunk()..@")

        assert list(fake_repo.pulls) == [4]
        assert pr.edits == []
        assert jj.rewrite_calls == [[]]
