"""Stack position of a pull request and the markdown block describing it."""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .config import Config
from .message import MessageSection, MessageSectionsMap

StackEntry = Tuple[Optional[int], MessageSectionsMap]

# A rendered block, from its opening rule to its closing rule
STACK_INFO_REGEX = re.compile(r'(?:\n*)---\n\*\*Stack Position: \d+ of \d+\*\*.*?\n---(?=\n|$)', re.DOTALL)


@dataclass
class StackPosition:
    """Where a pull request sits in its stack."""
    current: int  # 1-indexed
    total: int
    parent_pr: Optional[int] = None
    child_prs: List[int] = field(default_factory=list)


def detect_stack_position(current_index: int, all_commits: Sequence[StackEntry]) -> Optional[StackPosition]:
    """Detect the stack position of the commit at ``current_index``.

    Only commits with a pull request number are part of the stack. Returns
    None if fewer than two commits have pull requests, or if the current one
    has none.
    """
    commits_with_prs = [(idx, pr) for idx, (pr, _) in enumerate(all_commits) if pr is not None]
    if len(commits_with_prs) <= 1:
        return None

    positions = [i for i, (idx, _) in enumerate(commits_with_prs) if idx == current_index]
    if not positions:
        return None
    stack_position = positions[0]

    parent_pr = commits_with_prs[stack_position - 1][1] if stack_position > 0 else None
    child_prs = [pr for _, pr in commits_with_prs[stack_position + 1:]]

    return StackPosition(
        current=stack_position + 1,
        total=len(commits_with_prs),
        parent_pr=parent_pr,
        child_prs=child_prs,
    )


def _title_suffix(pr_number: int, all_commits: Sequence[StackEntry]) -> str:
    for pr, message in all_commits:
        if pr == pr_number and message.get(MessageSection.TITLE):
            return f" - {message[MessageSection.TITLE]}"
    return ""


def build_stack_info_text(position: StackPosition, config: Config, all_commits: Sequence[StackEntry]) -> str:
    """Generate the stack information block for a pull request description."""
    repo = f"{config.owner}/{config.name}"
    lines: List[str] = ["---", f"**Stack Position: {position.current} of {position.total}**", ""]

    if position.parent_pr is not None:
        lines.append(f"⬆️ **Depends on:** {repo}#{position.parent_pr}{_title_suffix(position.parent_pr, all_commits)}")

    if position.child_prs:
        children = "".join(f" {repo}#{child}{_title_suffix(child, all_commits)}" for child in position.child_prs)
        lines.append(f"⬇️ **Required for:**{children}")

    if position.total > 1:
        lines.append("")
        lines.append("**Full Stack:**")
        num = 0
        for pr, message in all_commits:
            if pr is None:
                continue
            num += 1
            title = f" - {message[MessageSection.TITLE]}" if message.get(MessageSection.TITLE) else ""
            indicator = " (this PR)" if num == position.current else ""
            lines.append(f"{num}. {repo}#{pr}{title}{indicator}")

    lines.append("")
    lines.append("---")
    return "\n".join(lines)


def strip_stack_info(body: str) -> str:
    """Remove a previously rendered stack information block from a body."""
    # Bodies edited on GitHub come back with CRLF line endings
    body = body.replace("\r\n", "\n")
    return STACK_INFO_REGEX.sub("", body).strip()


def body_with_stack_info(body: str, stack_info: Optional[str]) -> str:
    """Replace any stack information in ``body`` with ``stack_info``."""
    body = strip_stack_info(body)
    if not stack_info:
        return body
    if not body:
        return stack_info
    return f"{body}\n\n{stack_info}"
