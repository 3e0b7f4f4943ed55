"""Structured sections inside commit messages and pull request bodies.

A commit message is split into sections introduced by ``Label: payload``
header lines. Text before the first header belongs to a default section: the
Title for commit messages (the first paragraph; the rest becomes the Summary)
and the Summary for pull request bodies.
"""

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence, Tuple

from .typing import MissingRequiredSection

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


class MessageSection(str, Enum):
    """Known message sections, declared in canonical order."""
    TITLE = "Title"
    SUMMARY = "Summary"
    TEST_PLAN = "Test Plan"
    REVIEWERS = "Reviewers"
    REVIEWED_BY = "Reviewed By"
    PULL_REQUEST = "Pull Request"


SECTION_ORDER: List[MessageSection] = list(MessageSection)

_SECTION_LABELS: Dict[str, MessageSection] = {
    "title": MessageSection.TITLE,
    "summary": MessageSection.SUMMARY,
    "test plan": MessageSection.TEST_PLAN,
    "testplan": MessageSection.TEST_PLAN,
    "test-plan": MessageSection.TEST_PLAN,
    "reviewer": MessageSection.REVIEWERS,
    "reviewers": MessageSection.REVIEWERS,
    "reviewed by": MessageSection.REVIEWED_BY,
    "reviewed-by": MessageSection.REVIEWED_BY,
    "pull request": MessageSection.PULL_REQUEST,
    "pull-request": MessageSection.PULL_REQUEST,
}

HEADER_REGEX = re.compile(r'^\s*([\w\s\-]+?)\s*:\s*(.*)$')


def message_section_by_label(label: str) -> Optional[MessageSection]:
    """Look up a section by its header label, ignoring case and extra spaces."""
    return _SECTION_LABELS.get(" ".join(label.lower().split()))


class MessageSectionsMap(Dict[MessageSection, str]):
    """Dict of section texts that always iterates in canonical section order."""

    def _ordered_keys(self) -> List[MessageSection]:
        return [s for s in SECTION_ORDER if dict.__contains__(self, s)]

    def __iter__(self) -> Iterator[MessageSection]:
        return iter(self._ordered_keys())

    def keys(self) -> List[MessageSection]:  # type: ignore[override]
        return self._ordered_keys()

    def values(self) -> List[str]:  # type: ignore[override]
        return [self[s] for s in self._ordered_keys()]

    def items(self) -> List[Tuple[MessageSection, str]]:  # type: ignore[override]
        return [(s, self[s]) for s in self._ordered_keys()]

    def copy(self) -> 'MessageSectionsMap':
        return MessageSectionsMap(self.items())

    def __repr__(self) -> str:
        inner = ", ".join(f"{s.value!r}: {t!r}" for s, t in self.items())
        return f"MessageSectionsMap({{{inner}}})"


def _header_section(line: str) -> Optional[Tuple[MessageSection, str]]:
    match = HEADER_REGEX.match(line)
    if not match:
        return None
    section = message_section_by_label(match.group(1))
    if section is None:
        return None
    return section, match.group(2)


def parse_message(msg: str, top_section: MessageSection = MessageSection.TITLE) -> MessageSectionsMap:
    """Parse commit text into sections.

    Args:
        msg: The raw message text
        top_section: Section that receives text appearing before any header

    Returns:
        MessageSectionsMap with stripped, non-empty section texts
    """
    sections = MessageSectionsMap()
    section = top_section
    lines: List[str] = []

    def flush() -> None:
        if section == MessageSection.TITLE:
            text = " ".join(line.strip() for line in lines if line.strip())
            separator = " "
        else:
            text = "\n".join(lines).strip()
            separator = "\n\n"
        if not text:
            return
        existing = sections.get(section)
        sections[section] = f"{existing}{separator}{text}" if existing else text

    for line in msg.strip().split("\n"):
        line = line.rstrip()
        header = _header_section(line)
        if header is not None:
            flush()
            section, payload = header
            lines = [payload]
            continue

        # The title is the first paragraph only
        if section == MessageSection.TITLE and not line.strip() and any(l.strip() for l in lines):
            flush()
            section = MessageSection.SUMMARY
            lines = []
            continue

        lines.append(line)

    flush()
    return sections


def _render_labeled(section: MessageSection, text: str) -> str:
    if "\n" in text:
        return f"{section.value}:\n{text}"
    return f"{section.value}: {text}"


def build_message(sections: MessageSectionsMap, order: Sequence[MessageSection],
                  top_section: MessageSection = MessageSection.TITLE) -> str:
    """Render the given sections in canonical order.

    Title and Summary are written without a label whenever the parser would
    assign the bare text to them anyway, so that parsing the result with the
    same ``top_section`` gives back the same sections.
    """
    parts: List[str] = []
    implicit: Optional[MessageSection] = top_section

    for section in SECTION_ORDER:
        if section not in order:
            continue
        text = sections.get(section, "").strip()
        if not text:
            continue
        if section == MessageSection.TITLE:
            text = " ".join(line.strip() for line in text.split("\n") if line.strip())

        first_line = text.split("\n")[0]
        if section == implicit and _header_section(first_line) is None:
            parts.append(text)
        else:
            parts.append(_render_labeled(section, text))

        implicit = MessageSection.SUMMARY if section == MessageSection.TITLE else None

    return "\n\n".join(parts)


def build_commit_message(sections: MessageSectionsMap) -> str:
    """Render a full commit message."""
    return build_message(sections, SECTION_ORDER)


def build_github_body(sections: MessageSectionsMap) -> str:
    """Render the part of a message that goes into a pull request body."""
    return build_message(sections, [MessageSection.SUMMARY, MessageSection.TEST_PLAN],
                         top_section=MessageSection.SUMMARY)


def validate_commit_message(message: MessageSectionsMap, config: Optional['Config'] = None) -> None:
    """Check that a message can be turned into a pull request.

    Raises:
        MissingRequiredSection: If the Title is absent or blank
    """
    if not message.get(MessageSection.TITLE, "").strip():
        raise MissingRequiredSection(MessageSection.TITLE.value)

    pull_request = message.get(MessageSection.PULL_REQUEST)
    if pull_request and config is not None and config.parse_pull_request_field(pull_request) is None:
        logger.warning(f"Pull Request reference {pull_request!r} does not point to "
                       f"{config.repo.github_repo_owner}/{config.repo.github_repo_name}")
