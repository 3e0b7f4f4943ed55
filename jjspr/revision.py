"""Parsing of revision parameters and ranges."""

import logging
from typing import NamedTuple, Optional

from .typing import InvalidRangeFormat

logger = logging.getLogger(__name__)

# Finished work sits one revision behind the working copy
DEFAULT_REVISION = "@-"
DEFAULT_BASE = "trunk()"

EXCLUSIVE_OPERATOR = ".."
INCLUSIVE_OPERATOR = "::"


class RevisionRange(NamedTuple):
    """Result of resolving a revision expression."""
    is_range: bool
    base: str
    target: str
    inclusive: bool


def _split_range(revision: str, operator: str) -> RevisionRange:
    parts = revision.split(operator)
    if len(parts) != 2:
        raise InvalidRangeFormat(revision, operator)
    return RevisionRange(True, parts[0], parts[1], operator == INCLUSIVE_OPERATOR)


def parse_revision_and_range(revision: Optional[str], all_mode: bool,
                             base: Optional[str]) -> RevisionRange:
    """Decide whether a revision parameter names a single revision or a range.

    An explicit range operator in the revision wins over ``all_mode``:
    ``base..target`` excludes the base, ``base::target`` includes both ends.
    With ``all_mode`` the range runs from ``base`` (default ``trunk()``) to the
    revision. Otherwise a single revision is returned.
    """
    target = revision if revision is not None else DEFAULT_REVISION

    if EXCLUSIVE_OPERATOR in target:
        result = _split_range(target, EXCLUSIVE_OPERATOR)
    elif INCLUSIVE_OPERATOR in target:
        result = _split_range(target, INCLUSIVE_OPERATOR)
    elif all_mode:
        result = RevisionRange(True, base if base is not None else DEFAULT_BASE, target, False)
    else:
        result = RevisionRange(False, "", target, False)

    logger.debug(f"Resolved revision {revision!r} (all={all_mode}, base={base!r}) to {result}")
    return result
