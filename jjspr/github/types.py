"""Type definitions for GitHub pull request state."""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ReviewState(str, Enum):
    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"
    DISMISSED = "DISMISSED"
    PENDING = "PENDING"


class PullRequestUpdate(BaseModel):
    """Partial update of a pull request. Fields left as None are not touched."""
    title: Optional[str] = None
    body: Optional[str] = None
    base: Optional[str] = None
    state: Optional[PullRequestState] = None

    def is_empty(self) -> bool:
        return not self.edit_kwargs()

    def edit_kwargs(self) -> Dict[str, Any]:
        """Arguments for the PyGithub ``edit`` call."""
        kwargs = self.model_dump(exclude_none=True)
        if self.state is not None:
            kwargs['state'] = self.state.value
        return kwargs
