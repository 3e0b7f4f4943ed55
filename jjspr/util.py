import re
from typing import Optional, TypeVar

# Define TypeVar here instead of importing from github to avoid circular imports
T = TypeVar('T')


def ensure(value: Optional[T]) -> T:
    """Ensure a value is not None, raising RuntimeError if it is.

    Args:
        value: The value to check

    Returns:
        The value if it is not None

    Raises:
        RuntimeError: If the value is None
    """
    if value is None:
        raise RuntimeError("Value is None")
    return value


def slugify(text: str) -> str:
    """Turn a title into something usable in a branch name.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single dash and trims dashes from both ends.
    """
    return re.sub(r'[^a-z0-9]+', '-', text.strip().lower()).strip('-')
