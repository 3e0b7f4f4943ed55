"""Config module."""

import re
from typing import Dict, Any, Optional
from .models import RepoConfig, UserConfig, SprConfig, ToolConfig
from ..typing import GitHubBranch

PR_NUMBER_REGEX = re.compile(r'^\s*#?\s*(\d+)\s*$')
PR_URL_REGEX = re.compile(r'^\s*https?://github\.com/([\w\-.]+)/([\w\-.]+)/pull/(\d+)([/?#].*)?\s*$')

class Config(SprConfig):
    """Config object holding repository, user and tool config.

    Built once per command invocation from the parsed config dict and never
    modified afterwards.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        repo_config = config.get('repo', {})
        user_config = config.get('user', {})
        tool_section = config.get('tool', {})
        tool_config = tool_section.get('jjspr', tool_section)

        super().__init__(
            repo=RepoConfig.model_validate(repo_config),
            user=UserConfig.model_validate(user_config),
            tool=ToolConfig.model_validate(tool_config),
        )

    @property
    def owner(self) -> str:
        return self.repo.github_repo_owner or ""

    @property
    def name(self) -> str:
        return self.repo.github_repo_name or ""

    @property
    def master_ref(self) -> GitHubBranch:
        """The branch pull requests are ultimately merged into."""
        return self.new_github_branch(self.repo.github_branch)

    def new_github_branch(self, branch_name: str) -> GitHubBranch:
        return GitHubBranch(branch_name, self.repo.github_remote, self.repo.github_branch)

    def new_github_branch_from_ref(self, ref: str) -> GitHubBranch:
        return GitHubBranch.from_ref(ref, self.repo.github_remote, self.repo.github_branch)

    def pull_request_url(self, number: int) -> str:
        return f"https://github.com/{self.owner}/{self.name}/pull/{number}"

    def parse_pull_request_field(self, text: str) -> Optional[int]:
        """Parse the Pull Request section of a message.

        Accepts ``123``, ``#123`` or the URL of a pull request in the
        configured repository.
        """
        if not text or not text.strip():
            return None

        match = PR_NUMBER_REGEX.match(text)
        if match:
            return int(match.group(1))

        match = PR_URL_REGEX.match(text)
        if match and match.group(1) == self.owner and match.group(2) == self.name:
            return int(match.group(3))

        return None

def default_config() -> Config:
    """Get default config without asking jj or git."""
    return Config({
        'repo': {
            'github_remote': 'origin',
            'github_branch': 'main',
        },
        'user': {},
        'tool': {
            'jjspr': {
                'concurrency': 0
            }
        }
    })
