"""Config parser logic."""

import os
import re
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import yaml

from ...git import GitInterface

# Get module logger
logger = logging.getLogger(__name__)

RepoConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, RepoConfig]

REMOTE_URL_REGEX = re.compile(r'github\.com[:/]([\w\-.]+)/([\w\-.]+?)(?:\.git)?/?$')


class ConfigSource(Protocol):
    """Anything that can look up a config key, like jj or git."""
    def config_get(self, key: str) -> Optional[str]: ...


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "yes", "on", "1")


# (config key, section, field, converter)
CONFIG_KEYS: List[Tuple[str, str, str, Callable[[str], Any]]] = [
    ("spr.githubRemoteName", "repo", "github_remote", str),
    ("spr.githubMasterBranch", "repo", "github_branch", str),
    ("spr.branchPrefix", "repo", "branch_prefix", str),
    ("spr.requireApproval", "repo", "require_approval", _parse_bool),
    ("spr.githubAuthToken", "user", "github_auth_token", str),
]


def parse_remote_url(remote_url: str) -> Optional[Tuple[str, str]]:
    """Get owner and repository name from a GitHub SSH or HTTPS remote URL."""
    match = REMOTE_URL_REGEX.search(remote_url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def _lookup(key: str, jj: Optional[ConfigSource], git_cmd: GitInterface) -> Optional[str]:
    if jj is not None:
        value = jj.config_get(key)
        if value is not None:
            return value
    return git_cmd.config_get(key)


def parse_config(git_cmd: GitInterface, jj: Optional[ConfigSource] = None,
                 repo_root: Optional[str] = None) -> Config:
    """Parse config from defaults, .spr.yaml, jj/git config and the remote URL.

    Later sources win over earlier ones.
    """
    config: Config = {
        'repo': {
            'github_remote': 'origin',
            'github_branch': 'main',
            'branch_prefix': 'spr/',
            'require_approval': False,
        },
        'user': {},
        'tool': {
            'jjspr': {
                'concurrency': 0,
                'pretend': False,
            }
        }
    }

    # Try to load .spr.yaml from repository root
    spr_yaml = os.path.join(repo_root or os.getcwd(), '.spr.yaml')
    try:
        with open(spr_yaml, 'r') as f:
            logger.info("Found .spr.yaml, loading...")
            repo_config = yaml.safe_load(f)
            logger.debug(f"Config from .spr.yaml: {repo_config}")
            if repo_config:
                for section in ('repo', 'user'):
                    if isinstance(repo_config.get(section), dict):
                        config[section].update(repo_config[section])
                tool = repo_config.get('tool')
                if isinstance(tool, dict) and isinstance(tool.get('jjspr'), dict):
                    config['tool']['jjspr'].update(tool['jjspr'])
    except FileNotFoundError:
        logger.debug("No .spr.yaml found, using defaults")

    for key, section, field, convert in CONFIG_KEYS:
        value = _lookup(key, jj, git_cmd)
        if value is not None:
            config[section][field] = convert(value)

    repository = _lookup("spr.githubRepository", jj, git_cmd)
    if repository:
        owner, _, name = repository.partition("/")
        if owner and name:
            config['repo']['github_repo_owner'] = owner
            config['repo']['github_repo_name'] = name
        else:
            logger.warning(f"Ignoring spr.githubRepository={repository}, expected owner/name")

    # Fall back to the remote URL for owner/name
    if not config['repo'].get('github_repo_owner') or not config['repo'].get('github_repo_name'):
        remote = config['repo']['github_remote']
        remote_url = git_cmd.config_get(f"remote.{remote}.url")
        parsed = parse_remote_url(remote_url) if remote_url else None
        if parsed:
            if not config['repo'].get('github_repo_owner'):
                config['repo']['github_repo_owner'] = parsed[0]
            if not config['repo'].get('github_repo_name'):
                config['repo']['github_repo_name'] = parsed[1]
        else:
            logger.debug(f"Could not get GitHub repository from remote {remote}: {remote_url}")

    return config
