"""CLI entry point."""

import os
import sys
import click
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from click import Context

from ...config import Config, default_config
from ...config.config_parser import parse_config
from ...git import RealGit
from ...github import GitHubClient, find_github_token
from ...jj import Jujutsu
from ...spr import StackedPR

# Get module logger
logger = logging.getLogger(__name__)

def check(err: Exception) -> None:
    """Log an error and exit."""
    message = str(err)
    if message:
        logger.error(message)
    sys.exit(1)

class AliasedGroup(click.Group):
    """Command group with support for aliases."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        """Initialize with aliases map."""
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        """Add an alias for a command."""
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """jjspr - Stacked Pull Requests on GitHub for Jujutsu."""
    ctx.obj = {}

def revision_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that works on a set of revisions."""
    f = click.option('-v', '--verbose', count=True,
                     help="Increase verbosity (can be used multiple times for more verbosity)")(f)
    f = click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
                     help='Run as if jjspr was started in DIRECTORY instead of the current working directory')(f)
    f = click.option('--base', type=str,
                     help="Base revision for --all, defaults to trunk()")(f)
    f = click.option('-a', '--all', 'all_mode', is_flag=True,
                     help="Work on every revision between the base and the target")(f)
    f = click.option('-r', '--revision', type=str,
                     help="Revision or range (base..target, base::target) to work on, defaults to @-")(f)
    return f

def setup(directory: Optional[str] = None, pretend: bool = False,
          authenticate: bool = True) -> Tuple[Config, RealGit, Jujutsu, GitHubClient]:
    """Build config and clients for the repository in the current directory."""
    if directory:
        os.chdir(directory)

    bootstrap = default_config()
    git_cmd = RealGit(bootstrap)
    try:
        repo_root = git_cmd.repo.working_tree_dir or os.getcwd()
    except Exception as e:
        logger.error(f"{e}. jjspr needs a jj repository colocated with git")
        sys.exit(2)

    cfg = parse_config(git_cmd, Jujutsu(bootstrap, repo_root), repo_root)
    if pretend:
        cfg['tool']['jjspr']['pretend'] = True
    config = Config(cfg)
    git_cmd = RealGit(config, repo_root)
    jj = Jujutsu(config, repo_root)

    # Imported here so the CLI module loads without touching the network stack
    from github import Github
    from ...github.adapters import PyGithubAdapter

    if not authenticate:
        return config, git_cmd, jj, GitHubClient(config, PyGithubAdapter(Github()))

    token = find_github_token(config)
    if not token:
        error_msg = ("No GitHub token found. Try one of:\n"
                     "1. Set GITHUB_TOKEN env var\n"
                     "2. Log in with 'gh auth login'\n"
                     "3. Set spr.githubAuthToken with 'jj config set --user'")
        logger.error(error_msg)
        sys.exit(1)
    logger.debug(f"Using GitHub token from {token.kind}")
    github = GitHubClient(config, PyGithubAdapter(Github(token.token)))

    return config, git_cmd, jj, github

def stacked_pr(directory: Optional[str], verbose: int, pretend: bool = False,
               authenticate: bool = True) -> StackedPR:
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd, jj, github = setup(directory, pretend, authenticate)
    return StackedPR(config, github, jj, git_cmd)

@cli.command(name="diff", help="Create or update pull requests for the given revisions")
@revision_options
@click.option('--draft', is_flag=True, help="Create new pull requests as drafts")
@click.option('--reviewer', '-R', multiple=True,
              help="Add the specified reviewer to newly created pull requests")
@click.option('--pretend', is_flag=True, help="Don't actually push or create/update pull requests, just show what would happen")
def diff(revision: Optional[str], all_mode: bool, base: Optional[str], directory: Optional[str],
         verbose: int, draft: bool, reviewer: List[str], pretend: bool) -> None:
    """Diff command."""
    stackedpr = stacked_pr(directory, verbose, pretend)
    try:
        stackedpr.update_pull_requests(revision, all_mode, base, draft=draft, reviewers=list(reviewer))
    except Exception as e:
        check(e)

@cli.command(name="amend", help="Update local commit messages with the content of their pull requests")
@revision_options
def amend(revision: Optional[str], all_mode: bool, base: Optional[str], directory: Optional[str],
          verbose: int) -> None:
    """Amend command."""
    stackedpr = stacked_pr(directory, verbose)
    try:
        stackedpr.amend_commits(revision, all_mode, base)
    except Exception as e:
        check(e)

@cli.command(name="format", help="Reformat commit messages and check that they have a title")
@revision_options
def format_(revision: Optional[str], all_mode: bool, base: Optional[str], directory: Optional[str],
            verbose: int) -> None:
    """Format command."""
    stackedpr = stacked_pr(directory, verbose, authenticate=False)
    try:
        stackedpr.format_commits(revision, all_mode, base)
    except Exception as e:
        check(e)

@cli.command(name="close", help="Close the pull requests of the given revisions")
@revision_options
def close(revision: Optional[str], all_mode: bool, base: Optional[str], directory: Optional[str],
          verbose: int) -> None:
    """Close command."""
    stackedpr = stacked_pr(directory, verbose)
    try:
        stackedpr.close_pull_requests(revision, all_mode, base)
    except Exception as e:
        check(e)


cli.add_alias("publish", "diff")  # type: ignore[attr-defined]


def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
