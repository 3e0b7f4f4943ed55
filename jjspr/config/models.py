"""Pydantic models for config types."""

from typing import Optional
from pydantic import BaseModel, Field

class RepoConfig(BaseModel):
    """Repository configuration."""
    github_remote: str = "origin"
    github_branch: str = "main"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    branch_prefix: str = "spr/"
    require_approval: bool = False

    class Config:
        """Pydantic config."""
        extra = "allow"  # Allow extra fields from .spr.yaml
        frozen = True

class UserConfig(BaseModel):
    """User configuration."""
    github_auth_token: Optional[str] = None
    log_commands: bool = True

    class Config:
        """Pydantic config."""
        extra = "allow"  # Allow extra fields
        frozen = True

class ToolConfig(BaseModel):
    """Tool configuration."""
    concurrency: int = 0
    pretend: bool = False

    class Config:
        """Pydantic config."""
        extra = "allow"  # Allow extra fields
        frozen = True

class SprConfig(BaseModel):
    """Full jjspr configuration."""
    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)

    class Config:
        """Pydantic config."""
        extra = "allow"  # Allow extra fields
        frozen = True
