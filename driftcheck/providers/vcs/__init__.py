"""Version-control providers."""

from .git_provider import GitProvider, find_git_root
from .hooks import install_pre_push_hook

__all__ = ["GitProvider", "find_git_root", "install_pre_push_hook"]
