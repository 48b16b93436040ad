"""
Git helpers for reading diffs out of a local worktree.
"""

from pathlib import Path
from typing import Optional, Union

import git

from ..exceptions import WorktreeError


def open_repo(path: Union[str, Path, None] = None) -> git.Repo:
    """Open the repository containing ``path`` (default: current directory)."""
    if path is None:
        path = Path.cwd()
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
        raise WorktreeError("Not a git repository", path=str(path)) from e


def read_worktree_diff(path: Union[str, Path, None] = None, base: Optional[str] = None) -> str:
    """
    Unified diff of a worktree.

    With ``base`` this is the diff of HEAD against the merge base of ``base``
    and HEAD (``base...HEAD``), which is how task diffs are computed.
    Without it, uncommitted changes against HEAD.

    Raises:
        WorktreeError: If the path is not a repository or git fails.
    """
    repo = open_repo(path)
    target = f"{base}...HEAD" if base else "HEAD"
    try:
        output = repo.git.diff("--no-color", target)
    except git.GitCommandError as e:
        raise WorktreeError(f"git diff failed: {e}", path=str(repo.working_dir)) from e
    return f"{output}\n" if output else ""
