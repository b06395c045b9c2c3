"""Git operations module.

Usage:
    from pkgrel.git import Repository

    repo = Repository(Path("/path/to/repo"))
    if repo.tag_exists("zk-sdk@v1.2.3"):
        ...
"""

from pkgrel.git.repository import (
    CommitInfo,
    GitError,
    GitIdentity,
    Repository,
)

__all__ = [
    "CommitInfo",
    "GitError",
    "GitIdentity",
    "Repository",
]
