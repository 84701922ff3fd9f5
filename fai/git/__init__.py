"""Git Operations Package"""

from fai.git.executor import CommandExecutor
from fai.git.service import GitService, FileChange

__all__ = [
    "CommandExecutor",
    "GitService",
    "FileChange",
]
