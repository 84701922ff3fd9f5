"""Built-in Tools

Read-only git queries plus the local clock. Every mapping is listed
explicitly in builtin_tools(); adding a tool means editing that list.
"""

from datetime import datetime

from fai.git.service import GitService
from fai.tools import ToolHandle

NO_PARAMETERS = {"type": "object", "properties": {}}


def _current_time() -> str:
    return datetime.now().astimezone().isoformat(timespec='seconds')


def builtin_tools(git: GitService | None = None) -> list[ToolHandle]:
    git = git or GitService()

    def git_log(count: int = 10) -> str:
        return git.get_commit_history(count=int(count)) or "No commits"

    def git_file_history(path: str, count: int = 10) -> str:
        return git.get_file_history(path, count=int(count)) or f"No history for {path}"

    def git_status() -> str:
        return git.get_repo_status() or "Working tree clean"

    def git_branch() -> str:
        return git.get_current_branch() or "Detached HEAD"

    def git_diff() -> str:
        return git.get_unstaged_changes() or "No unstaged changes"

    return [
        ToolHandle(
            name="current_time",
            description="Get the current local date and time in ISO 8601 format.",
            parameters=NO_PARAMETERS,
            invoke=_current_time,
        ),
        ToolHandle(
            name="git_branch",
            description="Get the name of the currently checked out git branch.",
            parameters=NO_PARAMETERS,
            invoke=git_branch,
        ),
        ToolHandle(
            name="git_diff",
            description="Get the unstaged changes in the working tree as a unified diff.",
            parameters=NO_PARAMETERS,
            invoke=git_diff,
        ),
        ToolHandle(
            name="git_file_history",
            description="List recent commits that touched a file, one per line.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "File path relative to the repository root"},
                    "count": {"type": "integer", "description": "Maximum number of commits", "default": 10},
                },
                "required": ["path"],
            },
            invoke=git_file_history,
        ),
        ToolHandle(
            name="git_log",
            description="List recent commits in the repository, one per line.",
            parameters={
                "type": "object",
                "properties": {
                    "count": {"type": "integer", "description": "Maximum number of commits", "default": 10},
                },
            },
            invoke=git_log,
        ),
        ToolHandle(
            name="git_status",
            description="Show modified, staged and untracked files (git status --porcelain).",
            parameters=NO_PARAMETERS,
            invoke=git_status,
        ),
    ]
