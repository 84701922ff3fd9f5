"""Git Service - repository queries on top of CommandExecutor."""

import logging
from dataclasses import dataclass

from fai.errors import ExternalCommandFailure
from fai.git.executor import CommandExecutor


@dataclass
class FileChange:
    """A single staged file's line counts."""
    path: str
    additions: int
    deletions: int

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions


class GitService:
    """Read-only git operations used by git-commit and the git tools."""

    def __init__(self, executor: CommandExecutor | None = None, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)
        self.executor = executor or CommandExecutor(logger=self.logger)

    def _run_git(self, *args: str) -> str:
        return self.executor.run(['git', *args])

    def get_staged_changes(self) -> str:
        """Diff text of everything staged for the next commit."""
        self.logger.info("Getting staged changes")
        return self._run_git('diff', '--staged')

    def get_staged_files(self) -> list[FileChange]:
        """Parse 'git diff --staged --numstat' output."""
        self.logger.info("Getting staged files")
        output = self._run_git('diff', '--staged', '--numstat')

        files = []
        for line in output.splitlines():
            parts = line.split('\t')
            if len(parts) >= 3:
                # binary files report '-' for both counts
                additions = int(parts[0]) if parts[0] != '-' else 0
                deletions = int(parts[1]) if parts[1] != '-' else 0
                files.append(FileChange(path=parts[2], additions=additions, deletions=deletions))
        return files

    def get_file_history(self, file_path: str, count: int = 10) -> str:
        self.logger.info("Getting file history for: %s", file_path)
        return self._run_git('log', '--follow', '--oneline', f'-{count}', '--', file_path)

    def get_commit_history(self, count: int = 20) -> str:
        self.logger.info("Getting commit history")
        return self._run_git('log', '--oneline', f'-{count}')

    def get_current_branch(self) -> str:
        self.logger.info("Getting current branch")
        return self._run_git('branch', '--show-current')

    def get_branch_list(self) -> list[str]:
        output = self._run_git('branch', '-a')
        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_unstaged_changes(self) -> str:
        return self._run_git('diff')

    def get_repo_status(self) -> str:
        return self._run_git('status', '--porcelain')

    def is_repository(self) -> bool:
        try:
            self._run_git('rev-parse', '--git-dir')
            return True
        except ExternalCommandFailure:
            self.logger.warning("Not a git repository")
            return False
