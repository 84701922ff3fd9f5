"""Commit Message Synthesizer - staged diff in, conventional commit message out."""

import logging
from enum import Enum

from pydantic import BaseModel, Field

from fai import COMMIT_TYPES
from fai.errors import NoStagedChanges
from fai.git.service import GitService
from fai.session import GenerationSession

COMMIT_INSTRUCTIONS = "Generate commit message from input data."

CommitType = Enum('CommitType', {name.upper(): name for name in COMMIT_TYPES}, type=str)
CommitType.__doc__ = "Commit type of changes: " + "; ".join(f"{k} = {v}" for k, v in COMMIT_TYPES.items())


class CommitMessage(BaseModel):
    commit_type: CommitType = Field(description="commit type of changes")
    summary: str = Field(description="short abstract of git commit message. up to 50 characters.")
    description: str = Field(description="details of git commit message. up to 250 characters.")

    def render(self) -> str:
        return f"{self.commit_type.value}: {self.summary}\n\n\n{self.description}"


class CommitMessageSynthesizer:
    """Combines GitService and GenerationSession to write a commit message."""

    def __init__(self, git: GitService, session: GenerationSession, logger: logging.Logger | None = None):
        self.git = git
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    def synthesize(self) -> CommitMessage:
        changes = self.git.get_staged_changes()
        if not changes.strip():
            raise NoStagedChanges()
        self.logger.debug("Staged diff: %d characters", len(changes))
        return self.session.generate_structured(changes, CommitMessage, instructions=COMMIT_INSTRUCTIONS)
