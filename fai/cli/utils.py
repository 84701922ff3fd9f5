"""CLI Utility Functions"""

import sys
from pathlib import Path
from typing import TextIO

SUMMARY_INSTRUCTION = "Please create a summary"


def read_stdin(stream: TextIO | None = None) -> str:
    """Return piped input, or '' when stdin is a terminal."""
    stream = stream or sys.stdin
    if stream is None or stream.isatty():
        return ""
    return stream.read().strip()


def compose_prompt(prompt: str | None, stdin_data: str) -> str | None:
    """Combine a prompt argument with piped input. None when both are missing."""
    if prompt is not None:
        if stdin_data:
            return f"Context:{stdin_data}\n\nInstruction: {prompt}"
        return prompt
    if stdin_data:
        return stdin_data
    return None


def compose_generate_instructions(instructions: str | None) -> str:
    return (instructions or "") + f"\n{SUMMARY_INSTRUCTION}"


def write_output(text: str, path: str) -> Path:
    target = Path(path)
    target.write_text(text, encoding='utf-8')
    return target
