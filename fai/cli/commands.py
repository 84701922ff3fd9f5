"""CLI Commands

Each command takes the parsed args, the loaded config, a runtime and a
logger, and returns the process exit code.
"""

import json
import logging
import os
import sys
from pathlib import Path

from fai.availability import AvailabilityInfo, ModelAvailability
from fai.config import Config, ENV_OVERRIDES
from fai.errors import UnknownToolError, classify_error
from fai.git import GitService
from fai.git.commit import CommitMessageSynthesizer
from fai.output import (
    AVAILABLE, UNAVAILABLE, Spinner, bold, colorize_commit_type, dim, info, print_error, print_success,
    print_warning,
)
from fai.runtime import ModelRuntime
from fai.session import GenerationSession
from fai.tools import default_registry
from fai.cli.repl import ChatRepl
from fai.cli.utils import compose_generate_instructions, compose_prompt, read_stdin, write_output

MAX_FILES_SHOWN = 8


def _fail(error: Exception, logger: logging.Logger) -> int:
    """Report a failure the way users see it, keep the traceback for --verbose."""
    logger.debug("Command failed", exc_info=error)
    print_error(str(classify_error(error)))
    return 1


def _require_model(runtime: ModelRuntime, logger: logging.Logger) -> AvailabilityInfo | None:
    """Return availability info, or None (after reporting) when the model is unusable."""
    availability = ModelAvailability(runtime, logger).check()
    if availability.default_available:
        return availability
    logger.error("Model not available: %s", availability.unavailable_reason)
    message = f"Model not available ({availability.runtime_name})."
    if availability.detail:
        message += f" {availability.detail}"
    print_error(message)
    return None


def _emit(text: str, output: str | None, logger: logging.Logger) -> int:
    if not output:
        print(text)
        return 0
    try:
        path = write_output(text, output)
    except OSError as e:
        return _fail(e, logger)
    logger.info("Results saved to %s", path)
    print_success(f"Saved to {path}")
    return 0


def run_status(args, config: Config, runtime: ModelRuntime, logger: logging.Logger) -> int:
    availability = ModelAvailability(runtime, logger).check()
    tools = default_registry(logger=logger).list_names()

    if args.json:
        print(json.dumps({**availability.to_dict(), "tools": tools}, indent=2))
        return 0

    print(bold("Model Availability Status:"))
    if availability.default_available:
        print(f"{AVAILABLE} Default model is available")
    else:
        print(f"{UNAVAILABLE} Default model is not available")
    print(f"Runtime: {info(availability.runtime_name)}")
    print(f"Content Tagging Available: {'Yes' if availability.tagging_available else 'No'}")
    if availability.detail:
        print(dim(availability.detail))
    print(f"Available tools: {', '.join(tools)}" if tools else "No tools available")
    return 0


def run_chat(args, config: Config, runtime: ModelRuntime, logger: logging.Logger) -> int:
    registry = default_registry(git=GitService(logger=logger), logger=logger)
    names = args.tools if args.tools is not None else config.tools
    try:
        tools = registry.resolve_all(names, strict=config.strict_tools)
    except UnknownToolError as e:
        print_error(f"{e}. Available tools: {', '.join(registry.list_names())}")
        return 1
    unknown = [name for name in names if registry.find(name) is None]
    if unknown:
        print_warning(f"Ignoring unknown tools: {', '.join(unknown)}")

    session = GenerationSession(runtime, tools, logger=logger)

    if args.check_availability:
        availability = ModelAvailability(runtime, logger).check()
        print(availability.describe())
        if not availability.default_available:
            logger.warning("Chat functionality is unavailable because the model is not available.")
            return 1
        return 0

    availability = _require_model(runtime, logger)
    if availability is None:
        return 1

    repl = ChatRepl(
        session,
        logger,
        instructions=args.instructions or config.instructions,
        stream=args.stream or config.stream,
        verbose=args.verbose,
    )
    repl.print_banner(availability)
    return repl.run(args.message)


def run_generate(args, config: Config, runtime: ModelRuntime, logger: logging.Logger, stdin=None) -> int:
    if _require_model(runtime, logger) is None:
        return 1

    prompt = compose_prompt(args.prompt, read_stdin(stdin))
    if prompt is None:
        print_error("No prompt provided and no stdin input.")
        return 1

    instructions = compose_generate_instructions(args.instructions or config.instructions)
    session = GenerationSession(runtime, logger=logger)
    try:
        logger.info("Generating...")
        with Spinner("Generating..."):
            result = session.generate(prompt, instructions)
    except Exception as e:
        return _fail(e, logger)

    return _emit(result, args.output, logger)


def _display_file_list(git: GitService, max_shown: int = MAX_FILES_SHOWN) -> None:
    """Show which files will be described, collapsing long lists."""
    files = git.get_staged_files()
    if not files:
        return
    print(bold("Staged changes:"))
    for change in files[:max_shown]:
        print(dim(f"  {change.path} (+{change.additions} -{change.deletions})"))
    if len(files) > max_shown:
        print(dim(f"  ... and {len(files) - max_shown} more files"))


def run_git_commit(args, config: Config, runtime: ModelRuntime, logger: logging.Logger,
                   git: GitService | None = None) -> int:
    if _require_model(runtime, logger) is None:
        return 1

    git = git or GitService(logger=logger)
    synthesizer = CommitMessageSynthesizer(git, GenerationSession(runtime, logger=logger), logger=logger)
    try:
        if sys.stdout.isatty():
            _display_file_list(git)
        logger.info("Generating...")
        with Spinner("Generating commit message..."):
            commit = synthesizer.synthesize()
    except Exception as e:
        return _fail(e, logger)

    message = commit.render()
    if args.output:
        return _emit(message, args.output, logger)
    print(colorize_commit_type(message))
    return 0


def display_config(config: Config, config_path: Path | None) -> int:
    """Display current configuration."""
    print(f"\n{bold('Current Configuration')}\n")

    if config_path:
        print(f"  {dim('Loaded from:')} {config_path}")
    else:
        print(f"  {dim('Loaded from:')} defaults (no .fairc found)")

    overrides = [var for var in ENV_OVERRIDES if os.environ.get(var)]
    if overrides:
        print(f"  {dim('Environment overrides:')}")
        for var in overrides:
            print(f"    {var}={os.environ[var]}")

    print()
    print(f"  {bold('Settings:')}")
    print(f"    provider:      {info(config.provider)}")
    print(f"    model:         {info(config.model or 'default')}")
    print(f"    tagging_model: {info(config.tagging_model or 'default')}")
    print(f"    host:          {info(config.host or 'default')}")
    print(f"    timeout:       {info(str(config.timeout))}")
    print(f"    instructions:  {info(config.instructions or 'none')}")
    print(f"    tools:         {info(', '.join(config.tools) or 'none')}")
    print(f"    stream:        {info(str(config.stream).lower())}")
    print(f"    strict_tools:  {info(str(config.strict_tools).lower())}")

    print(f"\n  {dim('Config locations:')}")
    print("    Local:  .fairc (in current directory)")
    print("    Global: ~/.fairc\n")

    return 0
