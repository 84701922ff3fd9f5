"""CLI Main Entry Point"""

import logging

from fai.config import Config, load_config
from fai.log import setup_logger
from fai.runtime import ModelRuntime, get_runtime

from fai.cli.args import parse_args
from fai.cli.commands import display_config, run_chat, run_generate, run_git_commit, run_status

COMMANDS = {
    'chat': run_chat,
    'generate': run_generate,
    'status': run_status,
    'git-commit': run_git_commit,
}


def _get_provider_and_model(args, config: Config) -> tuple[str, str | None]:
    """Resolve provider and model. Precedence: CLI args > environment > config file"""
    provider = args.provider or config.provider
    model = args.model or config.model
    return provider, model


def build_runtime(args, config: Config, logger: logging.Logger) -> ModelRuntime:
    provider, model = _get_provider_and_model(args, config)
    return get_runtime(
        provider=provider,
        model=model,
        tagging_model=config.tagging_model,
        host=config.host,
        timeout=config.timeout,
        logger=logger,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    config, config_path = load_config()

    if args.command == 'config':
        return display_config(config, config_path)

    logger = setup_logger("fai", verbose=args.verbose)
    runtime = build_runtime(args, config, logger)
    logger.debug("Using runtime: %s", runtime.name)

    return COMMANDS[args.command](args, config, runtime, logger)
