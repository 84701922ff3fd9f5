"""CLI Argument Parsing"""

import argparse
import argcomplete
from argcomplete.completers import ChoicesCompleter

from fai import __version__
from fai.tools import default_registry


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--verbose', action='store_true', help='Display detailed logs')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fai',
        description='Chat, generate text, and write commit messages with a local language model',
        epilog='Examples: fai chat "Hello, how are you?" | fai chat --stream | fai status --verbose',
    )
    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')

    # Runtime options (shared by every subcommand)
    parser.add_argument('-p', '--provider', type=str, choices=['auto', 'ollama', 'claude'], help='Model runtime')
    parser.add_argument('-m', '--model', type=str, metavar='MODEL', help='Model name')
    parser.set_defaults(verbose=False, json=False)

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.default = 'status'

    chat = subparsers.add_parser('chat', help='Start an interactive chat REPL')
    chat.add_argument('message', nargs='?', help='Initial message to send (optional)')
    chat.add_argument('-i', '--instructions', type=str, metavar='TEXT', help='System instructions')
    tools_arg = chat.add_argument('-t', '--tools', nargs='+', metavar='NAME', default=None,
                                  help='Enable tools by name')
    tools_arg.completer = ChoicesCompleter(default_registry().list_names())
    chat.add_argument('-s', '--stream', action='store_true', help='Output in streaming mode')
    chat.add_argument('--check-availability', action='store_true', help='Check model availability and exit')
    _add_verbose(chat)

    generate = subparsers.add_parser('generate', help='Generate a response from a prompt and/or stdin')
    generate.add_argument('prompt', nargs='?', help='Prompt for generation. Reads stdin when piped.')
    generate.add_argument('-i', '--instructions', type=str, metavar='TEXT', help='System instructions')
    generate.add_argument('-o', '--output', type=str, metavar='PATH', help='Output file path')
    _add_verbose(generate)

    status = subparsers.add_parser('status', help='Check model availability (default)')
    status.add_argument('--json', action='store_true', help='Output in JSON format')
    _add_verbose(status)

    git_commit = subparsers.add_parser('git-commit', help='Generate a commit message from staged changes')
    git_commit.add_argument('-o', '--output', type=str, metavar='PATH', help='Output file path')
    _add_verbose(git_commit)

    subparsers.add_parser('config', help='Show current configuration')

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    argcomplete.autocomplete(parser)
    return parser.parse_args(argv)
