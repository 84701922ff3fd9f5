"""Chat REPL"""

import logging

from fai.availability import AvailabilityInfo, ModelAvailability
from fai.errors import GenerationCancelled, classify_error
from fai.log import set_verbose
from fai.output import Spinner, bold, dim, info, print_error, print_rule
from fai.session import GenerationSession

HELP_TEXT = """
Fai Chat REPL Command List:

/help, /h              - Show this help message
/quit, /exit, /q       - Exit the chat
/clear, /cls           - Clear the screen
/stream                - Toggle streaming mode
/instructions [text]   - Show/Set system instructions (alias: /inst);
                         without tools, set them before the first message
/status                - Show model status
/verbose               - Toggle verbose debug logging
/tools                 - List enabled tools

Tips:
  - Enter regular messages directly
  - Exit with Ctrl+D; Ctrl+C cancels a response in progress
  - Streaming mode prints the reply as it is generated
"""


class ChatRepl:
    """Reads messages serially and sends each to the session."""

    def __init__(self, session: GenerationSession, logger: logging.Logger,
                 instructions: str | None = None, stream: bool = False, verbose: bool = False):
        self.session = session
        self.logger = logger
        self.instructions = instructions
        self.stream = stream
        self.verbose = verbose

    def print_banner(self, availability: AvailabilityInfo) -> None:
        print(f"{bold('Fai   :')} {availability.status_summary} ({info(availability.runtime_name)})")
        print(f"{bold('Tools :')} {self.session.enabled_tools}")
        print(f"{bold('Tips  :')} Type '/help' for a list of commands, '/quit' to exit")
        if self.instructions:
            print(f"{bold('System Instructions:')} {self.instructions}")
        if self.stream:
            self.logger.info("Streaming mode enabled")
        print_rule()

    def report(self, error: Exception) -> None:
        self.logger.debug("Request failed", exc_info=error)
        print_error(str(classify_error(error)))

    def process_message(self, message: str) -> str:
        self.logger.debug("Processing message: %s", message)
        self.logger.debug("Streaming mode: %s", self.stream)
        self.logger.debug("Tools enabled: %s", self.session.enabled_tools)

        if self.stream:
            print(f"\n{bold('Fai:')} ", end='', flush=True)
            response = self.session.stream(
                message, self.instructions, on_update=lambda piece: print(piece, end='', flush=True))
            print()
        else:
            with Spinner("Generating..."):
                response = self.session.generate(message, self.instructions)
            print(f"\n{bold('Fai:')} {response}")

        self.logger.debug("Message processing completed successfully")
        return response

    def handle_command(self, command: str) -> bool:
        """Run a slash command. Returns True when the REPL should exit."""
        parts = command[1:].split(' ', 1)
        name = parts[0].lower()
        argument = parts[1].strip() if len(parts) > 1 else ""

        if name in ('help', 'h'):
            print(HELP_TEXT)
        elif name in ('quit', 'exit', 'q'):
            print("Exiting chat.")
            return True
        elif name in ('clear', 'cls'):
            print("\033[2J\033[H", end='')
            print("Fai Chat - Screen cleared")
        elif name == 'stream':
            self.stream = not self.stream
            print(f"Streaming mode: {'Enabled' if self.stream else 'Disabled'}")
        elif name in ('instructions', 'inst'):
            if argument:
                self.instructions = argument
                print(f"Instructions updated: {argument}")
                if not self.session.tools and self.session.current is not None:
                    print(dim("Without tools this conversation keeps its original instructions; "
                              "restart chat to apply them."))
            elif self.instructions:
                print(f"Current instructions: {self.instructions}")
            else:
                print("No instructions set.")
        elif name == 'status':
            print(ModelAvailability(self.session.runtime, self.logger).describe())
        elif name == 'verbose':
            self.verbose = not self.verbose
            set_verbose(self.logger, self.verbose)
            print(f"Verbose mode: {'Enabled' if self.verbose else 'Disabled'}")
        elif name == 'tools':
            print(f"Enabled tools: {', '.join(self.session.enabled_tools) or 'none'}")
        else:
            print(f"Unknown command: /{name}")
            print(dim("Type '/help' for a list of commands."))
        return False

    def run(self, initial_message: str | None = None) -> int:
        if initial_message:
            try:
                self.process_message(initial_message)
            except (KeyboardInterrupt, GenerationCancelled):
                print(dim("\nCancelled."))
            except Exception as e:
                self.report(e)
                return 1

        while True:
            try:
                line = input(f"\n{bold('You:')} ")
            except (EOFError, KeyboardInterrupt):
                print("\nExiting chat.")
                return 0

            text = line.strip()
            if not text:
                continue
            if text.startswith('/'):
                if self.handle_command(text):
                    return 0
                continue

            try:
                self.process_message(text)
            except (KeyboardInterrupt, GenerationCancelled):
                print(dim("\nCancelled."))
            except Exception as e:
                self.report(e)
