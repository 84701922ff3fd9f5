"""
Tests for the command line layer: argument parsing, prompt composition,
the subcommands and the chat REPL.

Shows sample output for each scenario. Run with:
    pytest tests/test_cli.py -v
    pytest tests/test_cli.py -v -s   # see actual terminal output
"""

import io
import json
import logging

import pytest

from fai.cli import main as cli_main
from fai.cli.args import build_parser
from fai.cli.commands import (
    _display_file_list, display_config, run_chat, run_generate, run_git_commit, run_status,
)
from fai.cli.repl import ChatRepl
from fai.cli.utils import compose_generate_instructions, compose_prompt, read_stdin, write_output
from fai.config import Config
from fai.errors import GenerationFailure, ToolInvocationFailure
from fai.git.service import GitService
from fai.runtime.base import UnavailableReason
from fai.session import GenerationSession

from conftest import FakeExecutor, FakeRuntime

COMMIT_JSON = '{"commit_type": "add", "summary": "add line", "description": "adds a line to x"}'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def parse():
    """Return a function that parses argv without argcomplete."""
    def _parse(*argv):
        return build_parser().parse_args(list(argv))
    return _parse


@pytest.fixture
def no_stdin():
    return io.StringIO("")


@pytest.fixture
def scripted_input(monkeypatch):
    """Feed lines to input(); EOF once they run out."""
    def _script(*lines):
        remaining = list(lines)

        def _input(prompt=""):
            if not remaining:
                raise EOFError
            line = remaining.pop(0)
            if isinstance(line, BaseException):
                raise line
            return line

        monkeypatch.setattr("builtins.input", _input)
    return _script


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

class TestArgs:

    def test_default_command_is_status(self, parse):
        args = parse()
        assert args.command == "status"
        assert args.json is False
        assert args.verbose is False

    def test_chat_options(self, parse):
        args = parse("chat", "Hello", "-t", "git_status", "current_time", "-s", "-i", "Be brief")
        assert args.command == "chat"
        assert args.message == "Hello"
        assert args.tools == ["git_status", "current_time"]
        assert args.stream is True
        assert args.instructions == "Be brief"

    def test_chat_without_tools_flag(self, parse):
        assert parse("chat").tools is None

    def test_global_runtime_options(self, parse):
        args = parse("-p", "claude", "-m", "claude-3-5-haiku-latest", "status", "--json")
        assert args.provider == "claude"
        assert args.model == "claude-3-5-haiku-latest"
        assert args.json is True

    def test_invalid_provider_rejected(self, parse):
        with pytest.raises(SystemExit):
            parse("-p", "gpt4", "status")

    def test_generate_and_git_commit(self, parse):
        assert parse("generate", "Summarize", "-o", "out.txt").output == "out.txt"
        assert parse("git-commit", "--verbose").verbose is True


# ---------------------------------------------------------------------------
# Prompt composition
# ---------------------------------------------------------------------------

class TestComposePrompt:

    def test_prompt_and_stdin(self):
        assert compose_prompt("Summarize", "release notes") == \
            "Context:release notes\n\nInstruction: Summarize"

    def test_prompt_only(self):
        assert compose_prompt("Summarize", "") == "Summarize"

    def test_stdin_only(self):
        assert compose_prompt(None, "release notes") == "release notes"

    def test_neither(self):
        assert compose_prompt(None, "") is None

    def test_generate_instructions(self):
        assert compose_generate_instructions(None) == "\nPlease create a summary"
        assert compose_generate_instructions("Be terse") == "Be terse\nPlease create a summary"


class TestStdinAndOutput:

    def test_read_piped_stdin(self):
        assert read_stdin(io.StringIO("  notes \n")) == "notes"

    def test_terminal_stdin_is_ignored(self):
        class Terminal(io.StringIO):
            def isatty(self):
                return True

        assert read_stdin(Terminal("typed")) == ""

    def test_write_output(self, tmp_path):
        path = write_output("result", str(tmp_path / "out.txt"))
        assert path.read_text(encoding="utf-8") == "result"


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

class TestStatus:

    def test_json(self, parse, runtime, logger, capsys):
        assert run_status(parse("status", "--json"), Config(), runtime, logger) == 0
        data = json.loads(capsys.readouterr().out)

        assert data["status"] == "Available"
        assert data["default_available"] is True
        assert data["runtime"] == "Fake (fake-model)"
        assert "git_status" in data["tools"]

    def test_json_unavailable_still_succeeds(self, parse, logger, capsys):
        runtime = FakeRuntime(available=False, reason=UnavailableReason.FEATURE_DISABLED)
        assert run_status(parse("status", "--json"), Config(), runtime, logger) == 0
        assert json.loads(capsys.readouterr().out)["unavailable_reason"] == "featureDisabled"

    def test_text(self, parse, runtime, logger, capsys, strip_ansi):
        assert run_status(parse("status"), Config(), runtime, logger) == 0
        out = strip_ansi(capsys.readouterr().out)

        assert "Model Availability Status:" in out
        assert "Default model is available" in out
        assert "Content Tagging Available: Yes" in out
        assert "Available tools: current_time" in out


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------

class TestGenerate:

    def test_unavailable_model_never_generates(self, parse, logger, no_stdin, capsys):
        runtime = FakeRuntime(available=False, detail="Run: ollama pull llama3.2:3b")

        code = run_generate(parse("generate", "Hello"), Config(), runtime, logger, stdin=no_stdin)

        assert code == 1
        assert runtime.conversations == []
        assert "Model not available" in capsys.readouterr().err

    def test_prompt_with_piped_context(self, parse, runtime, logger, capsys):
        runtime.reply = "A short summary."
        stdin = io.StringIO("long release notes")

        code = run_generate(parse("generate", "Summarize"), Config(), runtime, logger, stdin=stdin)

        assert code == 0
        conversation = runtime.conversations[0]
        assert conversation.prompts == ["Context:long release notes\n\nInstruction: Summarize"]
        assert conversation.instructions == "\nPlease create a summary"
        assert "A short summary." in capsys.readouterr().out

    def test_config_instructions_used(self, parse, runtime, logger, no_stdin):
        run_generate(parse("generate", "Hi"), Config(instructions="Be terse"), runtime, logger, stdin=no_stdin)
        assert runtime.conversations[0].instructions == "Be terse\nPlease create a summary"

    def test_no_prompt_no_stdin(self, parse, runtime, logger, no_stdin, capsys):
        assert run_generate(parse("generate"), Config(), runtime, logger, stdin=no_stdin) == 1
        assert "No prompt provided" in capsys.readouterr().err
        assert runtime.conversations == []

    def test_writes_output_file(self, parse, runtime, logger, no_stdin, tmp_path):
        target = tmp_path / "summary.txt"
        code = run_generate(parse("generate", "Hi", "-o", str(target)), Config(), runtime, logger, stdin=no_stdin)

        assert code == 0
        assert target.read_text(encoding="utf-8") == runtime.reply

    def test_generation_error_is_classified(self, parse, runtime, logger, no_stdin, capsys):
        runtime.error = GenerationFailure("context window exceeded")

        assert run_generate(parse("generate", "Hi"), Config(), runtime, logger, stdin=no_stdin) == 1
        assert "Error: An error occurred during generation - context window exceeded" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# git-commit
# ---------------------------------------------------------------------------

class TestGitCommit:

    def test_end_to_end(self, parse, runtime, logger, capsys, strip_ansi):
        runtime.structured_reply = COMMIT_JSON
        git = GitService(FakeExecutor({("git", "diff", "--staged"): "diff --git a/x b/x\n+line"}), logger)

        assert run_git_commit(parse("git-commit"), Config(), runtime, logger, git=git) == 0
        assert "add: add line\n\n\nadds a line to x" in strip_ansi(capsys.readouterr().out)

    def test_no_staged_changes(self, parse, runtime, logger, capsys):
        git = GitService(FakeExecutor(), logger)

        assert run_git_commit(parse("git-commit"), Config(), runtime, logger, git=git) == 1
        assert "No staged changes" in capsys.readouterr().err
        assert runtime.conversations == []

    def test_bad_model_output(self, parse, runtime, logger, capsys):
        runtime.structured_reply = '{"commit_type": "feat"}'
        git = GitService(FakeExecutor({("git", "diff", "--staged"): "diff"}), logger)

        assert run_git_commit(parse("git-commit"), Config(), runtime, logger, git=git) == 1
        assert "An error occurred during generation" in capsys.readouterr().err

    def test_unavailable_model(self, parse, logger):
        runtime = FakeRuntime(available=False)
        git = GitService(FakeExecutor(), logger)
        assert run_git_commit(parse("git-commit"), Config(), runtime, logger, git=git) == 1


class TestDisplayFileList:
    """Output from _display_file_list()."""

    def make_git(self, logger, files):
        numstat = "\n".join(f"{a}\t{d}\t{path}" for path, a, d in files)
        return GitService(FakeExecutor({("git", "diff", "--staged", "--numstat"): numstat}), logger)

    def test_small_list_shows_all(self, logger, capsys, strip_ansi):
        _display_file_list(self.make_git(logger, [("src/app.py", 15, 3), ("tests/test_app.py", 22, 0)]))
        out = strip_ansi(capsys.readouterr().out)

        assert "Staged changes:" in out
        assert "src/app.py (+15 -3)" in out
        assert "tests/test_app.py (+22 -0)" in out
        assert "..." not in out

    def test_large_list_collapses(self, logger, capsys, strip_ansi):
        files = [(f"src/mod_{i}.py", 10 + i, i) for i in range(12)]
        _display_file_list(self.make_git(logger, files))
        out = strip_ansi(capsys.readouterr().out)

        assert "src/mod_7.py" in out
        assert "src/mod_8.py" not in out
        assert "... and 4 more files" in out

    def test_empty_prints_nothing(self, logger, capsys):
        _display_file_list(self.make_git(logger, []))
        assert capsys.readouterr().out == ""


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------

class TestChat:

    def test_check_availability(self, parse, runtime, logger, capsys):
        assert run_chat(parse("chat", "--check-availability"), Config(), runtime, logger) == 0
        assert capsys.readouterr().out.startswith("Model Availability Check:")

    def test_check_availability_unavailable(self, parse, logger, capsys):
        runtime = FakeRuntime(available=False)
        assert run_chat(parse("chat", "--check-availability"), Config(), runtime, logger) == 1
        assert "Default model is not available" in capsys.readouterr().out

    def test_strict_unknown_tool(self, parse, runtime, logger, capsys):
        code = run_chat(parse("chat", "-t", "nope"), Config(strict_tools=True), runtime, logger)

        assert code == 1
        assert "nope: no such tool" in capsys.readouterr().err

    def test_lenient_unknown_tool(self, parse, runtime, logger, capsys, scripted_input):
        scripted_input()
        assert run_chat(parse("chat", "-t", "nope", "git_status"), Config(), runtime, logger) == 0
        assert "Ignoring unknown tools: nope" in capsys.readouterr().out

    def test_initial_message_then_eof(self, parse, runtime, logger, capsys, scripted_input):
        scripted_input()
        runtime.reply = "Hi human"

        assert run_chat(parse("chat", "Hello"), Config(), runtime, logger) == 0
        out = capsys.readouterr().out
        assert "Hi human" in out
        assert "Exiting chat." in out

    def test_unavailable_model_exits(self, parse, logger, capsys):
        runtime = FakeRuntime(available=False)
        assert run_chat(parse("chat"), Config(), runtime, logger) == 1
        assert runtime.conversations == []

    def test_config_tools_used(self, parse, runtime, logger, scripted_input):
        scripted_input("what branch?", "/quit")
        run_chat(parse("chat"), Config(tools=["git_branch"]), runtime, logger)
        assert runtime.conversations[0].tool_names == ["git_branch"]


class TestChatRepl:

    @pytest.fixture
    def repl(self, runtime, logger):
        return ChatRepl(GenerationSession(runtime, logger=logger), logger)

    def test_quit(self, repl, capsys):
        assert repl.handle_command("/quit") is True
        assert repl.handle_command("/q") is True

    def test_stream_toggle(self, repl, capsys):
        repl.handle_command("/stream")
        assert repl.stream is True
        assert "Streaming mode: Enabled" in capsys.readouterr().out

    def test_instructions(self, repl, capsys):
        repl.handle_command("/instructions")
        assert "No instructions set." in capsys.readouterr().out

        repl.handle_command("/inst Answer in French")
        assert repl.instructions == "Answer in French"

        repl.handle_command("/instructions")
        assert "Current instructions: Answer in French" in capsys.readouterr().out

    def test_status(self, repl, capsys):
        repl.handle_command("/status")
        assert "Model Availability Check:" in capsys.readouterr().out

    def test_verbose_toggle(self, repl, logger):
        repl.handle_command("/verbose")
        assert repl.verbose is True
        assert logger.level == 10

    def test_unknown_command(self, repl, capsys):
        assert repl.handle_command("/dance") is False
        assert "Unknown command: /dance" in capsys.readouterr().out

    def test_help(self, repl, capsys):
        repl.handle_command("/help")
        assert "/instructions [text]" in capsys.readouterr().out

    def test_streaming_message(self, runtime, logger, capsys, strip_ansi, scripted_input):
        runtime.snapshots = ["Hel", "Hello", "Hello!"]
        scripted_input("/stream", "hi", "/quit")
        repl = ChatRepl(GenerationSession(runtime, logger=logger), logger)

        assert repl.run() == 0
        assert "Fai: Hello!" in strip_ansi(capsys.readouterr().out)

    def test_instructions_reach_conversation(self, runtime, logger, scripted_input):
        scripted_input("/inst Be brief", "hi")
        ChatRepl(GenerationSession(runtime, logger=logger), logger).run()
        assert runtime.conversations[0].instructions == "Be brief"

    def test_instructions_after_first_message_note_reuse(self, runtime, logger, capsys, scripted_input):
        scripted_input("hi", "/inst Be brief")
        ChatRepl(GenerationSession(runtime, logger=logger), logger).run()

        assert "restart chat to apply them" in capsys.readouterr().out
        assert runtime.conversations[0].instructions is None

    def test_instructions_before_first_message_have_no_note(self, repl, capsys):
        repl.handle_command("/inst Be brief")
        assert "restart chat" not in capsys.readouterr().out

    def test_error_keeps_loop_running(self, runtime, logger, capsys, scripted_input):
        runtime.error = ToolInvocationFailure("git_log", "git exploded")
        scripted_input("first", "second")

        assert ChatRepl(GenerationSession(runtime, logger=logger), logger).run() == 0
        err = capsys.readouterr().err
        assert err.count("An error occurred during tool call - git_log: git exploded") == 2

    def test_ctrl_c_while_waiting_exits(self, repl, capsys, scripted_input):
        scripted_input(KeyboardInterrupt())
        assert repl.run() == 0
        assert "Exiting chat." in capsys.readouterr().out

    def test_ctrl_c_while_streaming_cancels_reply(self, runtime, logger, capsys, scripted_input):
        runtime.snapshots = ["Par"]
        runtime.error = KeyboardInterrupt()
        scripted_input("/stream", "hi")

        assert ChatRepl(GenerationSession(runtime, logger=logger), logger).run() == 0
        captured = capsys.readouterr()
        assert "Cancelled." in captured.out
        assert "error occurred" not in captured.err

    def test_initial_message_failure(self, runtime, logger, capsys):
        runtime.error = GenerationFailure("model unavailable")
        repl = ChatRepl(GenerationSession(runtime, logger=logger), logger)
        assert repl.run("Hello") == 1


# ---------------------------------------------------------------------------
# main / config
# ---------------------------------------------------------------------------

class TestMain:

    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
        for var in ("FAI_PROVIDER", "FAI_MODEL", "OLLAMA_HOST", "FAI_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)
        yield
        logging.getLogger("fai").handlers = []

    @pytest.fixture
    def captured(self, monkeypatch):
        """Replace get_runtime with a FakeRuntime factory, recording its arguments."""
        calls = []
        runtime = FakeRuntime()

        def _get_runtime(**kwargs):
            calls.append(kwargs)
            return runtime

        monkeypatch.setattr(cli_main, "get_runtime", _get_runtime)
        return calls

    def test_config_command(self, capsys):
        assert cli_main.main(["config"]) == 0
        out = capsys.readouterr().out
        assert "Current Configuration" in out
        assert "no .fairc found" in out

    def test_status_dispatch(self, captured, capsys):
        assert cli_main.main(["status", "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["status"] == "Available"
        assert captured[0]["provider"] == "auto"

    def test_no_subcommand_runs_status(self, captured, capsys):
        assert cli_main.main([]) == 0
        assert "Model Availability Status:" in capsys.readouterr().out
        assert captured[0]["provider"] == "auto"

    def test_cli_overrides_config_file(self, tmp_path, captured, capsys):
        (tmp_path / ".fairc").write_text(json.dumps({"provider": "ollama", "model": "mistral:7b", "timeout": 90}))

        cli_main.main(["-m", "llama3.2:3b", "status"])

        assert captured[0]["provider"] == "ollama"
        assert captured[0]["model"] == "llama3.2:3b"
        assert captured[0]["timeout"] == 90

    def test_display_config_shows_path(self, tmp_path, capsys):
        path = tmp_path / ".fairc"
        display_config(Config(provider="claude", tools=["git_log"]), path)
        out = capsys.readouterr().out
        assert str(path) in out
        assert "git_log" in out
