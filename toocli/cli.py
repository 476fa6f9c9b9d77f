"""
toocli command-line interface.

Interactive terminal assistant: each line typed at the prompt is one turn.
Streamed content is printed as it arrives, followed by one line per tool
call the model made.

Usage
-----
    toocli                                   # default provider from the profile
    toocli --provider openai --model gpt-4o
    toocli --provider ollama --model llama3.2
    toocli --config ./config.json --workspace ./my_project

Commands
--------
    /clear   reset the conversation
    /usage   show accumulated token usage
    /tools   list the available tools
    /exit    quit

Environment
-----------
    API keys are read from the profile or from ANTHROPIC_API_KEY,
    OPENAI_API_KEY, GOOGLE_API_KEY, OPENROUTER_API_KEY and OLLAMA_BASE_URL.
    A .env file in the current directory is loaded first.
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from toocli.config import BUILTIN_PROVIDER_IDS, Profile, load_profile
from toocli.exceptions import TooError, format_error
from toocli.llm.factory import ProviderFactory
from toocli.llm.providers import normalize_provider_id, supported_providers
from toocli.llm.runner import ConversationRunner
from toocli.llm.types import ToolCall, ToolResult
from toocli.logger import configure_logging, get_logger
from toocli.tools.builtin import Workspace, builtin_tools
from toocli.tools.registry import ToolRegistry

_PREVIEW_CHARS = 500


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toocli",
        description="toocli: terminal coding assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--provider", "-p",
        default=None,
        help=f"Provider id, one of: {', '.join(supported_providers())} "
        "(default: the profile's provider)",
    )
    parser.add_argument(
        "--model", "-m",
        default=None,
        help="Model name overriding the provider block's model.",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to a JSON profile (default: ~/.too/config.json)",
    )
    parser.add_argument(
        "--workspace", "-w",
        default=None,
        help="Workspace directory for file and command tools (default: the profile's)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: TOOCLI_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to write logs to a file.",
    )
    return parser


def apply_model_override(profile: Profile, provider_id: str, model: str) -> None:
    """Replace the model of ``provider_id``'s block, if the block exists."""
    key = normalize_provider_id(provider_id)
    settings = profile.provider_settings(key)
    if settings is None:
        return
    updated = settings.model_copy(update={"model": model})
    if key in BUILTIN_PROVIDER_IDS:
        setattr(profile, key, updated)
    else:
        profile.providers[key] = updated


def build_runner(profile: Profile, provider_id: str | None = None) -> ConversationRunner:
    """
    Wire profile, provider, tools and runner together.

    Raises:
        ConfigError: The selected provider is not configured.
    """
    factory = ProviderFactory(profile)
    provider = factory.create(provider_id)

    workspace = Path(profile.workspace).expanduser().resolve()
    workspace.mkdir(parents=True, exist_ok=True)
    registry = ToolRegistry()
    registry.register_many(builtin_tools(Workspace(workspace)))

    return ConversationRunner(
        provider,
        executor=registry,
        tools=registry,
        system_prompt=profile.system_prompt,
        tool_call_provider=factory.create_tool_call_provider(),
    )


def _print_tool_result(call: ToolCall, result: ToolResult) -> None:
    marker = "ERROR" if result.is_error else "OK"
    preview = result.output
    if len(preview) > _PREVIEW_CHARS:
        preview = preview[:_PREVIEW_CHARS] + "..."
    print(f"\n[tool {call.name}] {marker}\n{preview}")


def run_repl(runner: ConversationRunner) -> None:
    """Interactive prompt loop."""
    provider = runner.provider
    print(f"toocli ({provider.get_provider_name()}: {provider.get_model()})")
    print("Commands: /clear | /usage | /tools | /exit\n")

    while True:
        try:
            user_input = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command in ("/exit", "/quit"):
            print("Goodbye.")
            break
        if command == "/clear":
            runner.clear_history()
            print("[History cleared]\n")
            continue
        if command == "/usage":
            usage = runner.token_usage
            print(
                f"[Tokens] input={usage.input_tokens} "
                f"output={usage.output_tokens} total={usage.total_tokens}\n"
            )
            continue
        if command == "/tools":
            print("Tools:", ", ".join(d.name for d in runner.tool_definitions()), "\n")
            continue

        result = runner.submit(
            user_input,
            on_content=lambda text: print(text, end="", flush=True),
            on_tool_result=_print_tool_result,
        )
        if result is None:
            print("[busy] A turn is already in progress.\n")
        elif result.error:
            print(f"\n{result.error}\n")
        else:
            print("\n")


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging(level=args.log_level, log_file=args.log_file)
    logger = get_logger()

    try:
        profile = load_profile(args.config)
        if args.workspace:
            profile.workspace = args.workspace
        provider_id = args.provider or profile.provider
        if args.model:
            apply_model_override(profile, provider_id, args.model)
        runner = build_runner(profile, provider_id)
    except TooError as exc:
        logger.error(format_error(exc))
        return 1

    run_repl(runner)
    return 0


if __name__ == "__main__":
    sys.exit(main())
