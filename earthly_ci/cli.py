from __future__ import annotations

import argparse
from collections.abc import Callable, Mapping

from earthly_ci.common import EarthlyCiError, set_failed


def command_map() -> dict[str, Callable[[], None]]:
    """
    Map CLI command names to Python entry functions.

    Each value is a `main()` function from one workflow helper module.
    """
    from earthly_ci.context import main as earthly_resolve_context
    from earthly_ci.earthly_build import main as earthly_build
    from earthly_ci.tool_cache import main as earthly_provision

    return {
        "earthly-build": earthly_build,
        "earthly-provision": earthly_provision,
        "earthly-resolve-context": earthly_resolve_context,
    }


def build_parser(commands: Mapping[str, Callable[[], None]]) -> argparse.ArgumentParser:
    """Parser for `action.yml` steps: one positional command, no options."""
    parser = argparse.ArgumentParser(
        prog="python3 -m earthly_ci.cli",
        description="Provision earthly, resolve cache context, or run an Earthly target for one workflow step.",
    )
    parser.add_argument("command", choices=sorted(commands.keys()))
    return parser


def run_command(command: str, commands: Mapping[str, Callable[[], None]]) -> None:
    """Run one registered command; tests pass their own `commands` mapping."""
    commands[command]()


def main(argv: list[str] | None = None) -> None:
    # Parser choices and dispatch share one registry.
    commands = command_map()
    parser = build_parser(commands)
    args = parser.parse_args(argv)

    try:
        run_command(args.command, commands)
    except EarthlyCiError as exc:
        # Annotated failure in the job summary; no traceback.
        set_failed(str(exc))


if __name__ == "__main__":
    main()
