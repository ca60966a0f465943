from __future__ import annotations

import argparse
from collections.abc import Callable, Mapping

from apppack_deploy.common import DeployError, report_failure


def command_map() -> dict[str, Callable[[], None]]:
    """
    Map CLI command names to Python entry functions.

    Each value is a `main()` function from one deploy step module.
    """
    from apppack_deploy.crane_tool import main as install_crane
    from apppack_deploy.deploy import main as deploy
    from apppack_deploy.resolve_project import main as resolve_project
    from apppack_deploy.revision import main as capture_revision

    return {
        "deploy": deploy,
        "resolve-project": resolve_project,
        "install-crane": install_crane,
        "capture-revision": capture_revision,
    }


def build_parser(commands: Mapping[str, Callable[[], None]]) -> argparse.ArgumentParser:
    """Parser taking an optional step name; with no name it runs the full deploy."""
    parser = argparse.ArgumentParser(
        prog="apppack-deploy",
        description="Run the AppPack deploy step or one of its parts.",
    )
    parser.add_argument("command", nargs="?", default="deploy", choices=sorted(commands.keys()))
    return parser


def run_command(command: str, commands: Mapping[str, Callable[[], None]]) -> None:
    """Look up `command` in `commands` and run it; tests pass their own mapping."""
    entry = commands[command]
    entry()


def main(argv: list[str] | None = None) -> None:
    # Build command registry once so parser and dispatcher use the same keys.
    commands = command_map()
    parser = build_parser(commands)
    args = parser.parse_args(argv)

    try:
        run_command(args.command, commands)
    except DeployError as exc:
        # Marks the step failed in the run summary with a one-line reason.
        report_failure(str(exc))
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
