"""
Script: apppack_deploy/common.py
What: Shared helper functions used by all `apppack_deploy` modules.
Doing: Wraps env reads, command execution, GitHub workflow commands, and output writes.
Why: Avoids duplicated helper code.
Goal: Keep behavior consistent across all deploy step modules.
"""

from __future__ import annotations

import os
import subprocess
import sys
from contextlib import contextmanager
from typing import Iterator, Mapping, Sequence


class DeployError(RuntimeError):
    """Raised when a deploy step hits a known error condition."""


class ConfigError(DeployError):
    """Required configuration is missing or malformed."""


class PlatformError(DeployError):
    """The deploy step is running somewhere it cannot work."""


class ResolutionError(DeployError):
    """The CodeBuild project is missing or badly configured."""


class PublishError(DeployError):
    """One or more artifact uploads failed."""


class PushError(DeployError):
    """Image tag, registry login, or image push failed."""


class TriggerError(DeployError):
    """The remote build could not be started."""


class TagError(DeployError):
    """The build-number tag could not be applied."""


class ToolError(DeployError):
    """A support tool could not be downloaded or installed."""


def require_env(name: str) -> str:
    """Read an action input or GitHub variable that must be set and non-empty."""
    value = os.environ.get(name, "")
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def optional_env(name: str, default: str = "") -> str:
    """Read a tuning knob such as `APPPACK_CRANE_DIR`, or `default` when unset."""
    return os.environ.get(name, default)


def run_cmd(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    cwd: str | None = None,
    input_text: str | None = None,
) -> str:
    """
    Run a command and return stdout, raising a readable error on failure.

    `input_text` is written to the command's stdin. Use it for secrets so they
    never show up in the process argument list. It is never echoed back in
    error messages.
    """
    try:
        result = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
            cwd=cwd,
            input=input_text,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        details = stderr or stdout or f"exit status {exc.returncode}"
        raise DeployError(f"Command failed: {' '.join(args)}\n{details}") from exc
    except FileNotFoundError as exc:
        raise DeployError(f"Command not found: {args[0]}") from exc

    if not capture_output:
        return ""
    return result.stdout


def write_github_outputs(values: Mapping[str, str]) -> None:
    """
    Append `name=value` pairs to the file named by `GITHUB_OUTPUT`.

    Later workflow steps read them as `steps.<id>.outputs.<name>`; the deploy
    publishes the artifact location and build number this way.
    """
    lines = "".join(f"{key}={value}\n" for key, value in values.items())
    with open(require_env("GITHUB_OUTPUT"), "a", encoding="utf-8") as handle:
        handle.write(lines)


@contextmanager
def log_group(title: str) -> Iterator[None]:
    """
    Fold everything printed inside the block into one collapsible log group.

    `::endgroup::` is printed even when the block raises, so the error message
    that follows is not hidden inside a collapsed group.
    """
    print(f"::group::{title}", flush=True)
    try:
        yield
    finally:
        print("::endgroup::", flush=True)


def warning(message: str) -> None:
    """Print a non-fatal warning annotation."""
    print(f"::warning::{message}", flush=True)


def report_failure(message: str) -> None:
    """Print an error annotation that marks the step as failed in the run summary."""
    # Workflow commands are single-line; escape newlines the way GitHub expects.
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::error::{escaped}", file=sys.stderr, flush=True)


def require_linux(platform_name: str | None = None) -> None:
    """Stop the run right away when not on Linux."""
    platform_name = platform_name or sys.platform
    if not platform_name.startswith("linux"):
        raise PlatformError(f"AppPack deploy can only run on Linux platforms (found {platform_name})")
