"""
Script: apppack_deploy/revision.py
What: Records which commit this run deploys.
Doing: Writes the latest `git log` entry to `commit.txt` and returns the full commit SHA.
Why: Later workflow steps and humans can read the deployed commit without a checkout.
Goal: Leave a `commit.txt` next to the build artifacts for every run.
"""

from __future__ import annotations

from pathlib import Path

from apppack_deploy.common import DeployError, run_cmd


COMMIT_FILE = Path("commit.txt")


def capture_revision(path: Path = COMMIT_FILE, *, cwd: str | None = None) -> str:
    log_entry = run_cmd(["git", "log", "-n", "1"], cwd=cwd)
    try:
        path.write_text(log_entry, encoding="utf-8")
    except OSError as exc:
        raise DeployError(f"Failed to write {path}: {exc}") from exc
    return run_cmd(["git", "rev-parse", "HEAD"], cwd=cwd).strip()


def main() -> None:
    revision = capture_revision()
    print(f"Wrote {COMMIT_FILE} for {revision}")


if __name__ == "__main__":
    main()
