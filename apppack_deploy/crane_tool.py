"""
Script: apppack_deploy/crane_tool.py
What: Installs the pinned `crane` binary used for registry login and tagging.
Doing: Downloads the go-containerregistry release tarball, extracts it, and marks `crane` executable.
Why: Runner images do not ship `crane`, and tagging must not depend on whatever version might be around.
Goal: Provide `ensure_tool_available()`, safe to call more than once and from parallel setup work.
"""

from __future__ import annotations

import stat
import tarfile
import tempfile
import threading
from pathlib import Path

import requests

from apppack_deploy.common import ToolError, optional_env


CRANE_VERSION = "v0.4.1"
CRANE_DOWNLOAD_URL = (
    "https://github.com/google/go-containerregistry/releases/download/"
    f"{CRANE_VERSION}/go-containerregistry_Linux_x86_64.tar.gz"
)
DEFAULT_INSTALL_DIR = Path("/tmp/crane")
DOWNLOAD_TIMEOUT_SECONDS = 60

_install_lock = threading.Lock()


def crane_path(install_dir: Path = DEFAULT_INSTALL_DIR) -> Path:
    return install_dir / "crane"


def download_file(url: str, destination: Path) -> None:
    """Stream `url` into `destination`."""
    try:
        with requests.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT_SECONDS) as response:
            response.raise_for_status()
            with destination.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    handle.write(chunk)
    except requests.RequestException as exc:
        raise ToolError(f"Failed to download {url}: {exc}") from exc


def extract_archive(archive: Path, destination: Path) -> None:
    """
    Extract a release tarball.

    `filter="data"` rejects absolute paths, parent-directory escapes, and
    unsafe links in the archive.
    """
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:gz") as tar:
            tar.extractall(destination, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise ToolError(f"Failed to extract {archive}: {exc}") from exc


def ensure_tool_available(install_dir: Path = DEFAULT_INSTALL_DIR, url: str = CRANE_DOWNLOAD_URL) -> Path:
    binary = crane_path(install_dir)
    with _install_lock:
        if binary.is_file():
            return binary

        print(f"Downloading crane {CRANE_VERSION}")
        with tempfile.TemporaryDirectory() as temp_dir:
            archive = Path(temp_dir) / "crane.tar.gz"
            download_file(url, archive)
            extract_archive(archive, install_dir)

        if not binary.is_file():
            raise ToolError(f"crane binary not found in {url}")
        # Archive mode bits are not trusted; crane must be executable.
        try:
            binary.chmod(binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as exc:
            raise ToolError(f"Failed to make {binary} executable: {exc}") from exc
        print(f"Installed {binary}")
        return binary


def main() -> None:
    ensure_tool_available(Path(optional_env("APPPACK_CRANE_DIR", str(DEFAULT_INSTALL_DIR))))


if __name__ == "__main__":
    main()
