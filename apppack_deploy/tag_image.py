"""
Script: apppack_deploy/tag_image.py
What: Adds the `build-<n>` alias tag to the pushed image.
Doing: Runs `crane tag <repo>:<revision> build-<n>` with the session opened during image publish.
Why: Lets operators find the image a given CodeBuild build deployed.
Goal: Point `build-<n>` at the same digest as the revision tag.
"""

from __future__ import annotations

from pathlib import Path

from apppack_deploy.common import DeployError, TagError, run_cmd
from apppack_deploy.models import BuildRecord, ImageReference


def build_tag(build_number: str) -> str:
    return f"build-{build_number}"


def tag_image(pushed: ImageReference, build: BuildRecord, *, crane: Path) -> ImageReference:
    """
    Tag `pushed` with the build number.

    This is the last step. A failure leaves the revision tag in place and is
    reported, not rolled back.
    """
    tagged = pushed.with_tag(build_tag(build.build_number))
    try:
        # `crane tag` retags in the registry; no pull or push of layers.
        run_cmd([str(crane), "tag", str(pushed), tagged.tag])
    except DeployError as exc:
        raise TagError(f"Failed to tag {pushed} as {tagged.tag}: {exc}") from exc
    print(f"Tagged {pushed} as {tagged}")
    return tagged
