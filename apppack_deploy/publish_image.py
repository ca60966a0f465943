"""
Script: apppack_deploy/publish_image.py
What: Pushes the locally built app image to the app's ECR repository.
Doing: Tags the local image as `<repo>:<revision>`, logs `docker` and `crane` in, then runs `docker push`.
Why: The remote build and later tagging both address the image by revision.
Goal: Publish exactly one image reference per run, or fail with `PushError`.
"""

from __future__ import annotations

from pathlib import Path

from apppack_deploy.common import DeployError, PushError, run_cmd
from apppack_deploy.models import DeployTarget, ImageReference, RegistryCredential
from apppack_deploy.registry_auth import login


def publish_image(
    local_image: str,
    target: DeployTarget,
    revision: str,
    credential: RegistryCredential,
    *,
    crane: Path,
) -> ImageReference:
    """
    Push `local_image` as `<repository>:<revision>`.

    `crane` is logged in here too, so the build-number tag later in the run
    reuses this session. Push failures are not retried.
    """
    pushed = ImageReference(target.repository, revision)

    try:
        run_cmd(["docker", "tag", local_image, str(pushed)])
    except DeployError as exc:
        raise PushError(f"Failed to tag {local_image} as {pushed}: {exc}") from exc
    print(f"Tagged {local_image} as {pushed}")

    login(["docker", "login"], credential)
    login([str(crane), "auth", "login"], credential)

    try:
        run_cmd(["docker", "push", str(pushed)], capture_output=False)
    except DeployError as exc:
        raise PushError(f"Failed to push {pushed}: {exc}") from exc
    print(f"Pushed {pushed}")
    return pushed
