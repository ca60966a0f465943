"""
Script: apppack_deploy/deploy.py
What: Runs the whole AppPack deploy for one app and one image.
Doing: Resolves the project, records the commit, and installs crane in parallel; then uploads artifacts, pushes the image, starts the build, and adds the build tag.
Why: Each step needs the previous step's output, so the order lives in one place.
Goal: Fail the run on the first broken step, and never roll back steps that already finished.
"""

from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Mapping

from apppack_deploy.common import log_group, require_linux
from apppack_deploy.config import AwsClients, DeployConfig
from apppack_deploy.crane_tool import ensure_tool_available
from apppack_deploy.models import ArtifactSet, BuildRecord, DeployTarget, ImageReference, RunContext
from apppack_deploy.publish_artifacts import collect_artifacts, publish_artifacts
from apppack_deploy.publish_image import publish_image
from apppack_deploy.registry_auth import get_registry_credential
from apppack_deploy.resolve_project import resolve_deploy_target
from apppack_deploy.revision import capture_revision
from apppack_deploy.tag_image import tag_image
from apppack_deploy.trigger_build import trigger_build


@dataclass(frozen=True)
class DeployResult:
    target: DeployTarget
    context: RunContext
    artifacts: ArtifactSet
    build: BuildRecord
    pushed: ImageReference
    tagged: ImageReference


def run_parallel(tasks: Mapping[str, Callable[[], object]]) -> dict[str, object]:
    """
    Run independent setup tasks at the same time and return results by name.

    If any task fails, tasks that have not started yet are cancelled and the
    first failure (in the order tasks were given) is raised once everything
    that was running has finished.
    """
    futures = {}
    with ThreadPoolExecutor(max_workers=max(len(tasks), 1)) as executor:
        for name, task in tasks.items():
            futures[executor.submit(task)] = name
        _, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()

    results: dict[str, object] = {}
    for future, name in futures.items():
        if future.cancelled():
            continue
        exc = future.exception()
        if exc is not None:
            raise exc
        results[name] = future.result()
    return results


def run_deploy(config: DeployConfig, clients: AwsClients) -> DeployResult:
    require_linux()

    with log_group("Preparing deploy"):
        setup = run_parallel(
            {
                "target": lambda: resolve_deploy_target(clients.codebuild, config.appname),
                "revision": capture_revision,
                "crane": lambda: ensure_tool_available(config.crane_dir),
            }
        )
    target: DeployTarget = setup["target"]
    crane = setup["crane"]
    print(f"Deploying {config.image} to {target.repository} (commit {setup['revision']})")

    context = RunContext(
        run_id=config.run_id,
        revision=config.sha,
        source_version=config.source_version,
        artifact_files=target.artifact_files,
    )

    with log_group("Uploading artifacts"):
        artifacts = collect_artifacts(context.artifact_files, config.artifacts_dir)
        publish_artifacts(
            clients.s3,
            target.artifacts_bucket,
            context.artifacts_prefix,
            artifacts,
            max_workers=config.upload_workers,
        )

    with log_group(f"Pushing image {target.repository}:{context.revision}"):
        credential = get_registry_credential(clients.ecr, target.registry)
        pushed = publish_image(config.image, target, context.revision, credential, crane=crane)

    with log_group("Triggering deploy"):
        build = trigger_build(clients.codebuild, target, context)

    with log_group(f"Tagging image 'build-{build.build_number}'"):
        tagged = tag_image(pushed, build, crane=crane)

    return DeployResult(
        target=target,
        context=context,
        artifacts=artifacts,
        build=build,
        pushed=pushed,
        tagged=tagged,
    )


def main() -> None:
    require_linux()
    config = DeployConfig.from_env()
    clients = AwsClients.for_region(config.region)
    result = run_deploy(config, clients)
    print(f"Deployed {result.pushed} as {result.tagged} (build #{result.build.build_number})")


if __name__ == "__main__":
    main()
