"""
Script: apppack_deploy/trigger_build.py
What: Starts the app's remote CodeBuild job for this run.
Doing: Builds a one-command buildspec that copies the uploaded artifacts back down, then calls `start_build`.
Why: The AppPack pipeline behind the CodeBuild project takes over from the uploaded artifacts.
Goal: Return the build number and ARN, and publish both as outputs as soon as they are known.
"""

from __future__ import annotations

import json
from typing import Sequence

from botocore.exceptions import BotoCoreError, ClientError

from apppack_deploy.common import TriggerError, write_github_outputs
from apppack_deploy.models import BuildRecord, DeployTarget, RunContext


# The job only runs `aws s3 cp`, so it is pinned to the AWS CLI image.
CODEBUILD_IMAGE = "public.ecr.aws/aws-cli/aws-cli:latest"
BUILDSPEC_VERSION = 0.2


def build_buildspec(
    bucket: str,
    prefix: str,
    artifact_files: Sequence[str],
    run_id: str,
) -> dict:
    """
    Build the buildspec override for the remote job.

    The job's only action is to copy the run's artifact prefix into its
    workspace; it then re-exports the declared artifact files under a name
    that belongs to this run.
    """
    return {
        "version": BUILDSPEC_VERSION,
        "artifacts": {
            "files": list(artifact_files),
            "name": run_id,
        },
        "phases": {
            "build": {
                "commands": [f"aws s3 cp --recursive s3://{bucket}/{prefix.rstrip('/')}/ ."],
            },
        },
    }


def start_build_params(target: DeployTarget, context: RunContext) -> dict:
    buildspec = build_buildspec(
        target.artifacts_bucket,
        context.artifacts_prefix,
        context.artifact_files,
        context.run_id,
    )
    return {
        "projectName": target.name,
        "sourceVersion": context.source_version,
        "gitCloneDepthOverride": 1,
        "buildspecOverride": json.dumps(buildspec),
        "imageOverride": CODEBUILD_IMAGE,
    }


def trigger_build(codebuild, target: DeployTarget, context: RunContext) -> BuildRecord:
    try:
        response = codebuild.start_build(**start_build_params(target, context))
    except (ClientError, BotoCoreError) as exc:
        raise TriggerError(f"Failed to start CodeBuild build for {target.name}: {exc}") from exc

    build = response.get("build") or {}
    build_number = build.get("buildNumber")
    arn = str(build.get("arn") or "")
    if build_number is None or not arn:
        raise TriggerError(f"CodeBuild did not return a build number for {target.name}")

    record = BuildRecord(build_number=str(build_number), arn=arn)
    # Published before tagging so the build is traceable even if tagging fails.
    write_github_outputs({"build_number": record.build_number, "build_arn": record.arn})
    print(f"Started build #{record.build_number}")
    print(record.arn)
    return record
