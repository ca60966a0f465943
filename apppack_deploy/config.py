"""
Script: apppack_deploy/config.py
What: Resolves all run configuration once, at startup.
Doing: Reads action inputs and GitHub/AWS env vars into one `DeployConfig`, then builds AWS clients from it.
Why: Clients get the region passed in by value instead of relying on a rewritten process environment.
Goal: One place that decides which app, image, revision, and region a run uses.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from apppack_deploy.common import ConfigError, optional_env, require_env
from apppack_deploy.crane_tool import DEFAULT_INSTALL_DIR


DEFAULT_UPLOAD_WORKERS = 4


def resolve_region() -> str | None:
    """
    Pick the AWS region for every client in this run.

    `AWS_REGION` wins; `AWS_DEFAULT_REGION` is accepted as a fallback alias.
    Returning `None` lets boto3 fall back to its own config files.
    """
    return optional_env("AWS_REGION") or optional_env("AWS_DEFAULT_REGION") or None


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value}")
    return value


@dataclass(frozen=True)
class DeployConfig:
    appname: str
    image: str
    region: str | None
    source_version: str
    sha: str
    run_id: str
    crane_dir: Path
    artifacts_dir: Path
    upload_workers: int

    @classmethod
    def from_env(cls) -> DeployConfig:
        # Action inputs arrive as INPUT_<NAME> env vars.
        appname = require_env("INPUT_APPNAME")
        image = require_env("INPUT_IMAGE")

        # Run id + attempt is unique per run and per rerun of that run.
        run_id = f"{require_env('GITHUB_RUN_ID')}-{optional_env('GITHUB_RUN_ATTEMPT', '1')}"

        return cls(
            appname=appname,
            image=image,
            region=resolve_region(),
            source_version=require_env("GITHUB_REF"),
            sha=require_env("GITHUB_SHA"),
            run_id=run_id,
            crane_dir=Path(optional_env("APPPACK_CRANE_DIR", str(DEFAULT_INSTALL_DIR))),
            artifacts_dir=Path(optional_env("APPPACK_ARTIFACTS_DIR", ".")),
            upload_workers=_positive_int(
                "APPPACK_UPLOAD_WORKERS",
                optional_env("APPPACK_UPLOAD_WORKERS", str(DEFAULT_UPLOAD_WORKERS)),
            ),
        )


@dataclass
class AwsClients:
    codebuild: object
    ecr: object
    s3: object

    @classmethod
    def for_region(cls, region: str | None) -> AwsClients:
        # One session per run; retries stay with botocore, not the orchestrator.
        session = boto3.session.Session(region_name=region)
        client_config = Config(retries={"mode": "standard", "max_attempts": 5})
        try:
            return cls(
                codebuild=session.client("codebuild", config=client_config),
                ecr=session.client("ecr", config=client_config),
                s3=session.client("s3", config=client_config),
            )
        except BotoCoreError as exc:
            # Usually NoRegionError: neither env var nor an AWS config file names a region.
            raise ConfigError(f"Failed to create AWS clients: {exc}") from exc
