"""
Script: apppack_deploy/resolve_project.py
What: Looks up the AppPack CodeBuild project for one app.
Doing: Calls `batch_get_projects`, then reads the ECR repo, artifact bucket, and buildspec artifact list.
Why: Every later step needs to know where images and artifacts for this app live.
Goal: Return one validated `DeployTarget`, or fail before anything is uploaded or pushed.
"""

from __future__ import annotations

import yaml
from botocore.exceptions import BotoCoreError, ClientError

from apppack_deploy.common import ResolutionError, require_env
from apppack_deploy.config import AwsClients, resolve_region
from apppack_deploy.models import DeployTarget


DOCKER_REPO_VARIABLE = "DOCKER_REPO"


def registry_host(repository: str) -> str:
    """Return the registry host of a repository URI, for example `123.dkr.ecr.x.amazonaws.com`."""
    return repository.split("/", 1)[0]


def parse_artifact_files(buildspec: str) -> tuple[str, ...]:
    """Read `artifacts.files` from a YAML buildspec."""
    try:
        document = yaml.safe_load(buildspec)
    except yaml.YAMLError as exc:
        raise ResolutionError(f"Project buildspec is not valid YAML: {exc}") from exc

    artifacts = document.get("artifacts") if isinstance(document, dict) else None
    files = artifacts.get("files") if isinstance(artifacts, dict) else None
    if isinstance(files, str):
        files = [files]
    if not files or not isinstance(files, list):
        raise ResolutionError("Project buildspec does not declare artifacts.files")
    return tuple(str(name) for name in files)


def _environment_variable(project: dict, name: str) -> str:
    variables = (project.get("environment") or {}).get("environmentVariables") or []
    for variable in variables:
        if variable.get("name") == name:
            return str(variable.get("value") or "")
    return ""


def resolve_deploy_target(codebuild, name: str) -> DeployTarget:
    try:
        response = codebuild.batch_get_projects(names=[name])
    except (ClientError, BotoCoreError) as exc:
        raise ResolutionError(f"Failed to look up CodeBuild project {name}: {exc}") from exc

    projects = response.get("projects") or []
    if len(projects) != 1:
        raise ResolutionError(f"Expected exactly one CodeBuild project named {name}, found {len(projects)}")
    project = projects[0]

    repository = _environment_variable(project, DOCKER_REPO_VARIABLE)
    if not repository:
        raise ResolutionError(f"Project {name} is missing the {DOCKER_REPO_VARIABLE} environment variable")

    artifacts_bucket = str((project.get("artifacts") or {}).get("location") or "")
    if not artifacts_bucket:
        raise ResolutionError(f"Project {name} has no artifacts location")

    buildspec = str((project.get("source") or {}).get("buildspec") or "")
    if not buildspec:
        raise ResolutionError(f"Project {name} has no buildspec")

    return DeployTarget(
        name=name,
        repository=repository,
        registry=registry_host(repository),
        artifacts_bucket=artifacts_bucket,
        artifact_files=parse_artifact_files(buildspec),
    )


def main() -> None:
    appname = require_env("INPUT_APPNAME")
    clients = AwsClients.for_region(resolve_region())
    target = resolve_deploy_target(clients.codebuild, appname)

    print(f"App: {target.name}")
    print(f"Repository: {target.repository}")
    print(f"Artifacts bucket: {target.artifacts_bucket}")
    print(f"Artifact files: {' '.join(target.artifact_files)}")


if __name__ == "__main__":
    main()
