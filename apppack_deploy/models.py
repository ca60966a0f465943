"""
Script: apppack_deploy/models.py
What: Small value types passed between deploy steps.
Doing: Defines the deploy target, run context, artifact set, build record, and image references.
Why: Each step takes the previous step's output; named fields keep those hand-offs readable.
Goal: Make the data flowing through one deploy run explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DeployTarget:
    """CodeBuild project settings that say where this app deploys to."""

    name: str
    repository: str
    registry: str
    artifacts_bucket: str
    artifact_files: tuple[str, ...]


@dataclass(frozen=True)
class RunContext:
    """
    Values that belong to one invocation only.

    `run_id` namespaces uploaded artifacts. It combines the GitHub run id and
    attempt, so reruns and parallel runs never share an S3 prefix.
    """

    run_id: str
    revision: str
    source_version: str
    artifact_files: tuple[str, ...]

    @property
    def artifacts_prefix(self) -> str:
        return f"external-{self.run_id}"


@dataclass
class ArtifactSet:
    """Declared artifact files that were found on disk, keyed by relative name."""

    files: dict[str, bytes] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BuildRecord:
    build_number: str
    arn: str


@dataclass(frozen=True)
class ImageReference:
    """One `repository:tag` pair."""

    repository: str
    tag: str

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"

    def with_tag(self, tag: str) -> ImageReference:
        return ImageReference(self.repository, tag)


@dataclass(frozen=True)
class RegistryCredential:
    """Short-lived registry login. The password is kept out of `repr()`."""

    registry: str
    username: str
    password: str = field(repr=False)
