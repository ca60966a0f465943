"""
Script: apppack_deploy/publish_artifacts.py
What: Uploads local build artifacts to the app's S3 artifact bucket.
Doing: Reads each declared artifact file, uploads the present ones in parallel under a run-scoped prefix, and waits for all of them.
Why: The remote CodeBuild job copies its inputs from that prefix.
Goal: Either every present artifact is in S3, or the run fails with a list of what did not upload.
"""

from __future__ import annotations

from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Sequence

from apppack_deploy.common import PublishError, warning, write_github_outputs
from apppack_deploy.models import ArtifactSet


# Buildpack metadata is only written by some builds; its absence is normal.
OPTIONAL_ARTIFACTS = frozenset({"metadata.toml"})


def artifact_key(prefix: str, filename: str) -> str:
    return f"{prefix.rstrip('/')}/{filename.lstrip('/')}"


def collect_artifacts(artifact_files: Sequence[str], root: Path) -> ArtifactSet:
    """
    Read the declared artifact files that exist under `root`.

    A missing file only produces a warning. If the remote build really needs
    it, that build fails and says so.
    """
    artifacts = ArtifactSet()
    for filename in artifact_files:
        path = root / filename
        if path.is_file():
            try:
                artifacts.files[filename] = path.read_bytes()
            except OSError as exc:
                raise PublishError(f"Failed to read artifact {filename}: {exc}") from exc
        elif filename in OPTIONAL_ARTIFACTS:
            artifacts.skipped.append(filename)
        else:
            artifacts.missing.append(filename)
            warning(f"Unable to read {filename}: file not found")
    return artifacts


def _upload(s3, bucket: str, key: str, body: bytes) -> None:
    s3.put_object(Bucket=bucket, Key=key, Body=body)
    print(f"Uploaded s3://{bucket}/{key} ({len(body)} bytes)")


def publish_artifacts(
    s3,
    bucket: str,
    prefix: str,
    artifacts: ArtifactSet,
    *,
    max_workers: int = 4,
) -> list[str]:
    """
    Upload every file in `artifacts` and return the uploaded keys.

    Outputs are written first so operators can find the prefix even when an
    upload later fails.
    """
    write_github_outputs({"artifacts_bucket": bucket, "artifacts_prefix": prefix})

    if not artifacts.files:
        print("No artifact files found to upload")
        return []

    futures = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for filename, body in artifacts.files.items():
            key = artifact_key(prefix, filename)
            futures[executor.submit(_upload, s3, bucket, key, body)] = key
        # Judge the step only after every upload has settled.
        wait(futures, return_when=ALL_COMPLETED)

    failures: list[str] = []
    for future, key in futures.items():
        exc = future.exception()
        if exc is not None:
            failures.append(f"s3://{bucket}/{key}: {exc}")

    if failures:
        joined = "\n".join(failures)
        raise PublishError(f"Failed to upload {len(failures)} of {len(futures)} artifacts:\n{joined}")

    return list(futures.values())
