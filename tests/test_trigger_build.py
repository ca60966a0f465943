from __future__ import annotations

import json
import unittest
from unittest import mock

from botocore.exceptions import ClientError

from apppack_deploy.common import TriggerError
from apppack_deploy.models import BuildRecord, DeployTarget, RunContext
from apppack_deploy.trigger_build import CODEBUILD_IMAGE, build_buildspec, trigger_build


TARGET = DeployTarget(
    name="myapp",
    repository="123.dkr.ecr.x.amazonaws.com/myapp",
    registry="123.dkr.ecr.x.amazonaws.com",
    artifacts_bucket="my-bucket",
    artifact_files=("app.tar", "metadata.toml"),
)
CONTEXT = RunContext(
    run_id="9001-1",
    revision="abc123",
    source_version="refs/heads/main",
    artifact_files=TARGET.artifact_files,
)


class BuildspecTests(unittest.TestCase):
    def test_copies_prefix_and_keeps_artifact_list(self) -> None:
        buildspec = build_buildspec("my-bucket", "external-9001-1", ["app.tar", "metadata.toml"], "9001-1")

        self.assertEqual(buildspec["version"], 0.2)
        self.assertEqual(buildspec["artifacts"], {"files": ["app.tar", "metadata.toml"], "name": "9001-1"})
        self.assertEqual(
            buildspec["phases"]["build"]["commands"],
            ["aws s3 cp --recursive s3://my-bucket/external-9001-1/ ."],
        )


class TriggerBuildTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("apppack_deploy.trigger_build.write_github_outputs")
        self.write_outputs = patcher.start()
        self.addCleanup(patcher.stop)

    def test_starts_build_with_pinned_image_and_shallow_clone(self) -> None:
        codebuild = mock.Mock()
        codebuild.start_build.return_value = {"build": {"buildNumber": 42, "arn": "arn:aws:codebuild:build/myapp:1"}}

        record = trigger_build(codebuild, TARGET, CONTEXT)

        self.assertEqual(record, BuildRecord(build_number="42", arn="arn:aws:codebuild:build/myapp:1"))
        params = codebuild.start_build.call_args.kwargs
        self.assertEqual(params["projectName"], "myapp")
        self.assertEqual(params["sourceVersion"], "refs/heads/main")
        self.assertEqual(params["gitCloneDepthOverride"], 1)
        self.assertEqual(params["imageOverride"], CODEBUILD_IMAGE)
        buildspec = json.loads(params["buildspecOverride"])
        self.assertEqual(buildspec["artifacts"]["files"], ["app.tar", "metadata.toml"])
        self.write_outputs.assert_called_once_with(
            {"build_number": "42", "build_arn": "arn:aws:codebuild:build/myapp:1"}
        )

    def test_client_error_is_trigger_error(self) -> None:
        codebuild = mock.Mock()
        codebuild.start_build.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "gone"}},
            "StartBuild",
        )
        with self.assertRaises(TriggerError):
            trigger_build(codebuild, TARGET, CONTEXT)
        self.write_outputs.assert_not_called()

    def test_response_without_build_number(self) -> None:
        codebuild = mock.Mock()
        codebuild.start_build.return_value = {"build": {"arn": "arn:aws:codebuild:build/myapp:1"}}
        with self.assertRaises(TriggerError):
            trigger_build(codebuild, TARGET, CONTEXT)


if __name__ == "__main__":
    unittest.main()
