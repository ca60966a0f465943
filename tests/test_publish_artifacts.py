from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from botocore.exceptions import ClientError

from apppack_deploy.common import PublishError
from apppack_deploy.models import ArtifactSet
from apppack_deploy.publish_artifacts import artifact_key, collect_artifacts, publish_artifacts


class CollectArtifactsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self._temp_dir.name)

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def test_reads_present_files_byte_for_byte(self) -> None:
        (self.root / "app.tar").write_bytes(b"\x00\x01binary")
        artifacts = collect_artifacts(["app.tar"], self.root)
        self.assertEqual(artifacts.files, {"app.tar": b"\x00\x01binary"})

    def test_optional_metadata_is_skipped_without_warning(self) -> None:
        with mock.patch("apppack_deploy.publish_artifacts.warning") as warn:
            artifacts = collect_artifacts(["metadata.toml"], self.root)
        warn.assert_not_called()
        self.assertEqual(artifacts.skipped, ["metadata.toml"])
        self.assertEqual(artifacts.files, {})

    def test_other_missing_file_warns_but_does_not_fail(self) -> None:
        with mock.patch("apppack_deploy.publish_artifacts.warning") as warn:
            artifacts = collect_artifacts(["build.log"], self.root)
        warn.assert_called_once()
        self.assertIn("build.log", warn.call_args.args[0])
        self.assertEqual(artifacts.missing, ["build.log"])

    def test_unreadable_file_is_publish_error(self) -> None:
        (self.root / "app.tar").write_bytes(b"tarball")
        with mock.patch.object(Path, "read_bytes", side_effect=PermissionError("denied")):
            with self.assertRaises(PublishError) as ctx:
                collect_artifacts(["app.tar"], self.root)
        self.assertIn("app.tar", str(ctx.exception))


class PublishArtifactsTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("apppack_deploy.publish_artifacts.write_github_outputs")
        self.write_outputs = patcher.start()
        self.addCleanup(patcher.stop)

    def test_uploads_exact_bytes_under_prefix(self) -> None:
        s3 = mock.Mock()
        artifacts = ArtifactSet(files={"app.tar": b"tarball", "build/app.json": b"{}"})

        keys = publish_artifacts(s3, "my-bucket", "external-7-1", artifacts)

        self.assertEqual(sorted(keys), ["external-7-1/app.tar", "external-7-1/build/app.json"])
        s3.put_object.assert_any_call(Bucket="my-bucket", Key="external-7-1/app.tar", Body=b"tarball")
        s3.put_object.assert_any_call(Bucket="my-bucket", Key="external-7-1/build/app.json", Body=b"{}")
        self.assertEqual(s3.put_object.call_count, 2)

    def test_outputs_written_even_when_upload_fails(self) -> None:
        s3 = mock.Mock()
        s3.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")

        with self.assertRaises(PublishError):
            publish_artifacts(s3, "my-bucket", "external-7-1", ArtifactSet(files={"app.tar": b"x"}))
        self.write_outputs.assert_called_once_with(
            {"artifacts_bucket": "my-bucket", "artifacts_prefix": "external-7-1"}
        )

    def test_one_failed_upload_fails_step_after_all_settle(self) -> None:
        s3 = mock.Mock()

        def put_object(Bucket: str, Key: str, Body: bytes) -> dict:
            if Key.endswith("b.bin"):
                raise ClientError({"Error": {"Code": "SlowDown", "Message": "slow"}}, "PutObject")
            return {}

        s3.put_object.side_effect = put_object
        artifacts = ArtifactSet(files={"a.bin": b"a", "b.bin": b"b", "c.bin": b"c"})

        with self.assertRaises(PublishError) as ctx:
            publish_artifacts(s3, "my-bucket", "external-7-1", artifacts, max_workers=3)

        self.assertEqual(s3.put_object.call_count, 3)
        self.assertIn("1 of 3", str(ctx.exception))
        self.assertIn("external-7-1/b.bin", str(ctx.exception))

    def test_no_files_means_no_uploads(self) -> None:
        s3 = mock.Mock()
        self.assertEqual(publish_artifacts(s3, "my-bucket", "external-7-1", ArtifactSet()), [])
        s3.put_object.assert_not_called()

    def test_artifact_key_joins_cleanly(self) -> None:
        self.assertEqual(artifact_key("external-1/", "/app.tar"), "external-1/app.tar")


if __name__ == "__main__":
    unittest.main()
