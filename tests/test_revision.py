from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from apppack_deploy.common import DeployError
from apppack_deploy.revision import capture_revision


class CaptureRevisionTests(unittest.TestCase):
    def test_writes_latest_log_entry_and_returns_sha(self) -> None:
        outputs = {
            ("git", "log", "-n", "1"): "commit abc123\nAuthor: Dev <dev@example.com>\n\n    Fix build\n",
            ("git", "rev-parse", "HEAD"): "abc123\n",
        }

        def run_cmd(args, **kwargs):
            return outputs[tuple(args)]

        with tempfile.TemporaryDirectory() as temp_dir:
            commit_file = Path(temp_dir) / "commit.txt"
            with mock.patch("apppack_deploy.revision.run_cmd", side_effect=run_cmd):
                revision = capture_revision(commit_file)

            self.assertEqual(revision, "abc123")
            self.assertTrue(commit_file.read_text(encoding="utf-8").startswith("commit abc123"))

    def test_unwritable_commit_file_is_deploy_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            commit_file = Path(temp_dir) / "missing-dir" / "commit.txt"
            with mock.patch("apppack_deploy.revision.run_cmd", return_value="commit abc123\n"):
                with self.assertRaises(DeployError):
                    capture_revision(commit_file)


if __name__ == "__main__":
    unittest.main()
