from __future__ import annotations

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from earthly_ci import context
from earthly_ci.common import EarthlyCiError
from earthly_ci.context import load_event, pull_request_id_from_event, resolve_build_context


class PullRequestIdTests(unittest.TestCase):
    def test_reads_number_as_string(self) -> None:
        self.assertEqual(pull_request_id_from_event({"pull_request": {"number": 42}}), "42")

    def test_unset_without_pull_request(self) -> None:
        self.assertIsNone(pull_request_id_from_event({"ref": "refs/heads/main"}))

    def test_pull_request_without_number_is_an_error(self) -> None:
        with self.assertRaises(EarthlyCiError):
            pull_request_id_from_event({"pull_request": {}})


class ResolveBuildContextTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self._temp_dir.cleanup)
        self.root = Path(self._temp_dir.name)

    def _environ(self, event: object) -> dict[str, str]:
        event_path = self.root / "event.json"
        event_path.write_text(json.dumps(event), encoding="utf-8")
        return {
            "GITHUB_REPOSITORY": "org/repo",
            "GITHUB_REF_NAME": "main",
            "OCI_REGISTRY": "oci.example.com",
            "CACHE_OCI_REGISTRY": "reg.example.com",
            "GITHUB_EVENT_PATH": str(event_path),
        }

    def test_pull_request_event(self) -> None:
        ctx = resolve_build_context(self._environ({"pull_request": {"number": 42}}))
        self.assertEqual(ctx.repository, "org/repo")
        self.assertEqual(ctx.cache_oci_registry, "reg.example.com")
        self.assertEqual(ctx.pull_request_id, "42")

    def test_push_event(self) -> None:
        ctx = resolve_build_context(self._environ({}))
        self.assertEqual(ctx.branch, "main")
        self.assertIsNone(ctx.pull_request_id)

    def test_oci_registry_may_be_unset(self) -> None:
        environ = self._environ({})
        del environ["OCI_REGISTRY"]
        self.assertEqual(resolve_build_context(environ).oci_registry, "")

    def test_missing_event_path_fails(self) -> None:
        environ = self._environ({})
        del environ["GITHUB_EVENT_PATH"]
        with self.assertRaisesRegex(EarthlyCiError, "GITHUB_EVENT_PATH is not set"):
            resolve_build_context(environ)

    def test_missing_event_file_fails(self) -> None:
        with self.assertRaises(EarthlyCiError):
            load_event(str(self.root / "missing.json"))

    def test_invalid_event_json_fails(self) -> None:
        event_path = self.root / "bad.json"
        event_path.write_text("{", encoding="utf-8")
        with self.assertRaises(EarthlyCiError):
            load_event(str(event_path))

    def test_non_utf8_event_file_fails(self) -> None:
        event_path = self.root / "latin1.json"
        event_path.write_bytes(b'{"pull_request": {"number": 1}, "title": "\xff"}')
        with self.assertRaisesRegex(EarthlyCiError, "Failed to read event payload"):
            load_event(str(event_path))


class ResolveContextCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self._temp_dir.cleanup)
        self.root = Path(self._temp_dir.name)
        self.output_file = self.root / "output.txt"

    def _run(self, event: object, **extra_env: str) -> dict[str, str]:
        event_path = self.root / "event.json"
        event_path.write_text(json.dumps(event), encoding="utf-8")
        env = {
            "GITHUB_REPOSITORY": "org/repo",
            "GITHUB_REF_NAME": "main",
            "CACHE_OCI_REGISTRY": "reg.example.com",
            "GITHUB_EVENT_PATH": str(event_path),
            "GITHUB_OUTPUT": str(self.output_file),
            **extra_env,
        }
        with mock.patch.dict(os.environ, env, clear=True), redirect_stdout(io.StringIO()):
            context.main()
        lines = self.output_file.read_text(encoding="utf-8").splitlines()
        return dict(line.split("=", 1) for line in lines)

    def test_branch_run_outputs(self) -> None:
        outputs = self._run({})
        self.assertEqual(outputs["repository"], "org/repo")
        self.assertEqual(outputs["branch"], "main")
        self.assertEqual(outputs["pull_request_id"], "")
        self.assertEqual(outputs["remote_cache"], "reg.example.com/org/repo:main")
        self.assertEqual(outputs["cache_from"], "")

    def test_pull_request_run_outputs(self) -> None:
        outputs = self._run({"pull_request": {"number": 42}}, INPUT_TRUNKBRANCH="develop")
        self.assertEqual(outputs["pull_request_id"], "42")
        self.assertEqual(outputs["remote_cache"], "reg.example.com/org/repo:pr-42")
        self.assertEqual(outputs["cache_from"], "reg.example.com/org/repo:develop")


if __name__ == "__main__":
    unittest.main()
