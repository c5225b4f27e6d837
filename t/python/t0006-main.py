#!/usr/bin/env python3
###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import io
import json
import os
import tempfile
import unittest
import unittest.mock

import subkube
import yaml
from kubecreate.cli import main
from kubecreate.errors import ValidationError
from kubernetes import client
from pycotap import TAPTestRunner

SCHEDULE = "*/1 * * * *"


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.kubeconfig = os.path.join(self.tmpdir.name, "kubeconfig")
        with open(self.kubeconfig, "w") as fp:
            fp.write(subkube.KUBECONFIG)
        self.confdir = os.path.join(self.tmpdir.name, "xdg")
        os.makedirs(os.path.join(self.confdir, "kubecreate"))

        env = {
            "XDG_CONFIG_HOME": self.confdir,
            "XDG_CONFIG_DIRS": os.path.join(self.tmpdir.name, "none"),
        }
        patches = [
            unittest.mock.patch.dict(os.environ, env),
            unittest.mock.patch.object(client.BatchV1Api, "create_namespaced_cron_job"),
            unittest.mock.patch.object(client.BatchV1Api, "create_namespaced_job"),
            unittest.mock.patch("sys.stdout", new_callable=io.StringIO),
        ]
        mocks = []
        for patcher in patches:
            mocks.append(patcher.start())
            self.addCleanup(patcher.stop)
        self.create_cronjob, self.create_job, self.stdout = mocks[1:]
        self.create_cronjob.side_effect = lambda namespace, body: body
        self.create_job.side_effect = lambda namespace, body: body

    def write_config(self, text):
        path = os.path.join(self.confdir, "kubecreate", "kubecreate.toml")
        with open(path, "w") as fp:
            fp.write(text)

    def run_cmd(self, *argv):
        return main.run(["--kubeconfig", self.kubeconfig] + list(argv))

    def test_dry_run_alias(self):
        self.run_cmd(
            "cj",
            "my-job",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
            "--dry-run",
            "--",
            "date",
        )
        self.assertEqual(
            self.stdout.getvalue(), "cronjob.batch/my-job created (dry run)\n"
        )
        self.create_cronjob.assert_not_called()

    def test_create_current_context_namespace(self):
        self.run_cmd("cronjob", "my-job", "--image=busybox", f"--schedule={SCHEDULE}")
        self.assertEqual(self.stdout.getvalue(), "cronjob.batch/my-job created\n")
        self.create_cronjob.assert_called_once()
        self.assertEqual(self.create_cronjob.call_args.kwargs["namespace"], "team-a")
        body = self.create_cronjob.call_args.kwargs["body"]
        self.assertEqual(body.spec.schedule, SCHEDULE)

    def test_context_option(self):
        self.run_cmd(
            "--context=other",
            "cronjob",
            "my-job",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
        )
        self.assertEqual(self.create_cronjob.call_args.kwargs["namespace"], "default")

    def test_json_command(self):
        self.run_cmd(
            "cronjob",
            "my-job",
            "-o",
            "json",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
            "--dry-run",
            "--",
            "sh",
            "-c",
            "echo hi",
        )
        data = json.loads(self.stdout.getvalue())
        podspec = data["spec"]["jobTemplate"]["spec"]["template"]["spec"]
        self.assertEqual(podspec["containers"][0]["command"], ["sh", "-c", "echo hi"])
        self.assertEqual(podspec["restartPolicy"], "OnFailure")

    def test_command_positionals_without_dash(self):
        self.run_cmd(
            "cronjob",
            "my-job",
            "date",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
            "-o",
            "json",
        )
        data = json.loads(self.stdout.getvalue())
        podspec = data["spec"]["jobTemplate"]["spec"]["template"]["spec"]
        self.assertEqual(podspec["containers"][0]["command"], ["date"])

    def test_namespace_after_subcommand(self):
        self.run_cmd(
            "cronjob",
            "my-job",
            "-n",
            "team-b",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
        )
        self.assertEqual(self.create_cronjob.call_args.kwargs["namespace"], "team-b")

    def test_namespace_global(self):
        self.run_cmd(
            "-n",
            "team-c",
            "cronjob",
            "my-job",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
        )
        self.assertEqual(self.create_cronjob.call_args.kwargs["namespace"], "team-c")

    def test_config_defaults(self):
        self.write_config('output = "yaml"\n[cronjob]\nnamespace = "from-config"\n')
        self.run_cmd("cronjob", "my-job", "--image=busybox", f"--schedule={SCHEDULE}")
        self.assertEqual(
            self.create_cronjob.call_args.kwargs["namespace"], "from-config"
        )
        data = yaml.safe_load(self.stdout.getvalue())
        self.assertEqual(data["metadata"]["name"], "my-job")

    def test_command_line_overrides_config(self):
        self.write_config('output = "yaml"\nnamespace = "from-config"\n')
        self.run_cmd(
            "cronjob",
            "my-job",
            "-n",
            "cli",
            "-o",
            "name",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
        )
        self.assertEqual(self.create_cronjob.call_args.kwargs["namespace"], "cli")
        self.assertEqual(self.stdout.getvalue(), "cronjob.batch/my-job created\n")

    def test_job(self):
        self.run_cmd("job", "pi", "--image=perl", "--", "perl", "-v")
        self.assertEqual(self.stdout.getvalue(), "job.batch/pi created\n")
        body = self.create_job.call_args.kwargs["body"]
        self.assertEqual(body.spec.template.spec.containers[0].command, ["perl", "-v"])

    def test_save_config(self):
        self.run_cmd(
            "cronjob",
            "my-job",
            "--image=busybox",
            f"--schedule={SCHEDULE}",
            "--save-config",
        )
        body = self.create_cronjob.call_args.kwargs["body"]
        self.assertIn(
            "kubectl.kubernetes.io/last-applied-configuration",
            body.metadata.annotations,
        )

    def test_missing_schedule(self):
        with self.assertRaisesRegex(ValidationError, "--schedule must be specified"):
            self.run_cmd("cronjob", "my-job", "--image=busybox")
        self.create_cronjob.assert_not_called()
        self.assertEqual(self.stdout.getvalue(), "")

    @unittest.mock.patch("sys.stderr", new_callable=io.StringIO)
    def test_missing_subcommand(self, mock_stderr):
        with self.assertRaises(SystemExit) as cm:
            self.run_cmd()
        self.assertEqual(cm.exception.code, 2)

    @unittest.mock.patch("sys.stderr", new_callable=io.StringIO)
    def test_bad_validate_value(self, mock_stderr):
        with self.assertRaises(SystemExit) as cm:
            self.run_cmd(
                "cronjob",
                "my-job",
                "--image=busybox",
                f"--schedule={SCHEDULE}",
                "--validate=maybe",
            )
        self.assertEqual(cm.exception.code, 2)
        self.assertIn("--validate", mock_stderr.getvalue())
        self.create_cronjob.assert_not_called()

    def test_help(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_cmd("cronjob", "--help")
        self.assertEqual(cm.exception.code, 0)
        self.assertIn("--schedule=CRON", self.stdout.getvalue())
        self.assertIn("# Create a cronjob with command", self.stdout.getvalue())

    def test_main_exit_code(self):
        argv = [
            "kubecreate",
            "--kubeconfig",
            self.kubeconfig,
            "cronjob",
            "my-job",
            "--image=busybox",
        ]
        with unittest.mock.patch("sys.argv", argv):
            with self.assertLogs("kubecreate", level="ERROR") as logs:
                with self.assertRaises(SystemExit) as cm:
                    main.main()
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("--schedule must be specified", logs.output[0])


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
