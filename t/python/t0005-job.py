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
import unittest
import unittest.mock

import subkube
from kubecreate.cli.base import CommandOptions, State, run_lifecycle
from kubecreate.cli.job import JobBuilder
from kubecreate.errors import SubmissionError, ValidationError
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from pycotap import TAPTestRunner


def options(**kwargs):
    kwargs.setdefault("image", "busybox")
    return CommandOptions(JobBuilder(), **kwargs)


class TestJob(unittest.TestCase):
    def setUp(self):
        patcher = unittest.mock.patch.object(client.BatchV1Api, "create_namespaced_job")
        self.create = patcher.start()
        self.addCleanup(patcher.stop)
        stdout = unittest.mock.patch("sys.stdout", new_callable=io.StringIO)
        self.stdout = stdout.start()
        self.addCleanup(stdout.stop)

    def test_build(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["pi", "perl", "-e", "print 1"])
        opts.validate()
        job = JobBuilder.build(opts)
        self.assertIsInstance(job, client.V1Job)
        self.assertEqual(job.kind, "Job")
        self.assertEqual(job.metadata.name, "pi")
        podspec = job.spec.template.spec
        self.assertEqual(podspec.restart_policy, "Never")
        self.assertEqual(podspec.containers[0].name, "pi")
        self.assertEqual(podspec.containers[0].image, "busybox")
        self.assertEqual(podspec.containers[0].command, ["perl", "-e", "print 1"])

    def test_schedule_not_required(self):
        opts = options(dry_run=True)
        run_lifecycle(opts, subkube.FakeFactory(), ["pi"])
        self.assertEqual(opts.state, State.EXECUTED)
        self.assertEqual(self.stdout.getvalue(), "job.batch/pi created (dry run)\n")
        self.create.assert_not_called()

    def test_missing_image(self):
        with self.assertRaisesRegex(ValidationError, "--image must be specified"):
            run_lifecycle(options(image=""), subkube.FakeFactory(), ["pi"])

    def test_submit(self):
        self.create.side_effect = lambda namespace, body: body
        opts = options(output="json")
        run_lifecycle(opts, subkube.FakeFactory(namespace="batch"), ["pi"])
        self.create.assert_called_once()
        self.assertEqual(self.create.call_args.kwargs["namespace"], "batch")
        data = json.loads(self.stdout.getvalue())
        self.assertEqual(data["kind"], "Job")
        self.assertEqual(data["spec"]["template"]["spec"]["restartPolicy"], "Never")

    def test_submit_error(self):
        self.create.side_effect = ApiException(status=403, reason="Forbidden")
        with self.assertRaisesRegex(
            SubmissionError, r"^failed to create job: Forbidden \(403\)$"
        ):
            run_lifecycle(options(), subkube.FakeFactory(), ["pi"])


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
