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

import subkube  # noqa: F401 - To set up PYTHONPATH
import yaml
from kubecreate.errors import UsageError
from kubecreate.printers import PrintFlags
from kubernetes import client
from pycotap import TAPTestRunner


def cronjob(name="my-job"):
    return client.V1CronJob(
        api_version="batch/v1",
        kind="CronJob",
        metadata=client.V1ObjectMeta(name=name),
        spec=client.V1CronJobSpec(
            schedule="*/1 * * * *",
            job_template=client.V1JobTemplateSpec(),
        ),
    )


class TestPrintFlags(unittest.TestCase):
    def render(self, flags):
        out = io.StringIO()
        flags.print_func("cronjob.batch", out=out)(cronjob())
        return out.getvalue()

    def test_name_default(self):
        self.assertEqual(
            self.render(PrintFlags("created")), "cronjob.batch/my-job created\n"
        )

    def test_name_explicit(self):
        flags = PrintFlags("created")
        flags.output = "name"
        self.assertEqual(self.render(flags), "cronjob.batch/my-job created\n")

    def test_name_dry_run(self):
        flags = PrintFlags("created")
        flags.complete("%s (dry run)")
        self.assertEqual(
            self.render(flags), "cronjob.batch/my-job created (dry run)\n"
        )

    def test_json(self):
        flags = PrintFlags("created")
        flags.output = "json"
        data = json.loads(self.render(flags))
        self.assertEqual(data["kind"], "CronJob")
        self.assertEqual(data["metadata"], {"name": "my-job"})
        self.assertEqual(data["spec"]["schedule"], "*/1 * * * *")

    def test_json_dry_run_unchanged(self):
        flags = PrintFlags("created")
        flags.output = "json"
        flags.complete("%s (dry run)")
        data = json.loads(self.render(flags))
        self.assertEqual(data["apiVersion"], "batch/v1")

    def test_yaml(self):
        flags = PrintFlags("created")
        flags.output = "yaml"
        data = yaml.safe_load(self.render(flags))
        self.assertEqual(data["metadata"]["name"], "my-job")
        self.assertEqual(data["spec"]["schedule"], "*/1 * * * *")

    def test_unknown(self):
        flags = PrintFlags("created")
        flags.output = "wide"
        with self.assertRaisesRegex(UsageError, "unknown format 'wide'"):
            flags.to_printer("cronjob.batch")

    @unittest.mock.patch("sys.stdout", new_callable=io.StringIO)
    def test_stdout(self, mock_stdout):
        PrintFlags("created").print_func("job.batch")(cronjob("other"))
        self.assertEqual(mock_stdout.getvalue(), "job.batch/other created\n")


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
