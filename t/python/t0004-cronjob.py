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
import urllib3
from kubecreate.cli.base import (
    LAST_APPLIED_ANNOTATION,
    CommandOptions,
    State,
    run_lifecycle,
)
from kubecreate.cli.cronjob import CronJobBuilder
from kubecreate.errors import (
    ConfigError,
    SchemaError,
    SubmissionError,
    UsageError,
    ValidationError,
)
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from pycotap import TAPTestRunner

SCHEDULE = "*/1 * * * *"


def options(**kwargs):
    kwargs.setdefault("image", "busybox")
    kwargs.setdefault("schedule", SCHEDULE)
    return CommandOptions(CronJobBuilder(), **kwargs)


def dry_run(args, **kwargs):
    """Run the lifecycle in dry-run mode and return the printed object"""
    opts = options(dry_run=True, **kwargs)
    opts.complete(subkube.FakeFactory(), args)
    printed = []
    opts.print_obj = printed.append
    opts.validate()
    opts.run()
    return printed[0]


class TestCronJobBuild(unittest.TestCase):
    def test_basic(self):
        cronjob = dry_run(["my-job"])
        self.assertIsInstance(cronjob, client.V1CronJob)
        self.assertEqual(cronjob.api_version, "batch/v1")
        self.assertEqual(cronjob.kind, "CronJob")
        self.assertEqual(cronjob.metadata.name, "my-job")
        self.assertEqual(cronjob.spec.schedule, SCHEDULE)

        template = cronjob.spec.job_template
        self.assertEqual(template.metadata.name, "my-job")
        podspec = template.spec.template.spec
        self.assertEqual(podspec.restart_policy, "OnFailure")
        self.assertEqual(len(podspec.containers), 1)
        container = podspec.containers[0]
        self.assertEqual(container.name, "my-job")
        self.assertEqual(container.image, "busybox")
        self.assertFalse(container.command)

    def test_names_match(self):
        for name in ("a", "nightly-backup", "report.v2", "x" * 253):
            cronjob = dry_run([name], image="registry.local/tools:1.0")
            container = cronjob.spec.job_template.spec.template.spec.containers[0]
            self.assertEqual(cronjob.metadata.name, name)
            self.assertEqual(cronjob.spec.job_template.metadata.name, name)
            self.assertEqual(container.name, name)
            self.assertEqual(container.image, "registry.local/tools:1.0")

    def test_schedule_verbatim(self):
        for schedule in ("0 0 * * *", "@hourly", "0/5 * * * ?"):
            cronjob = dry_run(["my-job"], schedule=schedule)
            self.assertEqual(cronjob.spec.schedule, schedule)

    def test_command(self):
        cronjob = dry_run(["my-job", "date"])
        container = cronjob.spec.job_template.spec.template.spec.containers[0]
        self.assertEqual(container.command, ["date"])

    def test_command_order_unmodified(self):
        argv = ["sh", "-c", "echo $HOME && date", "--", ""]
        cronjob = dry_run(["my-job"] + argv)
        container = cronjob.spec.job_template.spec.template.spec.containers[0]
        self.assertEqual(container.command, argv)

    def test_restart(self):
        cronjob = dry_run(["my-job"], restart="Never")
        podspec = cronjob.spec.job_template.spec.template.spec
        self.assertEqual(podspec.restart_policy, "Never")

    def test_restart_passed_through(self):
        #  Not a valid policy for a job, the API server decides
        cronjob = dry_run(["my-job"], restart="Always")
        podspec = cronjob.spec.job_template.spec.template.spec
        self.assertEqual(podspec.restart_policy, "Always")

    def test_deterministic(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["my-job", "date"])
        opts.validate()
        builder = CronJobBuilder()
        first = builder.build(opts)
        self.assertEqual(first, builder.build(opts))
        self.assertIsNot(first, builder.build(opts))


class TestCronJobComplete(unittest.TestCase):
    def test_defaults(self):
        opts = options()
        factory = subkube.FakeFactory(namespace="team-a")
        opts.complete(factory, ["my-job"])
        self.assertEqual(opts.state, State.COMPLETED)
        self.assertEqual(opts.name, "my-job")
        self.assertEqual(opts.command, [])
        self.assertEqual(opts.restart, "OnFailure")
        self.assertEqual(opts.namespace, "team-a")
        self.assertEqual(factory.calls, ["api_client", "namespace"])

    def test_missing_name(self):
        factory = subkube.FakeFactory()
        with self.assertRaisesRegex(UsageError, "NAME is required"):
            options().complete(factory, [])
        self.assertEqual(factory.calls, [])

    def test_invalid_name(self):
        invalid = ("My-Job", "-job", "job-", "my_job", "x" * 254, "")
        for name in invalid + ("my-job\n", "\nmy-job", "my-job\r"):
            factory = subkube.FakeFactory()
            with self.assertRaises(UsageError):
                options().complete(factory, [name])
            self.assertEqual(factory.calls, [])

    def test_config_error(self):
        factory = unittest.mock.Mock()
        factory.api_client.side_effect = ConfigError("no kubeconfig")
        opts = options()
        with self.assertRaises(ConfigError):
            opts.complete(factory, ["my-job"])
        self.assertEqual(opts.state, State.ABORTED)
        self.assertIsInstance(opts.error, ConfigError)
        with self.assertRaisesRegex(RuntimeError, "aborted: no kubeconfig"):
            opts.validate()

    def test_unknown_output(self):
        factory = subkube.FakeFactory()
        with self.assertRaises(UsageError):
            options(output="wide").complete(factory, ["my-job"])
        self.assertEqual(factory.calls, [])

    @unittest.mock.patch("sys.stdout", new_callable=io.StringIO)
    def test_dry_run_message(self, mock_stdout):
        opts = options(dry_run=True)
        run_lifecycle(opts, subkube.FakeFactory(), ["my-job"])
        self.assertEqual(
            mock_stdout.getvalue(), "cronjob.batch/my-job created (dry run)\n"
        )


class TestCronJobValidate(unittest.TestCase):
    def completed(self, **kwargs):
        opts = options(**kwargs)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        return opts

    def test_valid(self):
        opts = self.completed()
        opts.validate()
        self.assertEqual(opts.state, State.VALIDATED)

    def test_missing_image(self):
        with self.assertRaisesRegex(ValidationError, "^--image must be specified$"):
            self.completed(image="").validate()

    def test_missing_schedule(self):
        with self.assertRaisesRegex(
            ValidationError, "^--schedule must be specified$"
        ):
            self.completed(schedule="").validate()

    def test_missing_both(self):
        with self.assertRaisesRegex(ValidationError, "--image"):
            self.completed(image="", schedule="").validate()

    def test_other_fields_ignored(self):
        opts = self.completed(restart="bogus")
        opts.command = ["anything"]
        opts.validate()


class TestCronJobRun(unittest.TestCase):
    def setUp(self):
        patcher = unittest.mock.patch.object(
            client.BatchV1Api, "create_namespaced_cron_job"
        )
        self.create = patcher.start()
        self.addCleanup(patcher.stop)
        stdout = unittest.mock.patch("sys.stdout", new_callable=io.StringIO)
        self.stdout = stdout.start()
        self.addCleanup(stdout.stop)

    def test_dry_run_skips_client(self):
        run_lifecycle(options(dry_run=True), subkube.FakeFactory(), ["my-job"])
        self.create.assert_not_called()

    def test_submit_once(self):
        server_obj = client.V1CronJob(metadata=client.V1ObjectMeta(name="my-job"))
        self.create.return_value = server_obj
        opts = options()
        built = []
        build = CronJobBuilder.build

        def record_build(o):
            built.append(build(o))
            return built[-1]

        with unittest.mock.patch.object(opts.builder, "build", record_build):
            run_lifecycle(opts, subkube.FakeFactory(namespace="team-a"), ["my-job"])

        self.create.assert_called_once_with(namespace="team-a", body=built[0])
        self.assertEqual(opts.state, State.EXECUTED)
        self.assertEqual(self.stdout.getvalue(), "cronjob.batch/my-job created\n")

    def test_prints_server_object(self):
        server_obj = client.V1CronJob(
            metadata=client.V1ObjectMeta(name="my-job", uid="1234")
        )
        self.create.return_value = server_obj
        opts = options(output="json")
        run_lifecycle(opts, subkube.FakeFactory(), ["my-job"])
        data = json.loads(self.stdout.getvalue())
        self.assertEqual(data["metadata"]["uid"], "1234")

    def test_api_error(self):
        exc = ApiException(status=409, reason="Conflict")
        exc.body = json.dumps({"message": 'cronjobs.batch "my-job" already exists'})
        self.create.side_effect = exc
        opts = options()
        with self.assertRaises(SubmissionError) as cm:
            run_lifecycle(opts, subkube.FakeFactory(), ["my-job"])
        self.assertEqual(
            str(cm.exception),
            'failed to create cronjob: cronjobs.batch "my-job" already exists',
        )
        self.assertIs(cm.exception.__cause__, exc)
        self.assertEqual(self.stdout.getvalue(), "")
        self.assertEqual(opts.state, State.ABORTED)
        self.assertIs(opts.error, cm.exception)
        self.create.assert_called_once()

    def test_no_retry_after_submission_error(self):
        self.create.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )
        opts = options()
        with self.assertRaises(SubmissionError):
            run_lifecycle(opts, subkube.FakeFactory(), ["my-job"])
        with self.assertRaises(RuntimeError):
            opts.run()
        self.assertEqual(self.create.call_count, 1)
        self.assertEqual(self.stdout.getvalue(), "")

    def test_transport_error(self):
        self.create.side_effect = urllib3.exceptions.ProtocolError(
            "Connection aborted."
        )
        with self.assertRaisesRegex(
            SubmissionError, "^failed to create cronjob: Connection aborted.$"
        ):
            run_lifecycle(options(), subkube.FakeFactory(), ["my-job"])

    def test_validation_error_stops_before_run(self):
        opts = options(schedule="")
        with unittest.mock.patch.object(opts.builder, "build") as build:
            with self.assertRaisesRegex(ValidationError, "--schedule"):
                run_lifecycle(opts, subkube.FakeFactory(), ["my-job"])
        build.assert_not_called()
        self.create.assert_not_called()
        self.assertEqual(opts.state, State.ABORTED)
        with self.assertRaises(RuntimeError):
            opts.validate()

    def test_output_error_propagates(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        opts.validate()
        opts.print_obj = unittest.mock.Mock(side_effect=BrokenPipeError(32, "pipe"))
        with self.assertRaises(BrokenPipeError):
            opts.run()

    def test_returns_output_result(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        opts.validate()
        opts.print_obj = unittest.mock.Mock(return_value="printed")
        self.assertEqual(opts.run(), "printed")


class TestLifecycleOrder(unittest.TestCase):
    def test_validate_before_complete(self):
        with self.assertRaises(RuntimeError):
            options().validate()

    def test_run_before_validate(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        with self.assertRaises(RuntimeError):
            opts.run()

    def test_no_reentry(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        with self.assertRaises(RuntimeError):
            opts.complete(subkube.FakeFactory(), ["my-job"])

    @unittest.mock.patch("sys.stdout", new_callable=io.StringIO)
    def test_no_rerun(self, mock_stdout):
        opts = options(dry_run=True)
        run_lifecycle(opts, subkube.FakeFactory(), ["my-job"])
        self.assertEqual(opts.state, State.EXECUTED)
        with self.assertRaises(RuntimeError):
            opts.run()


class TestSaveConfigAndSchema(unittest.TestCase):
    def test_save_config(self):
        cronjob = dry_run(["my-job", "date"], save_config=True)
        annotation = cronjob.metadata.annotations[LAST_APPLIED_ANNOTATION]
        saved = json.loads(annotation)
        self.assertEqual(saved["kind"], "CronJob")
        self.assertEqual(saved["metadata"], {"name": "my-job"})
        self.assertEqual(saved["spec"]["schedule"], SCHEDULE)

    def test_no_save_config(self):
        cronjob = dry_run(["my-job"])
        self.assertIsNone(cronjob.metadata.annotations)

    def test_schema_failure(self):
        opts = options(dry_run=True)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        opts.validate()
        broken = CronJobBuilder.build(opts)
        broken.spec.job_template.spec.template.spec.containers = []
        with unittest.mock.patch.object(opts.builder, "build", return_value=broken):
            with self.assertRaisesRegex(
                SchemaError, "error validating data at spec.jobTemplate"
            ):
                opts.run()
        self.assertEqual(opts.state, State.ABORTED)
        self.assertIsInstance(opts.error, SchemaError)

    def test_schema_skipped(self):
        opts = options(dry_run=True, validate_schema=False)
        opts.complete(subkube.FakeFactory(), ["my-job"])
        opts.validate()
        printed = []
        opts.print_obj = printed.append
        with unittest.mock.patch("kubecreate.schema.validate") as validate:
            opts.run()
        validate.assert_not_called()
        self.assertEqual(len(printed), 1)


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
