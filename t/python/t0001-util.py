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

import argparse
import io
import logging
import os
import tempfile
import unittest
import unittest.mock

import subkube  # noqa: F401 - To set up PYTHONPATH
from kubecreate.util import (
    CLIMain,
    UtilConfig,
    YesNoAction,
    dict_merge,
    split_at_dash,
)
from pycotap import TAPTestRunner


class TestSplitAtDash(unittest.TestCase):
    def test_no_separator(self):
        self.assertEqual(split_at_dash(["cronjob", "a"]), (["cronjob", "a"], None))

    def test_separator(self):
        head, tail = split_at_dash(["cj", "a", "--image=x", "--", "date"])
        self.assertEqual(head, ["cj", "a", "--image=x"])
        self.assertEqual(tail, ["date"])

    def test_empty_tail(self):
        self.assertEqual(split_at_dash(["cj", "a", "--"]), (["cj", "a"], []))

    def test_only_first_separator_splits(self):
        head, tail = split_at_dash(["cj", "a", "--", "sh", "--", "-c"])
        self.assertEqual(head, ["cj", "a"])
        self.assertEqual(tail, ["sh", "--", "-c"])


class TestDictMerge(unittest.TestCase):
    def test_merge(self):
        src = {"a": 1, "t": {"x": 1, "y": 2}}
        dict_merge(src, {"b": 2, "t": {"y": 3}})
        self.assertEqual(src, {"a": 1, "b": 2, "t": {"x": 1, "y": 3}})


class TestYesNoAction(unittest.TestCase):
    def setUp(self):
        self.parser = argparse.ArgumentParser()
        self.parser.add_argument("--validate", action=YesNoAction, default=True)

    def test_default(self):
        self.assertTrue(self.parser.parse_args([]).validate)

    def test_yes_no(self):
        self.assertTrue(self.parser.parse_args(["--validate=yes"]).validate)
        self.assertFalse(self.parser.parse_args(["--validate=no"]).validate)

    @unittest.mock.patch("sys.stderr", new_callable=io.StringIO)
    def test_invalid(self, mock_stderr):
        with self.assertRaises(SystemExit) as cm:
            self.parser.parse_args(["--validate=maybe"])
        self.assertEqual(cm.exception.code, 2)
        self.assertIn(
            "argument --validate: requires either 'yes' or 'no'",
            mock_stderr.getvalue(),
        )


class TestUtilConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.home = os.path.join(self.tmpdir.name, "home")
        self.system = os.path.join(self.tmpdir.name, "system")
        for path in (self.home, self.system):
            os.makedirs(os.path.join(path, "kubecreate"))
        env = {"XDG_CONFIG_HOME": self.home, "XDG_CONFIG_DIRS": self.system}
        patcher = unittest.mock.patch.dict(os.environ, env)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.tmpdir.cleanup)

    def write(self, base, filename, text):
        with open(os.path.join(base, "kubecreate", filename), "w") as fp:
            fp.write(text)

    def test_empty(self):
        conf = UtilConfig("kubecreate").load()
        self.assertEqual(conf.dict, {})
        self.assertIsNone(conf.get("namespace"))

    def test_user_overrides_system(self):
        self.write(self.system, "kubecreate.toml", 'namespace = "sys"\noutput = "yaml"')
        self.write(self.home, "kubecreate.json", '{"namespace": "mine"}')
        conf = UtilConfig("kubecreate").load()
        self.assertEqual(conf.namespace, "mine")
        self.assertEqual(conf.output, "yaml")

    def test_yaml(self):
        self.write(self.home, "kubecreate.yaml", "context: prod\n")
        conf = UtilConfig("kubecreate").load()
        self.assertEqual(conf.get("context"), "prod")

    def test_empty_yaml(self):
        self.write(self.home, "kubecreate.yaml", "")
        conf = UtilConfig("kubecreate").load()
        self.assertEqual(conf.dict, {})

    def test_subcommand_table(self):
        self.write(
            self.home,
            "kubecreate.toml",
            'namespace = "a"\noutput = "name"\n[cronjob]\nnamespace = "b"\n',
        )
        conf = UtilConfig("kubecreate", subcommand="cronjob").load()
        self.assertEqual(conf.namespace, "b")
        self.assertEqual(conf.output, "name")
        conf = UtilConfig("kubecreate", subcommand="job").load()
        self.assertEqual(conf.namespace, "a")

    def test_ignored_extension(self):
        self.write(self.home, "kubecreate.ini", "garbage")
        self.assertEqual(UtilConfig("kubecreate").load().dict, {})

    def test_decode_error(self):
        self.write(self.home, "kubecreate.toml", "namespace = ")
        with self.assertRaisesRegex(ValueError, "kubecreate.toml"):
            UtilConfig("kubecreate").load()

    def test_unknown_key(self):
        self.write(self.home, "kubecreate.json", '{"image": "busybox"}')
        with self.assertRaisesRegex(ValueError, "unknown key 'image'"):
            UtilConfig("kubecreate").load()

    def test_non_string_value(self):
        self.write(self.home, "kubecreate.json", '{"namespace": 42}')
        with self.assertRaisesRegex(ValueError, "must be a string"):
            UtilConfig("kubecreate").load()

    def test_missing_attr(self):
        conf = UtilConfig("kubecreate").load()
        with self.assertRaises(AttributeError):
            conf.namespace


class TestCLIMain(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("kubecreate-test")

    def test_success(self):
        with self.assertRaises(SystemExit) as cm:
            CLIMain(self.logger)(lambda: None)
        self.assertEqual(cm.exception.code, 0)

    def test_exception(self):
        def fail():
            raise ValueError("--image must be specified")

        with self.assertLogs(self.logger, level="ERROR") as logs:
            with self.assertRaises(SystemExit) as cm:
                CLIMain(self.logger)(fail)
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("--image must be specified", logs.output[0])

    def test_oserror_filename(self):
        def fail():
            raise FileNotFoundError(2, "No such file or directory", "/nope")

        with self.assertLogs(self.logger, level="ERROR") as logs:
            with self.assertRaises(SystemExit):
                CLIMain(self.logger)(fail)
        self.assertIn("No such file or directory: '/nope'", logs.output[0])


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
