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
import json
import os
import tempfile
import unittest
import unittest.mock

import subkube
import urllib3
from kubecreate import kube
from kubecreate.errors import ConfigError
from kubecreate.kube import KubeFactory, ResourceClient, api_error_message
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from pycotap import TAPTestRunner


class TestKubeFactory(unittest.TestCase):
    @classmethod
    def setUpClass(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.kubeconfig = os.path.join(self.tmpdir.name, "config")
        with open(self.kubeconfig, "w") as fp:
            fp.write(subkube.KUBECONFIG)

    @classmethod
    def tearDownClass(self):
        self.tmpdir.cleanup()

    def test_namespace_override(self):
        factory = KubeFactory(namespace="override")
        self.assertEqual(factory.namespace(), "override")

    def test_namespace_current_context(self):
        factory = KubeFactory(kubeconfig=self.kubeconfig)
        self.assertEqual(factory.namespace(), "team-a")

    def test_namespace_context_without_namespace(self):
        factory = KubeFactory(kubeconfig=self.kubeconfig, context="other")
        self.assertEqual(factory.namespace(), "default")

    def test_namespace_unknown_context(self):
        factory = KubeFactory(kubeconfig=self.kubeconfig, context="nope")
        with self.assertRaisesRegex(ConfigError, "context 'nope' not found"):
            factory.namespace()

    def test_missing_kubeconfig(self):
        missing = os.path.join(self.tmpdir.name, "missing")
        factory = KubeFactory(kubeconfig=missing)
        with self.assertRaises(ConfigError):
            factory.api_client()
        with self.assertRaises(ConfigError):
            factory.namespace()

    def test_api_client(self):
        factory = KubeFactory(kubeconfig=self.kubeconfig, context="other")
        api_client = factory.api_client()
        self.assertIsInstance(api_client, client.ApiClient)
        self.assertEqual(api_client.configuration.host, "https://127.0.0.1:6443")
        #  cached
        self.assertIs(factory.api_client(), api_client)

    def test_from_args(self):
        args = argparse.Namespace(kubeconfig=None, context="ctx", namespace=None)
        conf = {"kubeconfig": "/conf/kubeconfig", "context": "conf", "namespace": "ns"}
        factory = KubeFactory.from_args(args, conf)
        self.assertEqual(factory.kubeconfig, "/conf/kubeconfig")
        self.assertEqual(factory.context, "ctx")
        self.assertEqual(factory.namespace_override, "ns")

    def test_from_args_no_config(self):
        args = argparse.Namespace(kubeconfig=None, context=None, namespace=None)
        factory = KubeFactory.from_args(args)
        self.assertIsNone(factory.kubeconfig)
        self.assertIsNone(factory.namespace_override)


class TestInCluster(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.nsfile = os.path.join(self.tmpdir.name, "namespace")
        patches = [
            unittest.mock.patch.dict(
                os.environ, {"KUBERNETES_SERVICE_HOST": "10.0.0.1"}
            ),
            unittest.mock.patch.object(
                KubeFactory, "_kubeconfig_exists", return_value=False
            ),
            unittest.mock.patch.object(kube, "SERVICEACCOUNT_NAMESPACE", self.nsfile),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_incluster(self):
        self.assertTrue(KubeFactory().incluster())
        self.assertFalse(KubeFactory(kubeconfig="/some/config").incluster())

    def test_incluster_namespace(self):
        with open(self.nsfile, "w") as fp:
            fp.write("pod-ns\n")
        self.assertEqual(KubeFactory().namespace(), "pod-ns")

    def test_incluster_namespace_unreadable(self):
        with self.assertRaisesRegex(ConfigError, "service account namespace"):
            KubeFactory().namespace()

    def test_incluster_api_client(self):
        with unittest.mock.patch.object(
            kube.config, "load_incluster_config"
        ) as load_incluster:
            api_client = KubeFactory().api_client()
        self.assertIsInstance(api_client, client.ApiClient)
        load_incluster.assert_called_once()

    def test_incluster_config_error(self):
        with unittest.mock.patch.object(
            kube.config,
            "load_incluster_config",
            side_effect=kube.config.ConfigException("Service token file does not exist."),
        ):
            with self.assertRaisesRegex(ConfigError, "Service token file"):
                KubeFactory().api_client()


class TestApiErrorMessage(unittest.TestCase):
    def test_status_message(self):
        exc = ApiException(status=409, reason="Conflict")
        exc.body = json.dumps(
            {
                "kind": "Status",
                "message": 'cronjobs.batch "my-job" already exists',
                "reason": "AlreadyExists",
            }
        )
        self.assertEqual(api_error_message(exc), 'cronjobs.batch "my-job" already exists')

    def test_reason(self):
        exc = ApiException(status=403, reason="Forbidden")
        self.assertEqual(api_error_message(exc), "Forbidden (403)")

    def test_non_json_body(self):
        exc = ApiException(status=500, reason="Internal Server Error")
        exc.body = "<html>oops</html>"
        self.assertEqual(api_error_message(exc), "Internal Server Error (500)")

    def test_transport(self):
        exc = urllib3.exceptions.ProtocolError("Connection aborted.")
        self.assertEqual(api_error_message(exc), "Connection aborted.")


class TestResourceClient(unittest.TestCase):
    def test_create(self):
        api_class = unittest.mock.Mock()
        api_client = unittest.mock.Mock()
        resource_client = ResourceClient(
            api_client, api_class, "create_namespaced_cron_job"
        )
        api_class.assert_called_once_with(api_client)

        body = object()
        result = resource_client.create(body, "team-a")
        api = api_class.return_value
        api.create_namespaced_cron_job.assert_called_once_with(
            namespace="team-a", body=body
        )
        self.assertIs(result, api.create_namespaced_cron_job.return_value)

    def test_to_dict(self):
        obj = client.V1ObjectMeta(name="my-job", labels={"a": "b"})
        self.assertEqual(kube.to_dict(obj), {"name": "my-job", "labels": {"a": "b"}})


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
