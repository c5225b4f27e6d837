###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import os
import sys
import unittest.mock

script_dir = os.path.dirname(os.path.abspath(__file__))

#  Allow tests to run from a source tree without installing kubecreate
srcdir = os.path.abspath(os.path.join(script_dir, "..", "..", "src"))
if srcdir not in sys.path:
    sys.path.insert(0, srcdir)

KUBECONFIG = """
apiVersion: v1
kind: Config
clusters:
- name: test
  cluster:
    server: https://127.0.0.1:6443
    insecure-skip-tls-verify: true
users:
- name: test
  user:
    token: not-a-real-token
contexts:
- name: test
  context:
    cluster: test
    user: test
    namespace: team-a
- name: other
  context:
    cluster: test
    user: test
current-context: test
"""


class FakeFactory:
    """Stand-in for KubeFactory which never touches kubeconfig"""

    def __init__(self, namespace="test-ns"):
        self._namespace = namespace
        self.client = unittest.mock.Mock(name="ApiClient")
        self.calls = []

    def api_client(self):
        self.calls.append("api_client")
        return self.client

    def namespace(self):
        self.calls.append("namespace")
        return self._namespace
