###############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""Cluster access for kubecreate commands

:class:`KubeFactory` resolves an API client and the active namespace from
kubeconfig (or the in-cluster service account). :class:`ResourceClient`
submits an object to one namespaced resource collection.
"""

import json
import logging
import os

import urllib3
import yaml
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from kubecreate.errors import ConfigError

LOGGER = logging.getLogger(__name__)

SERVICEACCOUNT_NAMESPACE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

#  Errors raised while talking to the API server
TRANSPORT_ERRORS = (ApiException, urllib3.exceptions.HTTPError)


def to_dict(obj):
    """Return the JSON-compatible dict form of a kubernetes model object"""
    return client.ApiClient().sanitize_for_serialization(obj)


def api_error_message(exc):
    """
    Return a one line message for an API or transport exception.

    The API server returns a Status object as body on failure, prefer its
    message over the multi-line ApiException string.
    """
    if isinstance(exc, ApiException):
        try:
            status = json.loads(exc.body)
            if status.get("message"):
                return status["message"]
        except (TypeError, ValueError, AttributeError):
            pass
        if exc.reason:
            return f"{exc.reason} ({exc.status})"
    return str(exc)


class KubeFactory:
    """
    Produce an API client and namespace from the ambient environment.

    Args:
        kubeconfig (str, optional): path to kubeconfig, by default
            $KUBECONFIG or ~/.kube/config
        context (str, optional): kubeconfig context to use instead of
            current-context
        namespace (str, optional): namespace override
    """

    def __init__(self, kubeconfig=None, context=None, namespace=None):
        self.kubeconfig = kubeconfig
        self.context = context
        self.namespace_override = namespace
        self._api_client = None

    @classmethod
    def from_args(cls, args, conf=None):
        """Build a factory from parsed global options layered over config"""
        conf = conf or {}

        def pick(key):
            value = getattr(args, key, None)
            return value if value is not None else conf.get(key)

        return cls(
            kubeconfig=pick("kubeconfig"),
            context=pick("context"),
            namespace=pick("namespace"),
        )

    def _kubeconfig_exists(self):
        paths = self.kubeconfig or config.KUBE_CONFIG_DEFAULT_LOCATION
        return any(
            os.path.exists(os.path.expanduser(path))
            for path in paths.split(os.pathsep)
            if path
        )

    def incluster(self):
        """True if no kubeconfig is available but we run inside a pod"""
        if self.kubeconfig or self.context:
            return False
        return (
            "KUBERNETES_SERVICE_HOST" in os.environ and not self._kubeconfig_exists()
        )

    def api_client(self):
        if self._api_client is not None:
            return self._api_client
        try:
            if self.incluster():
                LOGGER.debug("using in-cluster configuration")
                configuration = client.Configuration()
                config.load_incluster_config(client_configuration=configuration)
                self._api_client = client.ApiClient(configuration=configuration)
            else:
                self._api_client = config.new_client_from_config(
                    config_file=self.kubeconfig,
                    context=self.context,
                    persist_config=False,
                )
        except (config.ConfigException, OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"unable to load cluster configuration: {exc}") from exc
        return self._api_client

    def namespace(self):
        if self.namespace_override:
            return self.namespace_override
        if self.incluster():
            try:
                with open(SERVICEACCOUNT_NAMESPACE) as fp:
                    namespace = fp.read().strip()
            except OSError as exc:
                raise ConfigError(
                    f"unable to read service account namespace: {exc.strerror}"
                ) from exc
            return namespace or "default"

        try:
            contexts, active = config.list_kube_config_contexts(
                config_file=self.kubeconfig
            )
        except (config.ConfigException, OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"unable to load cluster configuration: {exc}") from exc

        if self.context:
            matches = [ctx for ctx in contexts or [] if ctx["name"] == self.context]
            if not matches:
                raise ConfigError(f"context '{self.context}' not found in kubeconfig")
            active = matches[0]
        if not active:
            return "default"
        return (active.get("context") or {}).get("namespace") or "default"


class ResourceClient:
    """
    Submit objects to a namespaced collection of one resource type.

    Args:
        api_client: a kubernetes.client.ApiClient
        api_class: typed API class, e.g. kubernetes.client.BatchV1Api
        create_method (str): name of the namespaced create call on api_class
    """

    def __init__(self, api_client, api_class, create_method):
        self.api = api_class(api_client)
        self.create_method = create_method

    def create(self, body, namespace):
        LOGGER.debug("%s namespace=%s", self.create_method, namespace)
        return getattr(self.api, self.create_method)(namespace=namespace, body=body)
