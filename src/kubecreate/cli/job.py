##############################################################
# Copyright 2025 Lawrence Livermore National Security, LLC
# (c.f. AUTHORS, NOTICE.LLNS, COPYING)
#
# This file is part of the Flux resource manager framework.
# For details, see https://github.com/flux-framework.
#
# SPDX-License-Identifier: LGPL-3.0
##############################################################

from kubernetes import client

from kubecreate.cli import base
from kubecreate.errors import ValidationError
from kubecreate.kube import ResourceClient


class JobBuilder:
    """
    JobBuilder creates a batch/v1 Job running one container to completion.

    Usage: kubecreate job NAME --image=IMAGE [-- CMD...]
    """

    name = "job"
    aliases = ()
    usage = "kubecreate job NAME --image=IMAGE -- [COMMAND] [ARGS...]"
    description = "Create a job with the specified name."
    examples = """
examples:
  # Create a job
  kubecreate job my-job --image=busybox

  # Create a job with command
  kubecreate job my-job --image=busybox -- date
"""
    resource = "job.batch"
    kind_name = "job"
    schema = "job"

    @staticmethod
    def add_arguments(parser):
        base.add_command_arguments(parser)

    @staticmethod
    def complete(options):
        options.restart = "Never"

    @staticmethod
    def validate(options):
        if not options.image:
            raise ValidationError("--image must be specified")

    @staticmethod
    def build(options):
        return client.V1Job(
            api_version="batch/v1",
            kind="Job",
            metadata=client.V1ObjectMeta(name=options.name),
            spec=client.V1JobSpec(
                template=client.V1PodTemplateSpec(
                    spec=client.V1PodSpec(
                        containers=[
                            client.V1Container(
                                name=options.name,
                                image=options.image,
                                command=list(options.command) or None,
                            )
                        ],
                        restart_policy=options.restart,
                    )
                )
            ),
        )

    @staticmethod
    def client(api_client):
        return ResourceClient(api_client, client.BatchV1Api, "create_namespaced_job")
