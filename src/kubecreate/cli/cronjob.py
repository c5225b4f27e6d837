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

DEFAULT_RESTART = "OnFailure"


class CronJobBuilder:
    """
    CronJobBuilder creates a batch/v1 CronJob running one container
    on a cron schedule.

    Usage: kubecreate cronjob NAME --image=IMAGE --schedule=CRON [-- CMD...]
    """

    name = "cronjob"
    aliases = ("cj",)
    usage = (
        "kubecreate cronjob NAME --image=IMAGE --schedule='0/5 * * * ?' "
        + "-- [COMMAND] [ARGS...]"
    )
    description = "Create a cronjob with the specified name."
    examples = """
examples:
  # Create a cronjob
  kubecreate cronjob my-job --image=busybox --schedule="*/1 * * * *"

  # Create a cronjob with command
  kubecreate cronjob my-job --image=busybox --schedule="*/1 * * * *" -- date
"""
    resource = "cronjob.batch"
    kind_name = "cronjob"
    schema = "cronjob"

    @staticmethod
    def add_arguments(parser):
        base.add_command_arguments(parser)
        parser.add_argument(
            "--schedule",
            type=str,
            metavar="CRON",
            help="A schedule in the Cron format the job should be run with",
        )
        parser.add_argument(
            "--restart",
            type=str,
            metavar="POLICY",
            help="Job's restart policy. Supported values: OnFailure, Never "
            + f"(default: {DEFAULT_RESTART})",
        )

    @staticmethod
    def complete(options):
        if not options.restart:
            options.restart = DEFAULT_RESTART

    @staticmethod
    def validate(options):
        #  restart is passed through unchecked, the API server rejects
        #  an unsupported policy
        if not options.image:
            raise ValidationError("--image must be specified")
        if not options.schedule:
            raise ValidationError("--schedule must be specified")

    @staticmethod
    def build(options):
        return client.V1CronJob(
            api_version="batch/v1",
            kind="CronJob",
            metadata=client.V1ObjectMeta(name=options.name),
            spec=client.V1CronJobSpec(
                schedule=options.schedule,
                job_template=client.V1JobTemplateSpec(
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
                ),
            ),
        )

    @staticmethod
    def client(api_client):
        return ResourceClient(
            api_client, client.BatchV1Api, "create_namespaced_cron_job"
        )
